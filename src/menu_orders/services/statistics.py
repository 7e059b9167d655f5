from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from menu_orders.models.order import OrderStatusEnum
from menu_orders.schemas.order import (
    DailyRevenue,
    Order,
    OrderStatistics,
    RevenuePeriod,
    StatsPeriodEnum,
    TopItem,
)

CENTS = Decimal("0.01")


def top_items(orders: Iterable[Order], limit: int = 5) -> List[TopItem]:
    """
    Топ позиций по выручке. Группировка по названию, при равной выручке
    сохраняется порядок первого появления.
    """
    grouped: Dict[str, Dict] = OrderedDict()
    for order in orders:
        for item in order.items:
            row = grouped.setdefault(item.name, {"quantity": 0, "revenue": Decimal(0)})
            row["quantity"] += item.quantity
            row["revenue"] += item.subtotal

    # sorted стабилен и при reverse=True
    ranked = sorted(grouped.items(), key=lambda kv: kv[1]["revenue"], reverse=True)
    return [
        TopItem(name=name, quantity=row["quantity"], revenue=row["revenue"])
        for name, row in ranked[:limit]
    ]


def compute_statistics(
    orders: Iterable[Order],
    *,
    top_items_limit: int = 5,
    include_cancelled: bool = True,
    now: Optional[datetime] = None,
) -> OrderStatistics:
    """
    Сводная статистика по заказам ресторана:
    - количество заказов и разбивка по статусам
    - общая выручка и средний чек
    - уникальные клиенты (по телефону)
    - доля доставленных заказов
    - топ позиций, заказы и выручка за сегодня, выручка по дням

    include_cancelled=False исключает отменённые заказы из выручки,
    среднего чека и топа позиций (количество заказов их всё равно учитывает).
    """
    orders = list(orders)
    now = now or datetime.now(timezone.utc)
    today = now.astimezone(timezone.utc).date()

    def counts_as_revenue(order: Order) -> bool:
        return include_cancelled or order.status != OrderStatusEnum.cancelled

    revenue_orders = [o for o in orders if counts_as_revenue(o)]

    total_orders = len(orders)
    total_revenue = sum((o.total_amount for o in revenue_orders), Decimal(0))
    average_order_value = (
        (total_revenue / len(revenue_orders)).quantize(CENTS) if revenue_orders else Decimal(0)
    )

    by_status = {status: 0 for status in OrderStatusEnum}
    for order in orders:
        by_status[order.status] += 1

    delivered = by_status[OrderStatusEnum.delivered]
    completion_rate = round(delivered / total_orders * 100, 2) if total_orders else 0.0

    unique_customers = len({o.customer.phone for o in orders})

    orders_today = 0
    revenue_today = Decimal(0)
    days: Dict = {}
    for order in orders:
        day = order.created_at.astimezone(timezone.utc).date()
        row = days.setdefault(day, {"count_orders": 0, "revenue": Decimal(0)})
        row["count_orders"] += 1
        if day == today:
            orders_today += 1
        if counts_as_revenue(order):
            row["revenue"] += order.total_amount
            if day == today:
                revenue_today += order.total_amount

    return OrderStatistics(
        total_orders=total_orders,
        total_revenue=total_revenue,
        average_order_value=average_order_value,
        completion_rate=completion_rate,
        unique_customers=unique_customers,
        orders_by_status=by_status,
        top_items=top_items(revenue_orders, top_items_limit),
        orders_today=orders_today,
        revenue_today=revenue_today,
        revenue_by_day=[
            DailyRevenue(day=day, count_orders=row["count_orders"], revenue=row["revenue"])
            for day, row in sorted(days.items())
        ],
    )


def period_start(day: date, period: StatsPeriodEnum) -> date:
    """Начало периода: сам день, понедельник недели или первое число месяца."""
    if period == StatsPeriodEnum.week:
        return day - timedelta(days=day.weekday())
    if period == StatsPeriodEnum.month:
        return day.replace(day=1)
    return day


def revenue_by_period(
    orders: Iterable[Order],
    period: StatsPeriodEnum = StatsPeriodEnum.day,
    *,
    include_cancelled: bool = True,
) -> List[RevenuePeriod]:
    """
    Количество заказов, выручка и средний чек по дням, неделям или месяцам (UTC).
    Пустые периоды не выводятся.
    """
    grouped: Dict[date, Dict] = {}
    for order in orders:
        start = period_start(order.created_at.astimezone(timezone.utc).date(), period)
        row = grouped.setdefault(start, {"count_orders": 0, "revenue_orders": 0, "revenue": Decimal(0)})
        row["count_orders"] += 1
        if include_cancelled or order.status != OrderStatusEnum.cancelled:
            row["revenue_orders"] += 1
            row["revenue"] += order.total_amount

    return [
        RevenuePeriod(
            period=period,
            period_start=start,
            count_orders=row["count_orders"],
            revenue=row["revenue"],
            average_order_value=(
                (row["revenue"] / row["revenue_orders"]).quantize(CENTS)
                if row["revenue_orders"] else Decimal(0)
            ),
        )
        for start, row in sorted(grouped.items())
    ]

"""
Журнал заказов: создание, смена статусов, заметки, удаление и статистика.

Все изменения проходят через машину состояний (ALLOWED_TRANSITIONS),
сохраняются в OrderStore и рассылаются через NotificationBus.
"""
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, List, Mapping, Optional, Set, Union

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from menu_orders.errors import InvalidTransition, OrderNotFound, StorageFailure, ValidationError
from menu_orders.models.order import (
    MAX_ITEM_PRICE,
    MAX_ORDER_TOTAL,
    DeliveryMethodEnum,
    OrderStatusEnum,
    PaymentMethodEnum,
    can_transition,
)
from menu_orders.schemas.order import (
    Customer,
    Order,
    OrderItem,
    OrderNote,
    OrderStatistics,
    RevenuePeriod,
    StatsPeriodEnum,
    StatusChange,
)
from menu_orders.services.notifications import Handler, NotificationBus, OrderCreated, OrderUpdated
from menu_orders.services.statistics import compute_statistics, revenue_by_period
from menu_orders.store.base import OrderStore

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
ORDER_NUMBER_MAX_RETRIES = 20

ItemInput = Union[OrderItem, BaseModel, Mapping[str, Any]]
CustomerInput = Union[Customer, BaseModel, Mapping[str, Any]]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_dict(value) -> dict:
    if isinstance(value, BaseModel):
        return value.model_dump()
    return dict(value)


def _to_decimal(value) -> Decimal:
    if isinstance(value, float):
        # через str, чтобы 0.1 не превратилось в 0.1000000000000000055...
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"price must be a number, got {value!r}")


def _coerce_enum(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Unknown {label} '{value}'")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # время без зоны считаем UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text or None


def _coerce_customer(customer: CustomerInput) -> Customer:
    if isinstance(customer, Customer):
        return customer
    try:
        return Customer.model_validate(_as_dict(customer))
    except (SchemaValidationError, TypeError, ValueError) as e:
        raise ValidationError(f"Customer is invalid: {e}") from e


def _coerce_items(items: Iterable[ItemInput]) -> List[OrderItem]:
    result = []
    errors = []
    for index, raw in enumerate(items or [], start=1):
        if isinstance(raw, OrderItem):
            result.append(raw)
            continue
        try:
            data = _as_dict(raw)
            result.append(OrderItem(
                name=data.get("name") or "",
                price=_to_decimal(data.get("price")),
                quantity=data.get("quantity"),
            ))
        except (SchemaValidationError, TypeError, ValueError) as e:
            errors.append(f"Item {index}: {e}")
    if errors:
        raise ValidationError(errors)
    return result


def validate_order_data(
    restaurant_id: str,
    customer: Customer,
    items: List[OrderItem],
    delivery_method: DeliveryMethodEnum,
    delivery_address: Optional[str],
) -> List[str]:
    """
    Проверка данных нового заказа. Возвращает список ошибок (пустой, если всё в порядке).
    """
    errors = []

    if not restaurant_id or not restaurant_id.strip():
        errors.append("Restaurant is required")
    if not customer.name.strip():
        errors.append("Customer name is required")
    if not customer.phone.strip():
        errors.append("Customer phone is required")

    if not items:
        errors.append("Order must contain at least one item")

    for index, item in enumerate(items, start=1):
        if not item.name.strip():
            errors.append(f"Item {index}: name is required")
        if item.quantity < 1:
            errors.append(f"Item {index}: quantity must be at least 1")
        if not item.price.is_finite():
            errors.append(f"Item {index}: price must be a number")
        elif item.price < 0:
            errors.append(f"Item {index}: price must not be negative")
        elif item.price > MAX_ITEM_PRICE:
            errors.append(f"Item {index}: price must not exceed {MAX_ITEM_PRICE}")
        elif item.price != item.price.quantize(CENTS):
            errors.append(f"Item {index}: price must have at most 2 decimal places")

    if delivery_method == DeliveryMethodEnum.delivery and not _clean(delivery_address):
        errors.append("Delivery address is required for delivery orders")

    if not errors and sum((item.subtotal for item in items), Decimal(0)) > MAX_ORDER_TOTAL:
        errors.append(f"Order total must not exceed {MAX_ORDER_TOTAL}")

    return errors


class OrderLedger:
    def __init__(
        self,
        store: OrderStore,
        bus: Optional[NotificationBus] = None,
        clock: Callable[[], datetime] = utcnow,
        *,
        top_items_limit: int = 5,
        include_cancelled: bool = True,
    ):
        self.store = store
        self.bus = bus or NotificationBus()
        self.clock = clock
        self.top_items_limit = top_items_limit
        self.include_cancelled = include_cancelled
        # номера, выданные за текущий день; сбрасываются со сменой даты
        self._numbers_day = ""
        self._issued_numbers: Set[str] = set()

    def _now(self, not_before: Optional[datetime] = None) -> datetime:
        # updated_at не должен уменьшаться, даже если часы ушли назад
        now = self.clock()
        if not_before is not None and now < not_before:
            return not_before
        return now

    def _new_order_number(self, now: datetime, taken: Set[str]) -> str:
        day = f"{now:%y%m%d}"
        if day != self._numbers_day:
            self._numbers_day = day
            self._issued_numbers = set()

        for _ in range(ORDER_NUMBER_MAX_RETRIES):
            number = f"ORD-{day}-{secrets.randbelow(1_000_000):06d}"
            if number not in taken and number not in self._issued_numbers:
                self._issued_numbers.add(number)
                return number
        raise StorageFailure("Cannot allocate a unique order number")

    # --- чтение ---

    async def list_orders(self, restaurant_id: str) -> List[Order]:
        return await self.store.list_orders(restaurant_id)

    async def get_order(self, order_id: str) -> Order:
        order = await self.store.get_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    async def search_orders(
        self,
        restaurant_id: str,
        query: Optional[str] = None,
        status: Optional[Union[OrderStatusEnum, str]] = None,
        *,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[Order]:
        """
        Поиск по номеру заказа, имени и телефону клиента.
        Фильтры по статусу и по дате создания (границы включительно),
        пагинация через offset/limit. Порядок: по времени создания заказа.
        """
        if offset < 0 or (limit is not None and limit < 1):
            raise ValidationError("offset must be >= 0 and limit must be >= 1")
        date_from, date_to = _as_utc(date_from), _as_utc(date_to)
        if date_from and date_to and date_from > date_to:
            raise ValidationError("date_from must not be later than date_to")

        orders = await self.store.list_orders(restaurant_id)

        if status:
            status = _coerce_enum(OrderStatusEnum, status, "order status")
            orders = [o for o in orders if o.status == status]
        if date_from:
            orders = [o for o in orders if o.created_at >= date_from]
        if date_to:
            orders = [o for o in orders if o.created_at <= date_to]

        query = _clean(query)
        if query:
            needle = query.lower()
            orders = [
                o for o in orders
                if needle in o.order_number.lower()
                or needle in o.customer.name.lower()
                or query in o.customer.phone
            ]

        end = offset + limit if limit is not None else None
        return orders[offset:end]

    async def list_customer_orders(self, restaurant_id: str, phone: str) -> List[Order]:
        """Заказы клиента в ресторане. Клиент определяется по телефону."""
        phone = _clean(phone)
        if not phone:
            raise ValidationError("Customer phone is required")
        orders = await self.store.list_orders(restaurant_id)
        return [o for o in orders if o.customer.phone.strip() == phone]

    async def get_statistics(self, restaurant_id: str) -> OrderStatistics:
        orders = await self.store.list_orders(restaurant_id)
        return compute_statistics(
            orders,
            top_items_limit=self.top_items_limit,
            include_cancelled=self.include_cancelled,
            now=self.clock(),
        )

    async def get_revenue(
        self,
        restaurant_id: str,
        period: Union[StatsPeriodEnum, str] = StatsPeriodEnum.day,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> List[RevenuePeriod]:
        """
        Выручка по дням, неделям или месяцам за выбранный интервал дат.
        """
        period = _coerce_enum(StatsPeriodEnum, period, "statistics period")
        orders = await self.search_orders(restaurant_id, date_from=date_from, date_to=date_to)
        return revenue_by_period(orders, period, include_cancelled=self.include_cancelled)

    # --- создание ---

    async def create_order(
        self,
        restaurant_id: str,
        customer: CustomerInput,
        items: Iterable[ItemInput],
        payment_method: Union[PaymentMethodEnum, str] = PaymentMethodEnum.cash,
        delivery_method: Union[DeliveryMethodEnum, str] = DeliveryMethodEnum.pickup,
        *,
        table_number: Optional[str] = None,
        delivery_address: Optional[str] = None,
        special_instructions: Optional[str] = None,
    ) -> Order:
        customer = _coerce_customer(customer)
        items = _coerce_items(items)
        payment_method = _coerce_enum(PaymentMethodEnum, payment_method, "payment method")
        delivery_method = _coerce_enum(DeliveryMethodEnum, delivery_method, "delivery method")

        errors = validate_order_data(restaurant_id, customer, items, delivery_method, delivery_address)
        if errors:
            raise ValidationError(errors)

        now = self.clock()
        prefix = f"ORD-{now:%y%m%d}-"
        taken = {
            o.order_number for o in await self.store.list_orders(restaurant_id)
            if o.order_number.startswith(prefix)
        }

        order = Order(
            id=uuid.uuid4().hex,
            order_number=self._new_order_number(now, taken),
            restaurant_id=restaurant_id,
            customer=customer,
            items=tuple(items),
            total_amount=sum((item.subtotal for item in items), Decimal(0)),
            status=OrderStatusEnum.pending,
            payment_method=payment_method,
            delivery_method=delivery_method,
            table_number=_clean(table_number),
            delivery_address=_clean(delivery_address),
            special_instructions=_clean(special_instructions),
            status_history=(StatusChange(status=OrderStatusEnum.pending, timestamp=now),),
            created_at=now,
            updated_at=now,
        )

        await self.store.save_order(order)
        logger.info(
            "Order %s (%s) created for restaurant %s, total %s",
            order.order_number, order.id, restaurant_id, order.total_amount,
        )
        self.bus.publish(OrderCreated(order))
        return order

    # --- статусы ---

    async def update_status(
        self,
        order_id: str,
        new_status: Union[OrderStatusEnum, str],
        note: Optional[str] = None,
    ) -> Order:
        return await self._transition(order_id, new_status, note)

    async def _transition(
        self,
        order_id: str,
        new_status: Union[OrderStatusEnum, str],
        note: Optional[str] = None,
        estimated_minutes: Optional[int] = None,
    ) -> Order:
        new_status = _coerce_enum(OrderStatusEnum, new_status, "order status")
        note = _clean(note)

        def mutate(order: Order) -> Order:
            if not can_transition(order.status, new_status):
                raise InvalidTransition(order.status.value, new_status.value)

            now = self._now(not_before=order.updated_at)
            changes = {
                "status": new_status,
                "status_history": order.status_history + (
                    StatusChange(status=new_status, timestamp=now, note=note),
                ),
                "updated_at": now,
            }
            if estimated_minutes is not None:
                changes["estimated_ready_at"] = now + timedelta(minutes=estimated_minutes)
            return order.model_copy(update=changes)

        updated = await self.store.update_order(order_id, mutate)
        if updated is None:
            raise OrderNotFound(order_id)

        logger.info("Order %s moved to %s", order_id, new_status.value)
        self.bus.publish(OrderUpdated(updated))
        return updated

    async def accept_order(self, order_id: str, estimated_minutes: Optional[int] = None) -> Order:
        if estimated_minutes is not None and estimated_minutes < 1:
            raise ValidationError("Estimated time must be at least 1 minute")
        note = f"Estimated time: {estimated_minutes} min" if estimated_minutes else None
        return await self._transition(order_id, OrderStatusEnum.accepted, note, estimated_minutes)

    async def start_preparing(self, order_id: str) -> Order:
        return await self._transition(order_id, OrderStatusEnum.preparing)

    async def mark_ready(self, order_id: str) -> Order:
        return await self._transition(order_id, OrderStatusEnum.ready)

    async def mark_delivered(self, order_id: str) -> Order:
        return await self._transition(order_id, OrderStatusEnum.delivered)

    async def cancel_order(self, order_id: str, reason: str) -> Order:
        reason = _clean(reason)
        if not reason:
            raise ValidationError("Cancellation reason is required")
        return await self._transition(order_id, OrderStatusEnum.cancelled, reason)

    # --- заметки и удаление ---

    async def add_note(self, order_id: str, note: str) -> Order:
        """
        Добавляет заметку без смены статуса. Разрешено в любом статусе,
        в том числе в завершённых (для аудита).
        """
        text = _clean(note)
        if not text:
            raise ValidationError("Note must not be empty")

        def mutate(order: Order) -> Order:
            now = self._now(not_before=order.updated_at)
            return order.model_copy(update={
                "notes": order.notes + (OrderNote(text=text, created_at=now),),
                "updated_at": now,
            })

        updated = await self.store.update_order(order_id, mutate)
        if updated is None:
            raise OrderNotFound(order_id)

        self.bus.publish(OrderUpdated(updated))
        return updated

    async def delete_order(self, order_id: str) -> bool:
        """
        Административное удаление без возможности восстановления.
        Удаление несуществующего заказа не считается ошибкой.
        """
        deleted = await self.store.delete_order(order_id)
        if deleted:
            logger.info("Order %s deleted", order_id)
        else:
            logger.debug("Order %s not found, nothing to delete", order_id)
        return deleted

    # --- подписки ---

    def subscribe(
        self,
        handler: Handler,
        event_type: Optional[type] = None,
        restaurant_id: Optional[str] = None,
    ) -> Callable[[], None]:
        return self.bus.subscribe(handler, event_type=event_type, restaurant_id=restaurant_id)

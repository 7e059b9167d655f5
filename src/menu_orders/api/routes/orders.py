from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response

from menu_orders.api.deps import get_ledger
from menu_orders.models.order import OrderStatusEnum
from menu_orders.schemas.order import (
    Order,
    OrderAccept,
    OrderCancel,
    OrderCreate,
    OrderNoteCreate,
    OrderStatistics,
    OrderStatusUpdate,
    RevenuePeriod,
    StatsPeriodEnum,
)
from menu_orders.services.ledger import OrderLedger


router = APIRouter(prefix="/orders", tags=["orders"])
restaurant_router = APIRouter(prefix="/restaurants/{restaurant_id}", tags=["orders"])


@restaurant_router.get("/orders", response_model=List[Order])
async def list_orders(
    restaurant_id: str = Path(..., description="ID ресторана"),
    status: Optional[OrderStatusEnum] = Query(None, description="Фильтр по статусу"),
    q: Optional[str] = Query(None, description="Поиск по номеру заказа, имени или телефону"),
    date_from: Optional[datetime] = Query(None, description="Начальная дата"),
    date_to: Optional[datetime] = Query(None, description="Конечная дата"),
    limit: Optional[int] = Query(None, ge=1, description="Количество записей для вывода"),
    offset: int = Query(0, ge=0, description="Смещение для пагинации"),
    ledger: OrderLedger = Depends(get_ledger),
):
    """
    Возвращает заказы ресторана в порядке создания.
    Поддерживает фильтрацию по статусу и диапазону дат, поиск и пагинацию.
    """
    return await ledger.search_orders(
        restaurant_id,
        query=q,
        status=status,
        date_from=date_from,
        date_to=date_to,
        offset=offset,
        limit=limit,
    )


@restaurant_router.get("/customers/{phone}/orders", response_model=List[Order])
async def list_customer_orders(
    restaurant_id: str = Path(..., description="ID ресторана"),
    phone: str = Path(..., description="Телефон клиента"),
    ledger: OrderLedger = Depends(get_ledger),
):
    return await ledger.list_customer_orders(restaurant_id, phone)


@restaurant_router.post("/orders", response_model=Order, status_code=201)
async def create_order_endpoint(
    order_in: OrderCreate,
    restaurant_id: str = Path(..., description="ID ресторана"),
    ledger: OrderLedger = Depends(get_ledger),
):
    """
    Создаёт заказ в статусе pending. Сумма считается по позициям.
    """
    return await ledger.create_order(
        restaurant_id,
        order_in.customer,
        order_in.items,
        order_in.payment_method,
        order_in.delivery_method,
        table_number=order_in.table_number,
        delivery_address=order_in.delivery_address,
        special_instructions=order_in.special_instructions,
    )


@restaurant_router.get("/order-stats", response_model=OrderStatistics)
async def order_stats(
    restaurant_id: str = Path(..., description="ID ресторана"),
    ledger: OrderLedger = Depends(get_ledger),
):
    return await ledger.get_statistics(restaurant_id)


@restaurant_router.get("/order-stats/revenue", response_model=List[RevenuePeriod])
async def order_revenue(
    restaurant_id: str = Path(..., description="ID ресторана"),
    period: StatsPeriodEnum = Query(StatsPeriodEnum.day, description="Группировка: day, week или month"),
    date_from: Optional[datetime] = Query(None, description="Начальная дата"),
    date_to: Optional[datetime] = Query(None, description="Конечная дата"),
    ledger: OrderLedger = Depends(get_ledger),
):
    """
    Количество заказов, выручка и средний чек по периодам.
    """
    return await ledger.get_revenue(restaurant_id, period, date_from, date_to)


@router.get("/{order_id}", response_model=Order)
async def get_order(
    order_id: str = Path(..., description="ID заказа"),
    ledger: OrderLedger = Depends(get_ledger),
):
    return await ledger.get_order(order_id)


@router.patch("/{order_id}/status", response_model=Order)
async def update_status_endpoint(
    order_id: str,
    body: OrderStatusUpdate,
    ledger: OrderLedger = Depends(get_ledger),
):
    """
    Смена статуса по машине состояний:
    pending → accepted → preparing → ready → delivered,
    отмена только из pending или accepted.
    """
    return await ledger.update_status(order_id, body.status, body.note)


@router.patch("/{order_id}/accept", response_model=Order)
async def accept_order_endpoint(
    order_id: str,
    body: Optional[OrderAccept] = None,
    ledger: OrderLedger = Depends(get_ledger),
):
    estimated_minutes = body.estimated_minutes if body else None
    return await ledger.accept_order(order_id, estimated_minutes)


@router.patch("/{order_id}/cancel", response_model=Order)
async def cancel_order_endpoint(
    order_id: str,
    body: OrderCancel,
    ledger: OrderLedger = Depends(get_ledger),
):
    return await ledger.cancel_order(order_id, body.reason)


@router.post("/{order_id}/notes", response_model=Order)
async def add_note_endpoint(
    order_id: str,
    body: OrderNoteCreate,
    ledger: OrderLedger = Depends(get_ledger),
):
    return await ledger.add_note(order_id, body.note)


@router.delete("/{order_id}", status_code=204)
async def delete_order_endpoint(
    order_id: str,
    ledger: OrderLedger = Depends(get_ledger),
):
    """
    Удаляет заказ. Отсутствие заказа не считается ошибкой.
    """
    await ledger.delete_order(order_id)
    return Response(status_code=204)

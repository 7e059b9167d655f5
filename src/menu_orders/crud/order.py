from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from menu_orders import models
from menu_orders.models import OrderStatusEnum
from menu_orders.schemas.order import Order


def _with_children(stmt):
    return stmt.options(
        selectinload(models.Order.items),
        selectinload(models.Order.status_history),
        selectinload(models.Order.notes),
    )


async def get_orders(
    db: AsyncSession,
    restaurant_id: str,
    status: Optional[OrderStatusEnum] = None,
) -> List[models.Order]:
    """
    Возвращает заказы ресторана в порядке вставки.
    Подгружаем items, status_history и notes.
    """
    stmt = _with_children(
        select(models.Order)
        .where(models.Order.restaurant_id == restaurant_id)
        .order_by(models.Order.pk)
    )
    if status:
        stmt = stmt.where(models.Order.status == status)

    result = await db.execute(stmt)
    return result.scalars().unique().all()


async def get_order_by_id(db: AsyncSession, order_id: str) -> Optional[models.Order]:
    stmt = _with_children(select(models.Order).where(models.Order.id == order_id))
    result = await db.execute(stmt)
    return result.scalars().unique().first()


async def order_exists(db: AsyncSession, order_id: str) -> bool:
    result = await db.execute(select(models.Order.pk).where(models.Order.id == order_id))
    return result.first() is not None


async def create_order(db: AsyncSession, order: Order) -> models.Order:
    """
    Создаём заказ вместе с позициями, историей статусов и заметками одной транзакцией.
    """
    row = models.Order(
        id=order.id,
        order_number=order.order_number,
        restaurant_id=order.restaurant_id,
        customer_name=order.customer.name,
        customer_phone=order.customer.phone,
        customer_email=order.customer.email,
        status=order.status,
        payment_method=order.payment_method,
        delivery_method=order.delivery_method,
        table_number=order.table_number,
        delivery_address=order.delivery_address,
        special_instructions=order.special_instructions,
        total_amount=order.total_amount,
        estimated_ready_at=order.estimated_ready_at,
        created_at=order.created_at,
        updated_at=order.updated_at,
        version=1,
    )
    row.items = [
        models.OrderItem(position=i, name=item.name, price=item.price, quantity=item.quantity)
        for i, item in enumerate(order.items)
    ]
    row.status_history = [
        models.OrderStatusHistory(position=i, status=h.status, timestamp=h.timestamp, note=h.note)
        for i, h in enumerate(order.status_history)
    ]
    row.notes = [
        models.OrderNote(position=i, text=n.text, created_at=n.created_at)
        for i, n in enumerate(order.notes)
    ]
    db.add(row)
    await db.commit()
    return row


async def update_order(db: AsyncSession, row: models.Order, before: Order, after: Order) -> bool:
    """
    Условная запись: обновляем строку, только если её версия не изменилась
    с момента чтения. Возвращает False, если заказ успели изменить.
    История статусов и заметки только дописываются.
    """
    result = await db.execute(
        update(models.Order)
        .where(models.Order.id == row.id, models.Order.version == row.version)
        .values(
            status=after.status,
            estimated_ready_at=after.estimated_ready_at,
            updated_at=after.updated_at,
            version=row.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        return False

    for i in range(len(before.status_history), len(after.status_history)):
        h = after.status_history[i]
        db.add(models.OrderStatusHistory(
            order_pk=row.pk, position=i, status=h.status, timestamp=h.timestamp, note=h.note
        ))
    for i in range(len(before.notes), len(after.notes)):
        n = after.notes[i]
        db.add(models.OrderNote(order_pk=row.pk, position=i, text=n.text, created_at=n.created_at))

    await db.commit()
    return True


async def delete_order(db: AsyncSession, order_id: str) -> bool:
    """
    Удаляет заказ. Возвращает False, если заказа не было.
    """
    row = await get_order_by_id(db, order_id)
    if not row:
        return False
    await db.delete(row)
    await db.commit()
    return True

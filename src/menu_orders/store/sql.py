import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from menu_orders import models
from menu_orders.crud import order as crud
from menu_orders.errors import ConcurrentUpdate, OrderAlreadyExists, StorageFailure
from menu_orders.schemas.order import Order
from menu_orders.store.base import OrderMutator, OrderStore, apply_mutator

logger = logging.getLogger(__name__)

# Строка, которую не удаётся разобрать: неизвестное значение enum (LookupError)
# или данные, не проходящие валидацию модели (ValueError)
DECODE_ERRORS = (LookupError, ValueError, TypeError)


class CorruptRecord(StorageFailure):
    pass


class SqlOrderStore(OrderStore):
    """
    Серверное хранилище: каждая запись обновляется отдельно,
    условной записью по версии (compare-and-swap).
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], max_attempts: int = 3):
        self.session_factory = session_factory
        self.max_attempts = max_attempts

    async def _load(self, db: AsyncSession, order_id: str) -> Tuple[Optional[models.Order], Optional[Order]]:
        try:
            row = await crud.get_order_by_id(db, order_id)
            return row, (Order.from_orm_row(row) if row else None)
        except DECODE_ERRORS as e:
            raise CorruptRecord(f"Order {order_id} cannot be decoded: {e}") from e

    async def list_orders(self, restaurant_id: str) -> List[Order]:
        try:
            async with self.session_factory() as db:
                rows = await crud.get_orders(db, restaurant_id)
                return [Order.from_orm_row(row) for row in rows]
        except (SQLAlchemyError, OSError, *DECODE_ERRORS) as e:
            logger.error("Cannot load orders for restaurant %s: %s", restaurant_id, e, exc_info=True)
            return []

    async def get_order(self, order_id: str) -> Optional[Order]:
        try:
            async with self.session_factory() as db:
                _, order = await self._load(db, order_id)
                return order
        except (SQLAlchemyError, OSError) as e:
            raise StorageFailure(f"Cannot load order {order_id}: {e}") from e

    async def save_order(self, order: Order) -> None:
        try:
            async with self.session_factory() as db:
                if await crud.order_exists(db, order.id):
                    raise OrderAlreadyExists(order.id)
                try:
                    await crud.create_order(db, order)
                except IntegrityError as e:
                    await db.rollback()
                    if await crud.order_exists(db, order.id):
                        raise OrderAlreadyExists(order.id) from e
                    raise StorageFailure(f"Cannot save order {order.id}: {e}") from e
        except (SQLAlchemyError, OSError) as e:
            raise StorageFailure(f"Cannot save order {order.id}: {e}") from e

    async def update_order(self, order_id: str, mutator: OrderMutator) -> Optional[Order]:
        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self.session_factory() as db:
                    row, before = await self._load(db, order_id)
                    if row is None:
                        return None

                    # при повторе мутатор снова проверяет переход на свежих данных
                    after = apply_mutator(mutator, before)
                    if await crud.update_order(db, row, before, after):
                        return after
            except (SQLAlchemyError, OSError) as e:
                raise StorageFailure(f"Cannot update order {order_id}: {e}") from e

            logger.warning(
                "Order %s changed concurrently, retrying (%s/%s)", order_id, attempt, self.max_attempts
            )

        raise ConcurrentUpdate(order_id, self.max_attempts)

    async def delete_order(self, order_id: str) -> bool:
        try:
            async with self.session_factory() as db:
                return await crud.delete_order(db, order_id)
        except DECODE_ERRORS as e:
            raise CorruptRecord(f"Order {order_id} cannot be decoded: {e}") from e
        except (SQLAlchemyError, OSError) as e:
            raise StorageFailure(f"Cannot delete order {order_id}: {e}") from e

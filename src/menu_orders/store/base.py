from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from menu_orders.errors import ValidationError
from menu_orders.schemas.order import Order

# Чистая функция: получает текущий заказ, возвращает изменённую копию
OrderMutator = Callable[[Order], Order]

# Поля, которые фиксируются при создании заказа
IMMUTABLE_FIELDS = (
    "id",
    "order_number",
    "restaurant_id",
    "customer",
    "items",
    "total_amount",
    "payment_method",
    "delivery_method",
    "table_number",
    "delivery_address",
    "special_instructions",
    "created_at",
)


def apply_mutator(mutator: OrderMutator, order: Order) -> Order:
    """
    Применяет мутатор и проверяет результат: неизменяемые поля те же,
    история статусов и заметки только дописываются, updated_at не уменьшается.
    """
    updated = mutator(order)

    errors = [
        f"Field '{name}' cannot be changed"
        for name in IMMUTABLE_FIELDS
        if getattr(updated, name) != getattr(order, name)
    ]
    if updated.status_history[:len(order.status_history)] != order.status_history:
        errors.append("Status history is append-only")
    if updated.notes[:len(order.notes)] != order.notes:
        errors.append("Notes are append-only")
    if updated.updated_at < order.updated_at:
        errors.append("updated_at must not decrease")

    if errors:
        raise ValidationError(errors)
    return updated


class OrderStore(ABC):
    """
    Хранилище заказов с разбиением по ресторанам.
    Чтение списка никогда не падает, ошибки записи пробрасываются.
    """

    @abstractmethod
    async def list_orders(self, restaurant_id: str) -> List[Order]:
        pass

    @abstractmethod
    async def get_order(self, order_id: str) -> Optional[Order]:
        """Возвращает заказ или None. Недоступное хранилище даёт StorageFailure."""

    @abstractmethod
    async def save_order(self, order: Order) -> None:
        pass

    @abstractmethod
    async def update_order(self, order_id: str, mutator: OrderMutator) -> Optional[Order]:
        pass

    @abstractmethod
    async def delete_order(self, order_id: str) -> bool:
        pass

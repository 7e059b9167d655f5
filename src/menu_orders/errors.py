"""
Ошибки журнала заказов.
Валидация и переходы статусов сообщаются вызывающему сразу,
ошибки хранилища при записи всегда пробрасываются.
"""
from typing import Iterable


class OrderError(Exception):
    """Базовая ошибка для операций с заказами."""


class ValidationError(OrderError):
    """Некорректные входные данные (пустые позиции, пустая причина и т.д.)."""

    def __init__(self, errors: Iterable[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class InvalidTransition(OrderError):
    """Запрошенный переход статуса не разрешён машиной состояний."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot change order status from '{current}' to '{requested}'"
        )


class OrderNotFound(OrderError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order with id={order_id} not found")


class OrderAlreadyExists(OrderError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order with id={order_id} already exists")


class StorageFailure(OrderError):
    """Хранилище недоступно на чтение или запись."""


class ConcurrentUpdate(StorageFailure):
    """Запись заказа проиграла гонку версий и повторы исчерпаны."""

    def __init__(self, order_id: str, attempts: int):
        self.order_id = order_id
        self.attempts = attempts
        super().__init__(
            f"Order with id={order_id} was modified concurrently ({attempts} attempts)"
        )

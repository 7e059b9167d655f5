from .order import (
    Order,
    OrderStatusEnum,
    PaymentMethodEnum,
    DeliveryMethodEnum,
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    STATUS_LABELS,
    can_transition,
)
from .order_item import OrderItem
from .order_event import OrderStatusHistory, OrderNote

__all__ = [
    "Order",
    "OrderStatusEnum",
    "PaymentMethodEnum",
    "DeliveryMethodEnum",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "STATUS_LABELS",
    "can_transition",
    "OrderItem",
    "OrderStatusHistory",
    "OrderNote",
]

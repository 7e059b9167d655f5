from .ledger import OrderLedger
from .notifications import NotificationBus, OrderCreated, OrderUpdated

__all__ = ["OrderLedger", "NotificationBus", "OrderCreated", "OrderUpdated"]

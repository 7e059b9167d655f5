from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from menu_orders.models.order import DeliveryMethodEnum, OrderStatusEnum, PaymentMethodEnum
from menu_orders.schemas.order import Customer, Order, OrderItem, StatusChange
from menu_orders.services.ledger import OrderLedger
from menu_orders.services.notifications import NotificationBus
from menu_orders.store import CollectionOrderStore, MemoryKeyValueStore

NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)
RESTAURANT = "rest-1"


class FixedClock:
    """Часы для тестов: время двигается только явно."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


def make_customer(name="Anna", phone="+79990000001", email=None):
    return {"name": name, "phone": phone, "email": email}


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv):
    return CollectionOrderStore(kv)


@pytest.fixture
def bus():
    return NotificationBus()


@pytest.fixture
def ledger(store, bus, clock):
    return OrderLedger(store, bus, clock)


@pytest.fixture
def events(bus):
    received = []
    bus.subscribe(received.append)
    return received


def make_order(n, items, status=OrderStatusEnum.pending, phone=None, created_at=NOW,
               restaurant_id=RESTAURANT) -> Order:
    """Готовый заказ в обход журнала: items: список (name, price, quantity)."""
    items = tuple(OrderItem(name=name, price=Decimal(price), quantity=qty) for name, price, qty in items)
    return Order(
        id=f"order-{n}",
        order_number=f"ORD-250615-{n:06d}",
        restaurant_id=restaurant_id,
        customer=Customer(name=f"Guest {n}", phone=phone or f"+7{n:03d}"),
        items=items,
        total_amount=sum((i.subtotal for i in items), Decimal(0)),
        status=status,
        payment_method=PaymentMethodEnum.cash,
        delivery_method=DeliveryMethodEnum.pickup,
        status_history=(StatusChange(status=OrderStatusEnum.pending, timestamp=created_at),),
        created_at=created_at,
        updated_at=created_at,
    )

import enum
from decimal import Decimal

from sqlalchemy import Column, Integer, String, Text, Numeric, Enum as SAEnum, UniqueConstraint
from sqlalchemy.orm import relationship

from ..db.base import Base
from ..db.types import UTCDateTime


class OrderStatusEnum(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    preparing = "preparing"
    ready = "ready"
    delivered = "delivered"
    cancelled = "cancelled"


class PaymentMethodEnum(str, enum.Enum):
    cash = "cash"
    card = "card"
    online = "online"


class DeliveryMethodEnum(str, enum.Enum):
    pickup = "pickup"
    delivery = "delivery"
    dine_in = "dine-in"


# Отмена возможна только до начала работы кухни
ALLOWED_TRANSITIONS: dict[OrderStatusEnum, frozenset[OrderStatusEnum]] = {
    OrderStatusEnum.pending: frozenset({OrderStatusEnum.accepted, OrderStatusEnum.cancelled}),
    OrderStatusEnum.accepted: frozenset({OrderStatusEnum.preparing, OrderStatusEnum.cancelled}),
    OrderStatusEnum.preparing: frozenset({OrderStatusEnum.ready}),
    OrderStatusEnum.ready: frozenset({OrderStatusEnum.delivered}),
    OrderStatusEnum.delivered: frozenset(),
    OrderStatusEnum.cancelled: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, nxt in ALLOWED_TRANSITIONS.items() if not nxt)

# Пределы колонок Numeric(10, 2) и Numeric(12, 2). До 12 значащих цифр
# сумма без потерь переживает JSON-число (float)
MAX_ITEM_PRICE = Decimal("99999999.99")
MAX_ORDER_TOTAL = Decimal("9999999999.99")

STATUS_LABELS = {
    OrderStatusEnum.pending: "Pending",
    OrderStatusEnum.accepted: "Accepted",
    OrderStatusEnum.preparing: "Preparing",
    OrderStatusEnum.ready: "Ready",
    OrderStatusEnum.delivered: "Delivered",
    OrderStatusEnum.cancelled: "Cancelled",
}


def can_transition(current: OrderStatusEnum, new: OrderStatusEnum) -> bool:
    return new in ALLOWED_TRANSITIONS[current]


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "order_number", name="uq_orders_restaurant_order_number"),
    )

    # pk задаёт порядок вставки, id: внешний идентификатор заказа
    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), nullable=False, unique=True, index=True)
    order_number = Column(String(32), nullable=False)
    restaurant_id = Column(String(64), nullable=False, index=True)

    # снимок клиента на момент заказа
    customer_name = Column(String(128), nullable=False)
    customer_phone = Column(String(32), nullable=False)
    customer_email = Column(String(255), nullable=True)

    status = Column(
        SAEnum(OrderStatusEnum, name="order_status", values_callable=_enum_values),
        nullable=False,
        default=OrderStatusEnum.pending,
    )
    payment_method = Column(
        SAEnum(PaymentMethodEnum, name="payment_method", values_callable=_enum_values),
        nullable=False,
    )
    delivery_method = Column(
        SAEnum(DeliveryMethodEnum, name="delivery_method", values_callable=_enum_values),
        nullable=False,
    )
    table_number = Column(String(16), nullable=True)
    delivery_address = Column(String(512), nullable=True)
    special_instructions = Column(Text, nullable=True)

    total_amount = Column(Numeric(12, 2), nullable=False)  # фиксируется при создании
    estimated_ready_at = Column(UTCDateTime(), nullable=True)
    created_at = Column(UTCDateTime(), nullable=False)
    updated_at = Column(UTCDateTime(), nullable=False)

    # версия для условной записи (compare-and-swap)
    version = Column(Integer, nullable=False, default=1)

    # связи
    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.position"
    )
    status_history = relationship(
        "OrderStatusHistory", back_populates="order", cascade="all, delete-orphan",
        order_by="OrderStatusHistory.position",
    )
    notes = relationship(
        "OrderNote", back_populates="order", cascade="all, delete-orphan", order_by="OrderNote.position"
    )

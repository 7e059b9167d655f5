import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, PlainSerializer, conint
from typing_extensions import Annotated

from menu_orders.models.order import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    DeliveryMethodEnum,
    OrderStatusEnum,
    PaymentMethodEnum,
)

# Деньги храним в Decimal, в JSON отдаём числом
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class Customer(BaseModel):
    name: str
    phone: str
    email: Optional[str] = None

    class Config:
        frozen = True


class OrderItem(BaseModel):
    name: str
    price: Money
    quantity: int

    class Config:
        frozen = True

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class StatusChange(BaseModel):
    status: OrderStatusEnum
    timestamp: datetime
    note: Optional[str] = None

    class Config:
        frozen = True


class OrderNote(BaseModel):
    text: str
    created_at: datetime

    class Config:
        frozen = True


class Order(BaseModel):
    """
    Заказ клиента в одном ресторане.
    Позиции и сумма фиксируются при создании, дальше меняются
    только статус, история статусов и заметки.
    """

    id: str
    order_number: str
    restaurant_id: str
    customer: Customer
    items: Tuple[OrderItem, ...]
    total_amount: Money
    status: OrderStatusEnum
    payment_method: PaymentMethodEnum
    delivery_method: DeliveryMethodEnum
    table_number: Optional[str] = None
    delivery_address: Optional[str] = None
    special_instructions: Optional[str] = None
    estimated_ready_at: Optional[datetime] = None
    status_history: Tuple[StatusChange, ...] = ()
    notes: Tuple[OrderNote, ...] = ()
    created_at: datetime
    updated_at: datetime

    class Config:
        frozen = True

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def count_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @classmethod
    def from_orm_row(cls, row):
        """
        Собирает заказ из строки orders с подгруженными items, status_history и notes.
        """
        return cls(
            id=row.id,
            order_number=row.order_number,
            restaurant_id=row.restaurant_id,
            customer=Customer(
                name=row.customer_name,
                phone=row.customer_phone,
                email=row.customer_email,
            ),
            items=tuple(
                OrderItem(name=i.name, price=i.price, quantity=i.quantity) for i in row.items
            ),
            total_amount=row.total_amount,
            status=row.status,
            payment_method=row.payment_method,
            delivery_method=row.delivery_method,
            table_number=row.table_number,
            delivery_address=row.delivery_address,
            special_instructions=row.special_instructions,
            estimated_ready_at=row.estimated_ready_at,
            status_history=tuple(
                StatusChange(status=h.status, timestamp=h.timestamp, note=h.note)
                for h in row.status_history
            ),
            notes=tuple(OrderNote(text=n.text, created_at=n.created_at) for n in row.notes),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class OrderItemCreate(BaseModel):
    name: str
    price: Decimal
    quantity: int


class OrderCreate(BaseModel):
    customer: Customer
    items: List[OrderItemCreate]
    payment_method: PaymentMethodEnum = PaymentMethodEnum.cash
    delivery_method: DeliveryMethodEnum = DeliveryMethodEnum.pickup
    table_number: Optional[str] = None
    delivery_address: Optional[str] = None
    special_instructions: Optional[str] = None

    class Config:
        extra = "forbid"


class OrderStatusUpdate(BaseModel):
    status: OrderStatusEnum
    note: Optional[str] = None

    class Config:
        extra = "forbid"


class OrderAccept(BaseModel):
    estimated_minutes: Optional[conint(ge=1)] = None


class OrderCancel(BaseModel):
    reason: str


class OrderNoteCreate(BaseModel):
    note: str


class StatusInfo(BaseModel):
    status: OrderStatusEnum
    label: str
    next: List[OrderStatusEnum]
    terminal: bool

    @classmethod
    def for_status(cls, status: OrderStatusEnum, label: str):
        return cls(
            status=status,
            label=label,
            next=sorted(ALLOWED_TRANSITIONS[status], key=list(OrderStatusEnum).index),
            terminal=status in TERMINAL_STATUSES,
        )


class StatsPeriodEnum(str, enum.Enum):
    day = "day"
    week = "week"
    month = "month"


class RevenuePeriod(BaseModel):
    period: StatsPeriodEnum
    period_start: date
    count_orders: int
    revenue: Money
    average_order_value: Money


class TopItem(BaseModel):
    name: str
    quantity: int
    revenue: Money


class DailyRevenue(BaseModel):
    day: date
    count_orders: int
    revenue: Money


class OrderStatistics(BaseModel):
    total_orders: int
    total_revenue: Money
    average_order_value: Money
    completion_rate: float
    unique_customers: int
    orders_by_status: Dict[OrderStatusEnum, int]
    top_items: List[TopItem]
    orders_today: int
    revenue_today: Money
    revenue_by_day: List[DailyRevenue]

from sqlalchemy import Column, Integer, Text, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship

from ..db.base import Base
from ..db.types import UTCDateTime
from .order import OrderStatusEnum, _enum_values


class OrderStatusHistory(Base):
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, index=True)
    order_pk = Column(Integer, ForeignKey("orders.pk", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    status = Column(
        SAEnum(OrderStatusEnum, name="order_status", values_callable=_enum_values),
        nullable=False,
    )
    timestamp = Column(UTCDateTime(), nullable=False)
    note = Column(Text, nullable=True)

    order = relationship("Order", back_populates="status_history")


class OrderNote(Base):
    __tablename__ = "order_notes"

    id = Column(Integer, primary_key=True, index=True)
    order_pk = Column(Integer, ForeignKey("orders.pk", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(UTCDateTime(), nullable=False)

    order = relationship("Order", back_populates="notes")

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey
from sqlalchemy.orm import relationship

from ..db.base import Base


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_pk = Column(Integer, ForeignKey("orders.pk", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    name = Column(String(128), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # фиксируется на момент заказа
    quantity = Column(Integer, nullable=False, default=1)

    # связи
    order = relationship("Order", back_populates="items")

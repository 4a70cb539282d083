from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, Numeric, String
from sqlalchemy.orm import relationship

from app.data.database import Base
from app.data.models.mixins import PriceSnapshotMixin


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # pending, paid, processing, completed, cancelled, failed
    status = Column(String, nullable=False, default="pending")
    total_amount = Column(Numeric(12, 2), nullable=False)
    payment_info = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )


class OrderItemModel(PriceSnapshotMixin, Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    product_id = Column(Integer, nullable=False)
    variant_id = Column(Integer, nullable=False)
    sku = Column(String, nullable=False)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)

    order = relationship("OrderModel", back_populates="items")

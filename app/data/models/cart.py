#app/data/models/cart.py
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric
from sqlalchemy.orm import relationship

from app.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True, index=True)

    # derived from items, never taken from the client
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItemModel.id",
    )

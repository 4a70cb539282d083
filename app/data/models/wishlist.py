from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from app.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class WishlistModel(Base):
    __tablename__ = "wishlists"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    items = relationship(
        "WishlistItemModel",
        back_populates="wishlist",
        cascade="all, delete-orphan",
        order_by="WishlistItemModel.id",
    )


class WishlistItemModel(Base):
    __tablename__ = "wishlist_items"
    __table_args__ = (
        UniqueConstraint("wishlist_id", "product_id", "variant_id", name="u_wishlist_product_variant"),
    )

    id = Column(Integer, primary_key=True)
    wishlist_id = Column(Integer, ForeignKey("wishlists.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    variant_id = Column(Integer, nullable=True)
    added_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    wishlist = relationship("WishlistModel", back_populates="items")
    product = relationship("ProductModel")

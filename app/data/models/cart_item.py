from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from app.data.database import Base
from app.data.models.mixins import PriceSnapshotMixin


class CartItemModel(PriceSnapshotMixin, Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", "variant_id", name="u_cart_product_variant"),
        CheckConstraint("quantity >= 1", name="ck_cart_item_quantity"),
    )

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)

    # no FK: the variant may be deleted while the line still sits in a cart
    product_id = Column(Integer, nullable=False)
    variant_id = Column(Integer, nullable=False)

    quantity = Column(Integer, nullable=False)

    cart = relationship("CartModel", back_populates="items")

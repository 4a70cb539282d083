from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship

from app.data.database import Base
from app.domain.pricing import PriceRecord


def _now():
    return datetime.now(timezone.utc)


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, index=True)
    slug = Column(String, nullable=False, unique=True, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    brand = Column(String, nullable=False, default="Generic")

    attributes = Column(JSON, nullable=False, default=list)  # [{key, value}]
    images = Column(JSON, nullable=False, default=list)  # [{url, public_id, alt_text, order}]

    is_featured = Column(Boolean, nullable=False, default=False)
    status = Column(String, nullable=False, default="draft")  # draft, active, archived

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    category = relationship("CategoryModel")
    variants = relationship(
        "ProductVariantModel",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariantModel.id",
    )


class ProductVariantModel(Base):
    __tablename__ = "product_variants"
    __table_args__ = (
        CheckConstraint("inventory_quantity >= 0", name="ck_variant_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    sku = Column(String, nullable=False, unique=True, index=True)

    attributes = Column(JSON, nullable=False, default=list)
    images = Column(JSON, nullable=False, default=list)

    price_base = Column(Numeric(10, 2), nullable=False)
    price_sale = Column(Numeric(10, 2), nullable=True)
    cost_price = Column(Numeric(10, 2), nullable=True)
    sale_start_date = Column(DateTime(timezone=True), nullable=True)
    sale_end_date = Column(DateTime(timezone=True), nullable=True)

    # written only by InventoryService (restock / checkout reservation)
    inventory_quantity = Column(Integer, nullable=False, default=0)
    low_stock_threshold = Column(Integer, nullable=False, default=5)
    track_inventory = Column(Boolean, nullable=False, default=True)

    is_active = Column(Boolean, nullable=False, default=True)

    product = relationship("ProductModel", back_populates="variants")

    @property
    def price(self) -> PriceRecord:
        return PriceRecord(
            base=self.price_base,
            sale=self.price_sale,
            cost_price=self.cost_price,
            sale_start_date=self.sale_start_date,
            sale_end_date=self.sale_end_date,
        )

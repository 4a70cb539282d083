# app/data/models/mixins.py
from sqlalchemy import Column, DateTime, JSON, Numeric

from app.domain.pricing import PriceRecord


class PriceSnapshotMixin:
    """Copy of a variant's price fields, frozen on a cart or order line."""

    price_base = Column(Numeric(10, 2), nullable=False)
    price_sale = Column(Numeric(10, 2), nullable=True)
    cost_price = Column(Numeric(10, 2), nullable=True)
    sale_start_date = Column(DateTime(timezone=True), nullable=True)
    sale_end_date = Column(DateTime(timezone=True), nullable=True)

    variant_attributes = Column(JSON, nullable=False, default=list)

    @property
    def price_snapshot(self) -> PriceRecord:
        return PriceRecord(
            base=self.price_base,
            sale=self.price_sale,
            cost_price=self.cost_price,
            sale_start_date=self.sale_start_date,
            sale_end_date=self.sale_end_date,
        )

    def take_snapshot(self, variant) -> None:
        self.price_base = variant.price_base
        self.price_sale = variant.price_sale
        self.cost_price = variant.cost_price
        self.sale_start_date = variant.sale_start_date
        self.sale_end_date = variant.sale_end_date
        self.variant_attributes = [
            {"key": a.get("key"), "value": a.get("value")} for a in (variant.attributes or [])
        ]

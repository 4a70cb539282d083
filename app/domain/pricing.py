# app/domain/pricing.py
"""
Sale-aware pricing.

A price record is {base, sale?, sale_start_date?, sale_end_date?}. The sale
price applies only while every rule holds, checked in order:
  1. sale is set
  2. sale < base
  3. now >= sale_start_date (when set)
  4. now <= sale_end_date (when set)
Otherwise the base price applies. Re-evaluate at every point a price is
locked in, sale windows move with the clock.
"""
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from pydantic import BaseModel, ConfigDict

ZERO = Decimal("0.00")


class PriceRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    base: Decimal
    sale: Decimal | None = None
    cost_price: Decimal | None = None
    sale_start_date: datetime | None = None
    sale_end_date: datetime | None = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    #sqlite hands back naive datetimes, everything is stored in UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def is_sale_active(price: PriceRecord, now: datetime | None = None) -> bool:
    now = as_utc(now) or utcnow()

    if price.sale is None:
        return False
    if price.sale >= price.base:
        return False

    start = as_utc(price.sale_start_date)
    if start is not None and now < start:
        return False

    end = as_utc(price.sale_end_date)
    if end is not None and now > end:
        return False

    return True


def effective_price(price: PriceRecord, now: datetime | None = None) -> Decimal:
    return price.sale if is_sale_active(price, now) else price.base


def discount_percentage(price: PriceRecord, now: datetime | None = None) -> int:
    if not is_sale_active(price, now) or not price.base:
        return 0
    pct = (price.base - price.sale) / price.base * 100
    return int(pct.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def line_total(price: PriceRecord, quantity: int, now: datetime | None = None) -> Decimal:
    return effective_price(price, now) * quantity

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.domain.pricing import PriceRecord, discount_percentage, effective_price, is_sale_active, line_total

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def price(base="100", sale=None, start=None, end=None):
    return PriceRecord(
        base=Decimal(base),
        sale=Decimal(sale) if sale is not None else None,
        sale_start_date=start,
        sale_end_date=end,
    )


def test_no_sale_uses_base():
    assert effective_price(price(), NOW) == Decimal("100")
    assert not is_sale_active(price(), NOW)


def test_open_ended_sale_applies():
    assert effective_price(price(sale="80"), NOW) == Decimal("80")


def test_sale_not_below_base_is_ignored():
    assert effective_price(price(sale="100"), NOW) == Decimal("100")
    assert effective_price(price(sale="120"), NOW) == Decimal("100")


def test_sale_inside_window():
    p = price(sale="80", start=NOW - timedelta(days=1), end=NOW + timedelta(days=1))
    assert effective_price(p, NOW) == Decimal("80")


def test_sale_before_start_uses_base():
    p = price(sale="80", start=NOW + timedelta(seconds=1))
    assert effective_price(p, NOW) == Decimal("100")


def test_sale_after_end_uses_base():
    p = price(sale="80", end=NOW - timedelta(seconds=1))
    assert effective_price(p, NOW) == Decimal("100")


def test_window_bounds_are_inclusive():
    assert effective_price(price(sale="80", start=NOW), NOW) == Decimal("80")
    assert effective_price(price(sale="80", end=NOW), NOW) == Decimal("80")


def test_naive_dates_are_read_as_utc():
    start = (NOW - timedelta(hours=1)).replace(tzinfo=None)
    end = (NOW + timedelta(hours=1)).replace(tzinfo=None)
    assert effective_price(price(sale="80", start=start, end=end), NOW) == Decimal("80")


def test_zero_sale_price_is_a_sale():
    assert effective_price(price(sale="0"), NOW) == Decimal("0")


def test_discount_percentage_rounds_half_up():
    assert discount_percentage(price(base="200", sale="150"), NOW) == 25
    assert discount_percentage(price(base="3", sale="2.5"), NOW) == 17
    assert discount_percentage(price(base="100"), NOW) == 0


def test_line_total():
    assert line_total(price(sale="80"), 2, NOW) == Decimal("160")

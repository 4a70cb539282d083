from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.domain.errors import (
    InsufficientStock,
    ItemNotFound,
    ProductNotActive,
    ProductNotFound,
    VariantNotAvailable,
    VariantNotFound,
)
from app.domain.schemas import MergeItemIn
from app.services.cart_service import CartService, calculate_total


@pytest.fixture
def user(make_user):
    return make_user()


def test_empty_cart_shape(db, user):
    cart = CartService(db).get_cart(user.id)
    assert cart["items"] == []
    assert cart["total_amount"] == Decimal("0")


def test_add_item_creates_line_with_snapshot(db, user, make_product):
    product = make_product(variants=[{"base": "50.00", "sale": "40.00", "quantity": 5}])
    variant = product.variants[0]

    cart = CartService(db).add_item(user.id, quantity=2, product_id=product.id, variant_id=variant.id)

    assert len(cart["items"]) == 1
    line = cart["items"][0]
    assert line["quantity"] == 2
    assert line["price_snapshot"]["base"] == Decimal("50.00")
    assert line["price_snapshot"]["sale"] == Decimal("40.00")
    assert line["variant_attributes_snapshot"] == [{"key": "size", "value": "S0"}]
    assert cart["total_amount"] == Decimal("80.00")


def test_add_same_pair_increments(db, user, make_product):
    product = make_product(variants=[{"quantity": 5}])
    variant = product.variants[0]
    svc = CartService(db)

    svc.add_item(user.id, quantity=1, product_id=product.id, variant_id=variant.id)
    cart = svc.add_item(user.id, quantity=2, product_id=product.id, variant_id=variant.id)

    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 3
    assert cart["total_amount"] == Decimal("300.00")


def test_add_checks_cumulative_quantity(db, user, make_product):
    product = make_product(variants=[{"quantity": 3}])
    variant = product.variants[0]
    svc = CartService(db)

    svc.add_item(user.id, quantity=2, product_id=product.id, variant_id=variant.id)
    with pytest.raises(InsufficientStock) as exc:
        svc.add_item(user.id, quantity=2, product_id=product.id, variant_id=variant.id)

    assert exc.value.sku == variant.sku
    assert svc.get_cart(user.id)["items"][0]["quantity"] == 2


def test_add_untracked_ignores_stock(db, user, make_product):
    product = make_product(variants=[{"quantity": 0, "track": False}])
    cart = CartService(db).add_item(user.id, quantity=10, product_id=product.id)
    assert cart["items"][0]["quantity"] == 10


def test_add_by_slug_picks_first_active_variant(db, user, make_product):
    product = make_product(variants=[{"active": False}, {"base": "20.00"}])

    cart = CartService(db).add_item(user.id, product_slug=product.slug)

    assert cart["items"][0]["variant_id"] == product.variants[1].id


def test_add_unknown_product(db, user):
    with pytest.raises(ProductNotFound):
        CartService(db).add_item(user.id, product_id=12345)


def test_add_inactive_product(db, user, make_product):
    product = make_product(status="draft")
    with pytest.raises(ProductNotActive):
        CartService(db).add_item(user.id, product_id=product.id)


def test_add_inactive_variant(db, user, make_product):
    product = make_product(variants=[{"active": False}, {}])
    with pytest.raises(VariantNotAvailable):
        CartService(db).add_item(user.id, product_id=product.id, variant_id=product.variants[0].id)


def test_add_product_without_active_variants(db, user, make_product):
    product = make_product(variants=[{"active": False}])
    with pytest.raises(VariantNotAvailable):
        CartService(db).add_item(user.id, product_id=product.id)


def test_update_to_zero_removes_line_and_recomputes(db, user, make_product):
    a = make_product(variants=[{"base": "10.00"}])
    b = make_product(variants=[{"base": "25.00"}])
    svc = CartService(db)
    svc.add_item(user.id, quantity=1, product_id=a.id)
    svc.add_item(user.id, quantity=2, product_id=b.id)

    cart = svc.update_item(user.id, a.id, a.variants[0].id, 0)

    assert [it["product_id"] for it in cart["items"]] == [b.id]
    assert cart["total_amount"] == Decimal("50.00")


def test_update_same_quantity_twice_is_idempotent(db, user, make_product):
    product = make_product(variants=[{"quantity": 10}])
    variant = product.variants[0]
    svc = CartService(db)
    svc.add_item(user.id, quantity=1, product_id=product.id)

    first = svc.update_item(user.id, product.id, variant.id, 4)
    second = svc.update_item(user.id, product.id, variant.id, 4)

    assert len(second["items"]) == 1
    assert second["items"][0]["quantity"] == 4
    assert first["total_amount"] == second["total_amount"] == Decimal("400.00")


def test_update_refreshes_snapshot(db, user, make_product):
    product = make_product(variants=[{"base": "30.00"}])
    variant = product.variants[0]
    svc = CartService(db)
    svc.add_item(user.id, quantity=1, product_id=product.id)

    variant.price_base = Decimal("35.00")
    db.commit()
    cart = svc.update_item(user.id, product.id, variant.id, 2)

    assert cart["items"][0]["price_snapshot"]["base"] == Decimal("35.00")
    assert cart["total_amount"] == Decimal("70.00")


def test_update_over_stock(db, user, make_product):
    product = make_product(variants=[{"quantity": 3}])
    variant = product.variants[0]
    svc = CartService(db)
    svc.add_item(user.id, quantity=1, product_id=product.id)

    with pytest.raises(InsufficientStock):
        svc.update_item(user.id, product.id, variant.id, 4)


def test_update_missing_line(db, user, make_product):
    product = make_product()
    with pytest.raises(ItemNotFound):
        CartService(db).update_item(user.id, product.id, product.variants[0].id, 1)


def test_update_after_variant_deleted(db, user, make_product):
    product = make_product(variants=[{}, {}])
    gone = product.variants[0]
    svc = CartService(db)
    svc.add_item(user.id, quantity=1, product_id=product.id, variant_id=gone.id)

    product.variants.remove(gone)
    db.commit()

    with pytest.raises(VariantNotFound):
        svc.update_item(user.id, product.id, gone.id, 2)


def test_add_then_remove_round_trip(db, user, make_product):
    kept = make_product()
    added = make_product()
    svc = CartService(db)
    svc.add_item(user.id, product_id=kept.id)
    before = len(svc.get_cart(user.id)["items"])

    svc.add_item(user.id, product_id=added.id)
    cart = svc.remove_item(user.id, added.id, added.variants[0].id)

    assert len(cart["items"]) == before
    assert cart["total_amount"] == Decimal("100.00")


def test_bulk_remove_and_clear(db, user, make_product):
    products = [make_product() for _ in range(3)]
    svc = CartService(db)
    for p in products:
        svc.add_item(user.id, product_id=p.id)

    cart = svc.bulk_remove(user.id, [(p.id, p.variants[0].id) for p in products[:2]])
    assert [it["product_id"] for it in cart["items"]] == [products[2].id]

    cart = svc.clear_cart(user.id)
    assert cart["items"] == []
    assert cart["total_amount"] == Decimal("0")


def test_total_uses_snapshot_not_live_price(db, user, make_product):
    product = make_product(variants=[{"base": "60.00"}])
    svc = CartService(db)
    svc.add_item(user.id, quantity=1, product_id=product.id)

    product.variants[0].price_base = Decimal("90.00")
    db.commit()

    assert svc.get_cart(user.id)["total_amount"] == Decimal("60.00")


def test_snapshot_sale_expires_in_total(db, user, make_product):
    now = datetime.now(timezone.utc)
    product = make_product(
        variants=[{"base": "100.00", "sale": "50.00", "end": now + timedelta(days=1)}]
    )
    svc = CartService(db)
    svc.add_item(user.id, quantity=1, product_id=product.id)

    cart = svc.repo.get_cart_by_user(user.id)

    assert calculate_total(cart.items, now) == Decimal("50.00")
    assert calculate_total(cart.items, now + timedelta(days=2)) == Decimal("100.00")


def test_merge_is_best_effort(db, user, make_product):
    good = make_product(variants=[{"quantity": 1}])
    draft = make_product(status="draft")
    inactive = make_product(variants=[{"active": False}])
    svc = CartService(db)
    svc.add_item(user.id, quantity=1, product_id=good.id)

    cart = svc.merge(
        user.id,
        [
            MergeItemIn(product_id=good.id, variant_id=good.variants[0].id, quantity=4),
            MergeItemIn(product_id=draft.id, variant_id=draft.variants[0].id, quantity=1),
            MergeItemIn(product_id=inactive.id, variant_id=inactive.variants[0].id, quantity=1),
            MergeItemIn(product_id=999999, variant_id=1, quantity=1),
        ],
    )

    # no stock validation on merge
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 5

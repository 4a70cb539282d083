import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.data.database import Base
from app.data.models.category import CategoryModel
from app.data.models.order import OrderModel
from app.data.models.product import ProductModel, ProductVariantModel
from app.data.models.user import UserModel
from app.domain.errors import (
    EmptyCart,
    InsufficientStock,
    PersistenceError,
    ShopError,
    StockConflict,
    VariantNotFound,
)
from app.repos.order_repo import OrderRepo
from app.repos.product_repo import ProductRepo
from app.services.cart_service import CartService
from app.services.checkout_service import CheckoutService
from app.services.notification_service import NotificationService


@pytest.fixture
def user(make_user):
    return make_user()


def order_count(db):
    db.expire_all()
    return db.query(OrderModel).count()


def test_sale_window_scenario(db, user, make_product, stock_of):
    now = datetime.now(timezone.utc)
    product = make_product(
        variants=[
            {
                "base": "100.00",
                "sale": "80.00",
                "start": now - timedelta(days=1),
                "end": now + timedelta(days=1),
                "quantity": 5,
            }
        ]
    )
    variant = product.variants[0]
    CartService(db).add_item(user.id, quantity=2, product_id=product.id)

    order = CheckoutService(db).checkout(user.id, {"method": "cod"})

    assert order["total_amount"] == Decimal("160")
    assert order["status"] == "pending"
    assert order["payment_info"] == {"method": "cod"}
    line = order["items"][0]
    assert line["sku"] == variant.sku
    assert line["unit_price"] == Decimal("80")
    assert line["quantity"] == 2
    assert stock_of(variant.id) == 3


def test_success_clears_cart(db, user, make_product):
    product = make_product()
    CartService(db).add_item(user.id, quantity=1, product_id=product.id)

    CheckoutService(db).checkout(user.id)

    cart = CartService(db).get_cart(user.id)
    assert cart["items"] == []
    assert cart["total_amount"] == Decimal("0")


def test_total_uses_live_price_not_snapshot(db, user, make_product):
    a = make_product(variants=[{"base": "10.00", "quantity": 10}])
    b = make_product(variants=[{"base": "7.50", "quantity": 10}])
    svc = CartService(db)
    svc.add_item(user.id, quantity=3, product_id=a.id)
    svc.add_item(user.id, quantity=2, product_id=b.id)

    # price moves after the items were added
    a.variants[0].price_base = Decimal("12.00")
    db.commit()

    order = CheckoutService(db).checkout(user.id)

    assert order["total_amount"] == Decimal("12.00") * 3 + Decimal("7.50") * 2
    assert sum(it["unit_price"] * it["quantity"] for it in order["items"]) == order["total_amount"]
    assert order["items"][0]["price_snapshot"]["base"] == Decimal("12.00")


def test_empty_cart(db, user):
    with pytest.raises(EmptyCart) as exc:
        CheckoutService(db).checkout(user.id)

    assert str(exc.value) == "Cart empty"
    assert order_count(db) == 0


def test_cleared_cart_is_empty(db, user, make_product):
    product = make_product()
    svc = CartService(db)
    svc.add_item(user.id, product_id=product.id)
    svc.clear_cart(user.id)

    with pytest.raises(EmptyCart):
        CheckoutService(db).checkout(user.id)


def test_one_short_line_aborts_everything(db, user, make_product, stock_of):
    plenty = make_product(variants=[{"quantity": 10}])
    scarce = make_product(variants=[{"quantity": 5}])
    svc = CartService(db)
    svc.add_item(user.id, quantity=2, product_id=plenty.id)
    svc.add_item(user.id, quantity=5, product_id=scarce.id)

    # someone else bought most of it in the meantime
    scarce.variants[0].inventory_quantity = 1
    db.commit()
    before = svc.get_cart(user.id)

    with pytest.raises(InsufficientStock) as exc:
        CheckoutService(db).checkout(user.id)

    assert exc.value.sku == scarce.variants[0].sku
    assert scarce.variants[0].sku in str(exc.value)
    assert stock_of(plenty.variants[0].id) == 10
    assert stock_of(scarce.variants[0].id) == 1
    assert svc.get_cart(user.id)["items"] == before["items"]
    assert order_count(db) == 0


def test_lost_reservation_rolls_back_earlier_lines(db, user, make_product, stock_of, monkeypatch):
    first = make_product(variants=[{"quantity": 4}])
    second = make_product(variants=[{"quantity": 4}])
    svc = CartService(db)
    svc.add_item(user.id, quantity=1, product_id=first.id)
    svc.add_item(user.id, quantity=1, product_id=second.id)

    real_decrement = ProductRepo.conditional_decrement_stock
    calls = []

    def racing_decrement(self, product_id, variant_id, amount):
        calls.append(variant_id)
        if len(calls) == 2:
            return False
        return real_decrement(self, product_id, variant_id, amount)

    monkeypatch.setattr(ProductRepo, "conditional_decrement_stock", racing_decrement)

    with pytest.raises(StockConflict) as exc:
        CheckoutService(db).checkout(user.id)

    assert exc.value.sku == second.variants[0].sku
    assert len(calls) == 2
    assert stock_of(first.variants[0].id) == 4
    assert stock_of(second.variants[0].id) == 4
    assert len(svc.get_cart(user.id)["items"]) == 2
    assert order_count(db) == 0


def test_deleted_variant(db, user, make_product, stock_of):
    kept = make_product(variants=[{"quantity": 3}])
    product = make_product(variants=[{}, {}])
    gone = product.variants[1]
    svc = CartService(db)
    svc.add_item(user.id, quantity=1, product_id=kept.id)
    svc.add_item(user.id, quantity=1, product_id=product.id, variant_id=gone.id)

    product.variants.remove(gone)
    db.commit()

    with pytest.raises(VariantNotFound):
        CheckoutService(db).checkout(user.id)

    assert stock_of(kept.variants[0].id) == 3
    assert order_count(db) == 0


def test_competing_checkouts_for_last_units(db, make_user, make_product, stock_of):
    product = make_product(variants=[{"quantity": 3}])
    variant = product.variants[0]
    alice, bob = make_user(), make_user()
    CartService(db).add_item(alice.id, quantity=2, product_id=product.id)
    CartService(db).add_item(bob.id, quantity=2, product_id=product.id)

    CheckoutService(db).checkout(alice.id)
    with pytest.raises((InsufficientStock, StockConflict)):
        CheckoutService(db).checkout(bob.id)

    assert stock_of(variant.id) == 1
    assert order_count(db) == 1
    assert len(CartService(db).get_cart(bob.id)["items"]) == 1


def test_untracked_variant_keeps_stock(db, user, make_product, stock_of):
    product = make_product(variants=[{"quantity": 0, "track": False, "base": "5.00"}])
    CartService(db).add_item(user.id, quantity=3, product_id=product.id)

    order = CheckoutService(db).checkout(user.id)

    assert order["total_amount"] == Decimal("15.00")
    assert stock_of(product.variants[0].id) == 0


def test_store_failure_becomes_persistence_error(db, user, make_product, stock_of, monkeypatch):
    product = make_product(variants=[{"quantity": 2}])
    CartService(db).add_item(user.id, quantity=1, product_id=product.id)

    def broken_create(self, order):
        raise SQLAlchemyError("connection reset")

    monkeypatch.setattr(OrderRepo, "create_order", broken_create)

    with pytest.raises(PersistenceError) as exc:
        CheckoutService(db).checkout(user.id)

    assert "connection reset" not in str(exc.value)
    assert isinstance(exc.value.__cause__, SQLAlchemyError)
    assert stock_of(product.variants[0].id) == 2
    assert len(CartService(db).get_cart(user.id)["items"]) == 1


def test_notification_failure_keeps_order(db, user, make_product, monkeypatch):
    product = make_product()
    CartService(db).add_item(user.id, quantity=1, product_id=product.id)

    def broken_send(user_id, order_id):
        raise RuntimeError("broker down")

    monkeypatch.setattr(NotificationService, "send_order_notification", staticmethod(broken_send))

    order = CheckoutService(db).checkout(user.id)

    assert order["id"] is not None
    assert order_count(db) == 1


def test_order_line_keeps_cart_attributes(db, user, make_product):
    product = make_product(variants=[{"attributes": [{"key": "color", "value": "red"}]}])
    CartService(db).add_item(user.id, quantity=1, product_id=product.id)

    order = CheckoutService(db).checkout(user.id)

    assert order["items"][0]["variant_attributes_snapshot"] == [{"key": "color", "value": "red"}]


@pytest.fixture
def file_db(tmp_path):
    """Separate sessions on one SQLite file, so two checkouts really contend."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield factory
    finally:
        engine.dispose()


def test_simultaneous_checkouts_never_oversell(file_db):
    setup = file_db()
    category = CategoryModel(name="Race", slug="race")
    setup.add(category)
    setup.flush()
    variant = ProductVariantModel(
        sku="SKU-RACE",
        attributes=[],
        images=[],
        price_base=Decimal("10.00"),
        inventory_quantity=3,
    )
    product = ProductModel(
        name="Race",
        slug="race",
        title="Race",
        description="d",
        category_id=category.id,
        status="active",
        attributes=[],
        images=[],
        variants=[variant],
    )
    buyers = [UserModel(name=f"Buyer {i}", role="user", status="active") for i in range(2)]
    setup.add_all([product, *buyers])
    setup.commit()
    for buyer in buyers:
        CartService(setup).add_item(buyer.id, quantity=2, product_id=product.id)
    setup.close()

    barrier = threading.Barrier(len(buyers))
    placed, refused = [], []

    def buy(user_id):
        session = file_db()
        try:
            barrier.wait()
            placed.append(CheckoutService(session).checkout(user_id))
        except ShopError as e:
            refused.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=buy, args=(b.id,)) for b in buyers]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    # the guarded decrement lets exactly one of two 2-unit orders through 3 units
    assert len(placed) == 1
    assert len(refused) == 1

    check = file_db()
    try:
        assert check.get(ProductVariantModel, variant.id).inventory_quantity == 1
        assert check.query(OrderModel).count() == 1
    finally:
        check.close()

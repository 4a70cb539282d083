import itertools
import os

# must be set before app modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "1"
os.environ["PASSWORD_SCHEMES"] = "pbkdf2_sha256"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["SMS_PROVIDER"] = "console"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_google_client, get_redis
from app.data import models  # noqa: F401
from app.data.database import Base, SessionLocal, engine, get_db
from app.data.models.category import CategoryModel
from app.data.models.product import ProductModel, ProductVariantModel
from app.data.models.user import UserModel
from app.domain.errors import Unauthenticated
from app.services.auth_service import hash_password
from app.services.token_service import TokenService


class FakeRedis:
    """In-memory stand-in for the handful of redis commands the app uses."""

    def __init__(self):
        self.store = {}
        self.ttl = {}

    def set(self, key, value, ex=None):
        self.store[key] = str(value)
        if ex is not None:
            self.ttl[key] = ex
        return True

    def get(self, key):
        return self.store.get(key)

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttl.pop(key, None)
        return removed

    def exists(self, *keys):
        return sum(1 for key in keys if key in self.store)

    def incr(self, key):
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    def expire(self, key, seconds):
        self.ttl[key] = seconds
        return key in self.store

    def ping(self):
        return True

    def close(self):
        pass


class FakeGoogleClient:
    def __init__(self):
        self.tokens = {}

    def verify_id_token(self, id_token):
        if id_token not in self.tokens:
            raise Unauthenticated("Invalid Google token")
        return self.tokens[id_token]


_seq = itertools.count(1)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def google():
    return FakeGoogleClient()


@pytest.fixture
def client(db, fake_redis, google):
    from app.main import app

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_google_client] = lambda: google
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_category(db):
    def _make(name=None, **kwargs):
        n = next(_seq)
        name = name or f"Category {n}"
        category = CategoryModel(name=name, slug=f"{name.lower().replace(' ', '-')}-{n}", **kwargs)
        db.add(category)
        db.commit()
        return category

    return _make


@pytest.fixture
def make_product(db, make_category):
    """
    make_product(variants=[{"base": "100", "sale": "80", "quantity": 5}, ...])
    Variant keys: base, sale, start, end, quantity, track, active, attributes.
    """

    def _make(name=None, variants=None, status="active", category=None, is_featured=False):
        n = next(_seq)
        name = name or f"Product {n}"
        category = category or make_category()
        variants = variants if variants is not None else [{"base": "100.00", "quantity": 10}]

        product = ProductModel(
            name=name,
            slug=f"product-{n}",
            title=name,
            description=f"{name} description",
            category_id=category.id,
            status=status,
            is_featured=is_featured,
            attributes=[],
            images=[],
            variants=[
                ProductVariantModel(
                    sku=f"SKU-T{n}-{i}",
                    attributes=v.get("attributes", [{"key": "size", "value": f"S{i}"}]),
                    images=[],
                    price_base=Decimal(v.get("base", "100.00")),
                    price_sale=Decimal(v["sale"]) if v.get("sale") is not None else None,
                    sale_start_date=v.get("start"),
                    sale_end_date=v.get("end"),
                    inventory_quantity=v.get("quantity", 10),
                    low_stock_threshold=v.get("threshold", 5),
                    track_inventory=v.get("track", True),
                    is_active=v.get("active", True),
                )
                for i, v in enumerate(variants)
            ],
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def make_user(db):
    def _make(role="user", password="secret123", status="active", **kwargs):
        n = next(_seq)
        kwargs.setdefault("email", f"user{n}@example.com")
        kwargs.setdefault("phone", f"+9100000{n:05d}")
        user = UserModel(
            name=f"User {n}",
            password_hash=hash_password(password),
            role=role,
            status=status,
            **kwargs,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def auth_headers(fake_redis):
    def _headers(user):
        token = TokenService(fake_redis).issue(user)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def stock_of(db):
    """Stock of a variant as stored, bypassing the session cache."""

    def _stock(variant_id):
        db.expire_all()
        return db.get(ProductVariantModel, variant_id).inventory_quantity

    return _stock

# app/data/seed.py
import os

from app.data.database import Base, SessionLocal, engine
from app.data import models  # noqa: F401
from app.data.models.user import UserModel
from app.domain.schemas import CategoryCreate, ProductCreate
from app.repos.category_repo import CategoryRepo
from app.repos.user_repo import UserRepo
from app.services.auth_service import hash_password
from app.services.category_service import CategoryService
from app.services.product_service import ProductService
from app.utils.logging import get_logger

logger = get_logger(__name__)

ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "admin123")

DEMO_PRODUCTS = [
    {
        "name": "Classic Cotton T-Shirt",
        "description": "Soft everyday tee made of combed cotton.",
        "category": "t-shirts",
        "brand": "Generic",
        "is_featured": True,
        "status": "active",
        "variants": [
            {
                "attributes": [{"key": "size", "value": "M"}, {"key": "color", "value": "black"}],
                "price": {"base": "19.99", "sale": "14.99"},
                "inventory": {"quantity": 50},
            },
            {
                "attributes": [{"key": "size", "value": "L"}, {"key": "color", "value": "black"}],
                "price": {"base": "19.99"},
                "inventory": {"quantity": 3},
            },
        ],
    },
    {
        "name": "Canvas Sneakers",
        "description": "Lightweight canvas sneakers with rubber sole.",
        "category": "footwear",
        "status": "active",
        "price": "49.00",
        "inventory": {"quantity": 20},
    },
    {
        "name": "Gift Card",
        "description": "Digital gift card, delivered by email.",
        "category": "gifts",
        "status": "active",
        "price": "25.00",
        "inventory": {"quantity": 0, "track_inventory": False},
    },
]


def seed():
    """Demo data, skipped when the admin account already exists."""
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        users = UserRepo(db)
        if users.get_by_email(ADMIN_EMAIL):
            logger.info("Seed data already present, skipping")
            return

        users.create_user(
            UserModel(
                name="Admin",
                email=ADMIN_EMAIL,
                password_hash=hash_password(ADMIN_PASSWORD),
                is_email_verified=True,
                role="admin",
            )
        )

        categories = CategoryService(db)
        apparel = categories.create_category(CategoryCreate(name="Apparel", sort_order=1))
        categories.create_category(CategoryCreate(name="T-Shirts", parent_id=apparel["id"]))
        categories.create_category(CategoryCreate(name="Footwear", parent_id=apparel["id"]))

        products = ProductService(db)
        for data in DEMO_PRODUCTS:
            products.create_product(ProductCreate.model_validate(data))

        logger.info(
            f"Seeded admin {ADMIN_EMAIL}, {len(CategoryRepo(db).list_active())} categories, "
            f"{len(DEMO_PRODUCTS)} products"
        )
    finally:
        db.close()


if __name__ == "__main__":
    seed()

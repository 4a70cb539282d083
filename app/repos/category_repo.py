# app/repos/category_repo.py
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.data.models.category import CategoryModel
from app.data.models.product import ProductModel


class CategoryRepo:
    def __init__(self, db: Session):
        self.db = db

    def get(self, category_id: int) -> CategoryModel | None:
        return self.db.get(CategoryModel, category_id)

    def get_by_slug(self, slug: str) -> CategoryModel | None:
        return self.db.execute(
            select(CategoryModel).where(CategoryModel.slug == slug.lower())
        ).scalar_one_or_none()

    def find_by_slug_or_name(self, slug: str, name: str) -> CategoryModel | None:
        return self.db.execute(
            select(CategoryModel)
            .where(or_(CategoryModel.slug == slug, func.lower(CategoryModel.name) == name.lower()))
            .order_by(CategoryModel.id)
            .limit(1)
        ).scalar_one_or_none()

    def slug_exists(self, slug: str, exclude_id: int | None = None) -> bool:
        stmt = select(CategoryModel.id).where(CategoryModel.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(CategoryModel.id != exclude_id)
        return self.db.execute(stmt.limit(1)).first() is not None

    def list_active(self) -> list[CategoryModel]:
        return list(
            self.db.execute(
                select(CategoryModel)
                .where(CategoryModel.is_active.is_(True))
                .order_by(CategoryModel.sort_order, CategoryModel.name)
            ).scalars()
        )

    def list_children(self, category_id: int) -> list[CategoryModel]:
        return list(
            self.db.execute(select(CategoryModel).where(CategoryModel.parent_id == category_id)).scalars()
        )

    def count_active_children(self, category_id: int) -> int:
        return self.db.execute(
            select(func.count(CategoryModel.id)).where(
                CategoryModel.parent_id == category_id,
                CategoryModel.is_active.is_(True),
            )
        ).scalar_one()

    def count_products(self, category_id: int) -> int:
        return self.db.execute(
            select(func.count(ProductModel.id)).where(ProductModel.category_id == category_id)
        ).scalar_one()

    def add(self, category: CategoryModel) -> CategoryModel:
        self.db.add(category)
        self.db.flush()
        return category

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

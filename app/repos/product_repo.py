# app/repos/product_repo.py
from decimal import Decimal

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.orm import Session, selectinload

from app.data.models.category import CategoryModel
from app.data.models.product import ProductModel, ProductVariantModel


class ProductRepo:
    """Catalog store: products, their variants and the per-variant stock counter."""

    def __init__(self, db: Session):
        self.db = db

    def _with_relations(self, stmt):
        return stmt.options(
            selectinload(ProductModel.variants),
            selectinload(ProductModel.category),
        )

    # =====================================================
    # QUERY
    # =====================================================
    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.execute(
            self._with_relations(select(ProductModel).where(ProductModel.id == product_id))
        ).scalar_one_or_none()

    def get_by_slug(self, slug: str, status: str | None = "active") -> ProductModel | None:
        stmt = select(ProductModel).where(ProductModel.slug == slug.lower())
        if status is not None:
            stmt = stmt.where(ProductModel.status == status)
        return self.db.execute(self._with_relations(stmt)).scalar_one_or_none()

    def get_active_by_slugs(self, slugs: list[str]) -> list[ProductModel]:
        return list(
            self.db.execute(
                self._with_relations(
                    select(ProductModel).where(
                        ProductModel.slug.in_([s.lower() for s in slugs]),
                        ProductModel.status == "active",
                    )
                )
            ).scalars()
        )

    def find_variant(self, product_id: int, variant_id: int) -> ProductVariantModel | None:
        """Live read of one variant, bypassing whatever the session has cached."""
        return self.db.execute(
            select(ProductVariantModel)
            .where(
                ProductVariantModel.id == variant_id,
                ProductVariantModel.product_id == product_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def slug_exists(self, slug: str, exclude_id: int | None = None) -> bool:
        stmt = select(ProductModel.id).where(ProductModel.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(ProductModel.id != exclude_id)
        return self.db.execute(stmt.limit(1)).first() is not None

    def sku_exists(self, sku: str) -> bool:
        return self.db.execute(
            select(ProductVariantModel.id).where(ProductVariantModel.sku == sku).limit(1)
        ).first() is not None

    def list_products(
        self,
        status: str = "active",
        category_id: int | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        featured: bool | None = None,
        query: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[ProductModel], int]:
        stmt = select(ProductModel).where(ProductModel.status == status)

        if category_id is not None:
            stmt = stmt.where(ProductModel.category_id == category_id)

        if min_price is not None or max_price is not None:
            conds = []
            if min_price is not None:
                conds.append(ProductVariantModel.price_base >= min_price)
            if max_price is not None:
                conds.append(ProductVariantModel.price_base <= max_price)
            stmt = stmt.where(ProductModel.variants.any(and_(*conds)))

        if featured:
            stmt = stmt.where(ProductModel.is_featured.is_(True))

        if query:
            pattern = f"%{query.strip()}%"
            stmt = stmt.where(
                or_(
                    ProductModel.name.ilike(pattern),
                    ProductModel.title.ilike(pattern),
                    ProductModel.description.ilike(pattern),
                )
            )

        total = self.db.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()

        stmt = stmt.order_by(ProductModel.created_at.desc(), ProductModel.id.desc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        products = list(self.db.execute(self._with_relations(stmt)).scalars())
        return products, total

    def related(self, product: ProductModel, limit: int) -> list[ProductModel]:
        return list(
            self.db.execute(
                self._with_relations(
                    select(ProductModel)
                    .where(
                        ProductModel.id != product.id,
                        ProductModel.category_id == product.category_id,
                        ProductModel.status == "active",
                    )
                    .order_by(ProductModel.created_at.desc(), ProductModel.id.desc())
                    .limit(limit)
                )
            ).scalars()
        )

    def low_stock_variants(self) -> list[ProductVariantModel]:
        return list(
            self.db.execute(
                select(ProductVariantModel)
                .join(ProductModel)
                .where(
                    ProductModel.status == "active",
                    ProductVariantModel.is_active.is_(True),
                    ProductVariantModel.track_inventory.is_(True),
                    ProductVariantModel.inventory_quantity <= ProductVariantModel.low_stock_threshold,
                )
                .order_by(ProductVariantModel.inventory_quantity, ProductVariantModel.id)
                .options(selectinload(ProductVariantModel.product))
            ).scalars()
        )

    def category_by_slug(self, slug: str) -> CategoryModel | None:
        return self.db.execute(
            select(CategoryModel).where(CategoryModel.slug == slug.lower())
        ).scalar_one_or_none()

    # =====================================================
    # STOCK
    # =====================================================
    def is_tracked(self, product_id: int, variant_id: int) -> bool | None:
        """None when the variant does not exist."""
        return self.db.execute(
            select(ProductVariantModel.track_inventory).where(
                ProductVariantModel.id == variant_id,
                ProductVariantModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def conditional_decrement_stock(self, product_id: int, variant_id: int, amount: int) -> bool:
        # UPDATE ... SET q = q - :n WHERE id = :v AND q >= :n, one statement, no read-then-write
        result = self.db.execute(
            update(ProductVariantModel)
            .where(
                ProductVariantModel.id == variant_id,
                ProductVariantModel.product_id == product_id,
                ProductVariantModel.track_inventory.is_(True),
                ProductVariantModel.inventory_quantity >= amount,
            )
            .values(inventory_quantity=ProductVariantModel.inventory_quantity - amount)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    def adjust_stock(self, product_id: int, variant_id: int, delta: int) -> bool:
        result = self.db.execute(
            update(ProductVariantModel)
            .where(
                ProductVariantModel.id == variant_id,
                ProductVariantModel.product_id == product_id,
                ProductVariantModel.inventory_quantity + delta >= 0,
            )
            .values(inventory_quantity=ProductVariantModel.inventory_quantity + delta)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    # =====================================================
    # COMMANDS
    # =====================================================
    def add(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

    def set_status(self, product_ids: list[int], status: str) -> int:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id.in_(product_ids))
            .values(status=status)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def delete_variant(self, variant: ProductVariantModel) -> None:
        self.db.delete(variant)
        self.db.flush()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

    def refresh(self, obj):
        self.db.refresh(obj)

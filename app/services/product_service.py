# app/services/product_service.py
import math
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.data.models.category import CategoryModel
from app.data.models.product import ProductModel, ProductVariantModel
from app.domain.errors import (
    CategoryNotFound,
    ConflictError,
    NotFoundError,
    ProductNotFound,
    ValidationFailed,
)
from app.domain.pricing import discount_percentage, effective_price, is_sale_active, utcnow
from app.domain.schemas import (
    ImageIn,
    InventoryIn,
    PriceIn,
    ProductCreate,
    ProductUpdate,
    VariantIn,
    VariantUpdate,
)
from app.repos.category_repo import CategoryRepo
from app.repos.product_repo import ProductRepo
from app.services.inventory_service import InventoryService
from app.utils.slugs import generate_sku, normalize_sku, slugify, unique_slug
from app.utils.logging import get_logger

logger = get_logger(__name__)


# =====================================================
# VIEWS
# =====================================================

def serialize_variant(variant: ProductVariantModel, now: datetime | None = None) -> Dict[str, Any]:
    now = now or utcnow()
    price = variant.price
    return {
        "id": variant.id,
        "sku": variant.sku,
        "attributes": variant.attributes or [],
        "images": variant.images or [],
        "price": {
            "base": price.base,
            "sale": price.sale,
            "sale_start_date": price.sale_start_date,
            "sale_end_date": price.sale_end_date,
        },
        "final_price": effective_price(price, now),
        "is_sale_active": is_sale_active(price, now),
        "discount_percentage": discount_percentage(price, now),
        "inventory": {
            "quantity": variant.inventory_quantity,
            "track_inventory": variant.track_inventory,
            "low_stock_threshold": variant.low_stock_threshold,
            "in_stock": _in_stock(variant),
        },
        "is_active": variant.is_active,
    }


def _in_stock(variant: ProductVariantModel) -> bool:
    return not variant.track_inventory or variant.inventory_quantity > 0


def _category_ref(category: CategoryModel | None) -> Dict[str, Any] | None:
    if category is None:
        return None
    return {"id": category.id, "name": category.name, "slug": category.slug}


def serialize_product(product: ProductModel, now: datetime | None = None) -> Dict[str, Any]:
    now = now or utcnow()
    variants = [serialize_variant(v, now) for v in product.variants]
    active = [v for v in variants if v["is_active"]]
    final_prices = [v["final_price"] for v in active]

    return {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "title": product.title,
        "description": product.description,
        "brand": product.brand,
        "category": _category_ref(product.category),
        "attributes": product.attributes or [],
        "images": product.images or [],
        "variants": variants,
        "is_featured": product.is_featured,
        "status": product.status,
        "min_price": min(final_prices) if final_prices else None,
        "max_price": max(final_prices) if final_prices else None,
        "in_stock": any(v["inventory"]["in_stock"] for v in active),
        "max_discount_percentage": max((v["discount_percentage"] for v in active), default=0),
        "created_at": product.created_at,
    }


def _pagination(total: int, page: int, limit: int) -> Dict[str, Any]:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "has_next_page": page * limit < total,
        "has_prev_page": page > 1,
    }


def _attributes(attrs) -> List[Dict[str, str]]:
    return [{"key": a.key, "value": a.value} for a in attrs]


def _images(images: List[ImageIn]) -> List[Dict[str, Any]]:
    #missing order falls back to the position in the list
    return [
        {
            "url": img.url,
            "public_id": img.public_id,
            "alt_text": img.alt_text,
            "order": img.order if img.order is not None else i,
        }
        for i, img in enumerate(images)
    ]


def _apply_price(variant: ProductVariantModel, price: PriceIn) -> None:
    variant.price_base = price.base
    variant.price_sale = price.sale
    variant.cost_price = price.cost_price
    variant.sale_start_date = price.sale_start_date
    variant.sale_end_date = price.sale_end_date


class ProductService:
    """
    Catalog use cases.
    Admin commands never write inventory_quantity of an existing variant,
    stock moves only through InventoryService.
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)
        self.categories = CategoryRepo(db)
        self.inventory = InventoryService(db, catalog=self.repo)

    # =====================================================
    # PUBLIC QUERIES
    # =====================================================
    def list_products(
        self,
        page: int = 1,
        limit: int = 12,
        category_slug: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        featured: bool = False,
        q: str | None = None,
    ) -> Dict[str, Any]:
        category_id = None
        if category_slug:
            # unknown category slug does not filter
            category = self.repo.category_by_slug(category_slug)
            if category:
                category_id = category.id

        products, total = self.repo.list_products(
            category_id=category_id,
            min_price=min_price,
            max_price=max_price,
            featured=featured,
            query=q,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return self._page(products, total, page, limit)

    def search(self, q: str, page: int = 1, limit: int = 12) -> Dict[str, Any]:
        if not q or not q.strip():
            raise ValidationFailed("Query required")

        products, total = self.repo.list_products(query=q, offset=(page - 1) * limit, limit=limit)
        return self._page(products, total, page, limit)

    def by_category(self, slug: str, page: int = 1, limit: int = 12) -> Dict[str, Any]:
        category = self.repo.category_by_slug(slug)
        if not category:
            raise CategoryNotFound()

        products, total = self.repo.list_products(
            category_id=category.id, offset=(page - 1) * limit, limit=limit
        )
        result = self._page(products, total, page, limit)
        result["category"] = _category_ref(category)
        return result

    def featured(self, limit: int = 12) -> Dict[str, Any]:
        products, _ = self.repo.list_products(featured=True, limit=limit)
        now = utcnow()
        return {"count": len(products), "products": [serialize_product(p, now) for p in products]}

    def get_by_slug(self, slug: str) -> Dict[str, Any]:
        product = self.repo.get_by_slug(slug, status="active")
        if not product:
            raise ProductNotFound()
        return serialize_product(product)

    def related(self, slug: str, limit: int = 8) -> List[Dict[str, Any]]:
        product = self.repo.get_by_slug(slug, status="active")
        if not product:
            raise ProductNotFound()

        now = utcnow()
        return [serialize_product(p, now) for p in self.repo.related(product, limit)]

    def _page(self, products, total: int, page: int, limit: int) -> Dict[str, Any]:
        now = utcnow()
        return {
            "count": len(products),
            "products": [serialize_product(p, now) for p in products],
            "pagination": _pagination(total, page, limit),
        }

    # =====================================================
    # ADMIN QUERIES
    # =====================================================
    def list_by_status(self, status: str) -> Dict[str, Any]:
        products, _ = self.repo.list_products(status=status)
        now = utcnow()
        return {"count": len(products), "products": [serialize_product(p, now) for p in products]}

    def low_stock(self) -> List[Dict[str, Any]]:
        now = utcnow()
        return [
            {
                "product_id": v.product_id,
                "product_name": v.product.name,
                "product_slug": v.product.slug,
                "variant": serialize_variant(v, now),
            }
            for v in self.repo.low_stock_variants()
        ]

    # =====================================================
    # ADMIN COMMANDS
    # =====================================================
    def create_product(self, payload: ProductCreate) -> Dict[str, Any]:
        variants_in = list(payload.variants)
        if not variants_in:
            if payload.price is None:
                raise ValidationFailed("Product price is required")
            variants_in = [
                VariantIn(price=payload.price, inventory=payload.inventory or InventoryIn())
            ]

        product = ProductModel(
            name=payload.name.strip(),
            slug=unique_slug(payload.name, self.repo.slug_exists),
            title=(payload.title or payload.name).strip(),
            description=payload.description,
            brand=payload.brand,
            attributes=_attributes(payload.attributes),
            images=_images(payload.images),
            is_featured=payload.is_featured,
            status=payload.status,
            variants=[],
        )

        #SKUs are claimed before the category can be auto-created
        taken: set[str] = set()
        for variant_in in variants_in:
            variant = ProductVariantModel(
                sku=self._claim_sku(variant_in.sku, taken),
                attributes=_attributes(variant_in.attributes),
                images=_images(variant_in.images),
                # opening stock of a new row
                inventory_quantity=variant_in.inventory.quantity,
                track_inventory=variant_in.inventory.track_inventory,
                low_stock_threshold=variant_in.inventory.low_stock_threshold,
                is_active=variant_in.is_active,
            )
            _apply_price(variant, variant_in.price)
            product.variants.append(variant)

        product.category_id = self._resolve_category(payload.category).id

        self.repo.add(product)
        self.repo.commit()
        self.repo.refresh(product)

        logger.info(f"Product {product.id} ({product.slug}) created with {len(product.variants)} variant(s)")
        return serialize_product(product)

    def update_product(self, product_id: int, payload: ProductUpdate) -> Dict[str, Any]:
        product = self._get(product_id)
        changes = payload.model_dump(exclude_unset=True)

        if payload.name is not None and payload.name.strip() != product.name:
            product.name = payload.name.strip()
            product.slug = unique_slug(
                product.name, lambda s: self.repo.slug_exists(s, exclude_id=product.id)
            )

        for field in ("title", "description", "brand", "is_featured", "status"):
            if field in changes and changes[field] is not None:
                setattr(product, field, changes[field])

        if payload.category is not None:
            product.category_id = self._resolve_category(payload.category).id

        if payload.attributes is not None:
            product.attributes = _attributes(payload.attributes)

        if payload.images is not None:
            product.images = _images(payload.images)

        if payload.variants is not None:
            taken: set[str] = set()
            for variant_in in payload.variants:
                self._apply_variant_update(product, variant_in, taken)

        self.repo.commit()
        self.repo.refresh(product)

        logger.info(f"Product {product.id} updated: {sorted(changes)}")
        return serialize_product(product)

    def _apply_variant_update(self, product: ProductModel, variant_in: VariantUpdate, taken: set[str]) -> None:
        if variant_in.id is None:
            if variant_in.price is None:
                raise ValidationFailed("New variant needs a price")
            variant = ProductVariantModel(
                sku=self._claim_sku(None, taken),
                attributes=_attributes(variant_in.attributes or []),
                images=_images(variant_in.images or []),
                inventory_quantity=variant_in.initial_quantity,
                track_inventory=True if variant_in.track_inventory is None else variant_in.track_inventory,
                low_stock_threshold=5 if variant_in.low_stock_threshold is None else variant_in.low_stock_threshold,
                is_active=True if variant_in.is_active is None else variant_in.is_active,
            )
            _apply_price(variant, variant_in.price)
            product.variants.append(variant)
            return

        variant = next((v for v in product.variants if v.id == variant_in.id), None)
        if variant is None:
            raise NotFoundError("Variant not found")

        if variant_in.attributes is not None:
            variant.attributes = _attributes(variant_in.attributes)
        if variant_in.images is not None:
            variant.images = _images(variant_in.images)
        if variant_in.price is not None:
            _apply_price(variant, variant_in.price)
        if variant_in.is_active is not None:
            variant.is_active = variant_in.is_active
        if variant_in.track_inventory is not None:
            variant.track_inventory = variant_in.track_inventory
        if variant_in.low_stock_threshold is not None:
            variant.low_stock_threshold = variant_in.low_stock_threshold

    def archive(self, product_id: int) -> Dict[str, Any]:
        return self._set_status(product_id, "archived")

    def restore(self, product_id: int) -> Dict[str, Any]:
        return self._set_status(product_id, "active")

    def _set_status(self, product_id: int, status: str) -> Dict[str, Any]:
        product = self._get(product_id)
        product.status = status
        self.repo.commit()
        logger.info(f"Product {product_id} -> {status}")
        return serialize_product(product)

    def bulk_archive(self, product_ids: List[int]) -> int:
        modified = self.repo.set_status(product_ids, "archived")
        self.repo.commit()
        logger.info(f"Archived {modified} product(s)")
        return modified

    def adjust_stock(self, product_id: int, variant_id: int, delta: int) -> Dict[str, Any]:
        if self.repo.find_variant(product_id, variant_id) is None:
            raise NotFoundError("Variant not found")

        if not self.inventory.restock(product_id, variant_id, delta):
            self.repo.rollback()
            raise ValidationFailed("Stock cannot go below zero")

        self.repo.commit()
        return serialize_product(self._get(product_id))

    def remove_variant(self, product_id: int, variant_id: int) -> Dict[str, Any]:
        product = self._get(product_id)

        variant = next((v for v in product.variants if v.id == variant_id), None)
        if variant is None:
            raise NotFoundError("Variant not found")
        if len(product.variants) == 1:
            raise ValidationFailed("A product needs at least one variant")

        product.variants.remove(variant)
        self.repo.commit()

        logger.info(f"Variant {variant_id} ({variant.sku}) removed from product {product_id}")
        return serialize_product(product)

    # =====================================================
    # helpers
    # =====================================================
    def _get(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product:
            raise ProductNotFound()
        return product

    def _claim_sku(self, requested: str | None, taken: set[str]) -> str:
        if requested:
            sku = normalize_sku(requested)
            if sku in taken or self.repo.sku_exists(sku):
                raise ConflictError(f"SKU {sku} already exists")
        else:
            sku = generate_sku(lambda s: s in taken or self.repo.sku_exists(s))
        taken.add(sku)
        return sku

    def _resolve_category(self, value: str) -> CategoryModel:
        """Category by id, slug or name. Unknown names create a root category."""
        value = value.strip()

        if value.isdigit():
            category = self.categories.get(int(value))
            if not category:
                raise ValidationFailed("Invalid category id")
            return category

        category = self.categories.find_by_slug_or_name(slugify(value), value)
        if category:
            return category

        category = self.categories.add(
            CategoryModel(
                name=value,
                slug=unique_slug(value, self.categories.slug_exists),
                level=0,
            )
        )
        logger.info(f"Category '{value}' created on the fly (id {category.id})")
        return category

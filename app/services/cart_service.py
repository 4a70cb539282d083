# app/services/cart_service.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.data.models.product import ProductModel, ProductVariantModel
from app.domain.errors import (
    InsufficientStock,
    ItemNotFound,
    ProductNotActive,
    ProductNotFound,
    VariantNotAvailable,
    VariantNotFound,
)
from app.domain.pricing import ZERO, effective_price, utcnow
from app.repos.cart_repo import CartRepo
from app.repos.product_repo import ProductRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)

CENT = Decimal("0.01")


def calculate_total(items: Iterable[CartItemModel], now: datetime | None = None) -> Decimal:
    """Sum over the snapshots, not live prices, so the total matches what the user saw."""
    now = now or utcnow()
    total = sum(
        (effective_price(it.price_snapshot, now) * it.quantity for it in items),
        ZERO,
    )
    return total.quantize(CENT)


def _price_view(item) -> Dict[str, Any]:
    return {
        "base": item.price_base,
        "sale": item.price_sale,
        "sale_start_date": item.sale_start_date,
        "sale_end_date": item.sale_end_date,
    }


def serialize_cart(cart: CartModel | None, now: datetime | None = None) -> Dict[str, Any]:
    if cart is None:
        return {"id": None, "user_id": None, "items": [], "total_amount": ZERO}

    now = now or utcnow()
    return {
        "id": cart.id,
        "user_id": cart.user_id,
        "items": [
            {
                "product_id": it.product_id,
                "variant_id": it.variant_id,
                "quantity": it.quantity,
                "price_snapshot": _price_view(it),
                "variant_attributes_snapshot": it.variant_attributes or [],
                "unit_price": effective_price(it.price_snapshot, now),
            }
            for it in cart.items
        ],
        "total_amount": cart.total_amount if cart.total_amount is not None else ZERO,
    }


class CartService:
    """
    Cart aggregate use cases.
    commands (add, update, remove, bulk remove, clear, merge) change state
    and recompute the total, query (get) only reads
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.catalog = ProductRepo(db)

    #query
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        return serialize_cart(self.repo.get_cart_by_user(user_id))

    #commands
    def add_item(
        self,
        user_id: int,
        quantity: int = 1,
        product_id: int | None = None,
        product_slug: str | None = None,
        variant_id: int | None = None,
    ) -> Dict[str, Any]:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        product = self._resolve_product(product_id, product_slug)
        if product.status != "active":
            raise ProductNotActive()

        variant = self._resolve_variant(product, variant_id)

        cart = self.repo.get_cart_by_user(user_id)
        existing = self.repo.find_item(cart, product.id, variant.id) if cart else None

        #cumulative quantity against live stock
        requested = quantity + (existing.quantity if existing else 0)
        self._check_stock(variant, requested)

        if cart is None:
            cart = self.repo.get_or_create_cart(user_id)

        if existing:
            logger.info(
                f"Product {product.id}/{variant.id} already in cart of user {user_id}, "
                f"quantity {existing.quantity} -> {requested}"
            )
            existing.quantity = requested
            existing.take_snapshot(variant)
        else:
            logger.info(f"Adding product {product.id}/{variant.id} x{quantity} to cart of user {user_id}")
            item = CartItemModel(product_id=product.id, variant_id=variant.id, quantity=quantity)
            item.take_snapshot(variant)
            cart.items.append(item)

        return self._save(cart)

    def update_item(self, user_id: int, product_id: int, variant_id: int, quantity: int) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_user(user_id)
        item = self.repo.find_item(cart, product_id, variant_id) if cart else None
        if item is None:
            raise ItemNotFound()

        if quantity <= 0:
            logger.info(f"Quantity {quantity} for {product_id}/{variant_id}, removing line")
            cart.items.remove(item)
            return self._save(cart)

        variant = self.catalog.find_variant(product_id, variant_id)
        if variant is None:
            raise VariantNotFound()

        self._check_stock(variant, quantity)

        item.quantity = quantity
        #refresh snapshot to the current price
        item.take_snapshot(variant)
        return self._save(cart)

    def remove_item(self, user_id: int, product_id: int, variant_id: int) -> Dict[str, Any]:
        return self.bulk_remove(user_id, [(product_id, variant_id)])

    def bulk_remove(self, user_id: int, pairs: Iterable[tuple[int, int]]) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_user(user_id)
        if cart is None:
            raise ItemNotFound("Cart not found")

        targets = set(pairs)
        before = len(cart.items)
        cart.items = [it for it in cart.items if (it.product_id, it.variant_id) not in targets]

        logger.info(f"Removed {before - len(cart.items)} line(s) from cart of user {user_id}")
        return self._save(cart)

    def clear_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_user(user_id)
        if cart is None:
            return serialize_cart(None)

        cart.items = []
        logger.info(f"Cart of user {user_id} cleared")
        return self._save(cart)

    def merge(self, user_id: int, incoming: Iterable[Any]) -> Dict[str, Any]:
        """
        Best effort merge of a guest cart after login.
        Missing or inactive products/variants are skipped, stock is not checked.
        """
        cart = self.repo.get_or_create_cart(user_id)
        skipped = 0

        for entry in incoming:
            product = self.catalog.get_product(entry.product_id)
            if not product or product.status != "active":
                skipped += 1
                continue

            variant = next((v for v in product.variants if v.id == entry.variant_id), None)
            if not variant or not variant.is_active:
                skipped += 1
                continue

            existing = self.repo.find_item(cart, product.id, variant.id)
            if existing:
                existing.quantity += entry.quantity
            else:
                item = CartItemModel(product_id=product.id, variant_id=variant.id, quantity=entry.quantity)
                item.take_snapshot(variant)
                cart.items.append(item)

        if skipped:
            logger.info(f"Cart merge for user {user_id} skipped {skipped} entr(y/ies)")
        return self._save(cart)

    # =====================================================
    # helpers
    # =====================================================
    def _resolve_product(self, product_id: int | None, product_slug: str | None) -> ProductModel:
        product = None
        if product_id is not None:
            product = self.catalog.get_product(product_id)
        elif product_slug:
            product = self.catalog.get_by_slug(product_slug, status="active")
        if product is None:
            raise ProductNotFound()
        return product

    @staticmethod
    def _resolve_variant(product: ProductModel, variant_id: int | None) -> ProductVariantModel:
        if variant_id is not None:
            variant = next((v for v in product.variants if v.id == variant_id), None)
        else:
            variant = next((v for v in product.variants if v.is_active), None)

        if variant is None or not variant.is_active:
            raise VariantNotAvailable()
        return variant

    @staticmethod
    def _check_stock(variant: ProductVariantModel, quantity: int) -> None:
        if variant.track_inventory and variant.inventory_quantity < quantity:
            raise InsufficientStock(variant.sku)

    def _save(self, cart: CartModel) -> Dict[str, Any]:
        now = utcnow()
        cart.total_amount = calculate_total(cart.items, now)
        try:
            self.repo.save_cart(cart)
            self.repo.commit()
        except SQLAlchemyError:
            logger.exception(f"Saving cart of user {cart.user_id} failed")
            self.repo.rollback()
            raise
        return serialize_cart(cart, now)

# app/services/wishlist_service.py
from typing import Any, Dict, Iterable, List

from sqlalchemy.orm import Session

from app.data.models.wishlist import WishlistItemModel, WishlistModel
from app.domain.errors import ProductNotFound, ValidationFailed
from app.domain.pricing import utcnow
from app.domain.schemas import MergeItemIn
from app.repos.product_repo import ProductRepo
from app.repos.wishlist_repo import WishlistRepo
from app.services.cart_service import CartService
from app.services.product_service import serialize_product
from app.utils.logging import get_logger

logger = get_logger(__name__)

_SUMMARY_FIELDS = ("id", "name", "slug", "images", "status", "min_price", "max_price", "in_stock")


def serialize_wishlist(wishlist: WishlistModel | None) -> Dict[str, Any]:
    if wishlist is None:
        return {"products": []}

    now = utcnow()
    entries = []
    for it in wishlist.items:
        #product rows deleted underneath the wishlist are dropped from the view
        if it.product is None:
            continue
        view = serialize_product(it.product, now)
        entries.append(
            {
                "product_id": it.product_id,
                "variant_id": it.variant_id,
                "added_at": it.added_at,
                "product": {k: view[k] for k in _SUMMARY_FIELDS},
            }
        )
    return {"products": entries}


class WishlistService:
    """Per-user set of (product, variant?) entries."""

    def __init__(self, db: Session, cart_service: CartService | None = None):
        self.repo = WishlistRepo(db)
        self.catalog = ProductRepo(db)
        self.carts = cart_service or CartService(db)

    def get_wishlist(self, user_id: int) -> Dict[str, Any]:
        return serialize_wishlist(self.repo.get_by_user(user_id))

    def add(self, user_id: int, product_slug: str, variant_id: int | None = None) -> Dict[str, Any]:
        product = self.catalog.get_by_slug(product_slug, status="active")
        if not product:
            raise ProductNotFound()

        if variant_id is None:
            first_active = next((v for v in product.variants if v.is_active), None)
            variant_id = first_active.id if first_active else None

        wishlist = self.repo.get_or_create(user_id)
        if self._has(wishlist, product.id, variant_id):
            logger.info(f"Product {product.id}/{variant_id} already on wishlist of user {user_id}")
        else:
            wishlist.items.append(WishlistItemModel(product_id=product.id, variant_id=variant_id))
            logger.info(f"Product {product.id}/{variant_id} added to wishlist of user {user_id}")

        self.repo.save(wishlist)
        return serialize_wishlist(wishlist)

    def remove(self, user_id: int, product_slug: str) -> Dict[str, Any]:
        product = self.catalog.get_by_slug(product_slug, status="active")
        if not product:
            raise ProductNotFound()
        return self._remove_products(user_id, {product.id})

    def bulk_remove(self, user_id: int, slugs: List[str]) -> Dict[str, Any]:
        products = self.catalog.get_active_by_slugs(slugs)
        return self._remove_products(user_id, {p.id for p in products})

    def clear(self, user_id: int) -> Dict[str, Any]:
        wishlist = self.repo.get_by_user(user_id)
        if wishlist is None:
            return serialize_wishlist(None)

        wishlist.items = []
        self.repo.save(wishlist)
        logger.info(f"Wishlist of user {user_id} cleared")
        return serialize_wishlist(wishlist)

    def merge(self, user_id: int, slugs: List[str]) -> int:
        """Adds active products by slug (no variant). Returns how many entries were new."""
        products = self.catalog.get_active_by_slugs(slugs)
        if not products:
            return 0

        wishlist = self.repo.get_or_create(user_id)
        added = 0
        for product in products:
            if not self._has(wishlist, product.id, None):
                wishlist.items.append(WishlistItemModel(product_id=product.id, variant_id=None))
                added += 1

        self.repo.save(wishlist)
        logger.info(f"Merged {added} product(s) into wishlist of user {user_id}")
        return added

    def move_to_cart(self, user_id: int, product_ids: Iterable[int] = (), move_all: bool = False) -> Dict[str, Any]:
        wishlist = self.repo.get_by_user(user_id)
        if wishlist is None or not wishlist.items:
            raise ValidationFailed("Wishlist empty")

        selected_ids = set(product_ids)
        moving = [
            it for it in wishlist.items if move_all or it.product_id in selected_ids
        ]
        if not moving:
            raise ValidationFailed("No items selected")

        to_cart = []
        for it in moving:
            product = it.product
            if product is None or product.status != "active":
                continue

            variant = next((v for v in product.variants if v.id == it.variant_id and v.is_active), None)
            if variant is None:
                variant = next((v for v in product.variants if v.is_active), None)
            if variant is None:
                continue

            to_cart.append(MergeItemIn(product_id=product.id, variant_id=variant.id, quantity=1))

        cart = self.carts.merge(user_id, to_cart)

        moved = {id(it) for it in moving}
        wishlist.items = [it for it in wishlist.items if id(it) not in moved]
        self.repo.save(wishlist)

        logger.info(f"Moved {len(to_cart)} of {len(moving)} wishlist item(s) to cart of user {user_id}")
        return cart

    @staticmethod
    def _has(wishlist: WishlistModel, product_id: int, variant_id: int | None) -> bool:
        return any(
            it.product_id == product_id and it.variant_id == variant_id for it in wishlist.items
        )

    def _remove_products(self, user_id: int, product_ids: set[int]) -> Dict[str, Any]:
        wishlist = self.repo.get_by_user(user_id)
        if wishlist is None:
            return serialize_wishlist(None)

        if product_ids:
            wishlist.items = [it for it in wishlist.items if it.product_id not in product_ids]
            self.repo.save(wishlist)
        return serialize_wishlist(wishlist)

# app/services/inventory_service.py
from sqlalchemy.orm import Session

from app.repos.product_repo import ProductRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


class InventoryService:
    """
    Only writer of a variant's inventory_quantity.
    Both operations are a single conditional UPDATE, the caller owns the transaction.
    """

    def __init__(self, db: Session, catalog: ProductRepo | None = None):
        self.catalog = catalog or ProductRepo(db)

    def reserve(self, product_id: int, variant_id: int, quantity: int) -> bool:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        tracked = self.catalog.is_tracked(product_id, variant_id)
        if tracked is None:
            logger.warning(f"Reservation for missing variant {variant_id} of product {product_id}")
            return False

        if not tracked:
            # untracked stock never runs out
            return True

        ok = self.catalog.conditional_decrement_stock(product_id, variant_id, quantity)
        if ok:
            logger.info(f"Reserved {quantity} of variant {variant_id} (product {product_id})")
        else:
            logger.warning(f"Reservation of {quantity} for variant {variant_id} lost, stock too low")
        return ok

    def restock(self, product_id: int, variant_id: int, delta: int) -> bool:
        """Signed adjustment, refused when it would take stock below zero."""
        ok = self.catalog.adjust_stock(product_id, variant_id, delta)
        if ok:
            logger.info(f"Stock of variant {variant_id} adjusted by {delta}")
        else:
            logger.warning(f"Stock adjustment {delta} for variant {variant_id} refused")
        return ok

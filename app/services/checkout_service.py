# app/services/checkout_service.py
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.data.database import run_in_transaction
from app.data.models.order import OrderItemModel, OrderModel
from app.domain.errors import (
    CheckoutError,
    EmptyCart,
    InsufficientStock,
    PersistenceError,
    StockConflict,
    VariantNotFound,
)
from app.domain.pricing import ZERO, effective_price, utcnow
from app.repos.cart_repo import CartRepo
from app.repos.order_repo import OrderRepo
from app.repos.product_repo import ProductRepo
from app.services.inventory_service import InventoryService
from app.services.notification_service import NotificationService
from app.services.order_service import serialize_order
from app.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutService:
    """
    Cart -> Order conversion.

    One transaction covers reading the cart, the live read of every variant,
    every stock reservation, the order insert and clearing the cart. Any
    failure rolls all of it back, so the cart and the stock counters are left
    exactly as they were before the attempt.
    """

    def __init__(self, db: Session, notifications: NotificationService | None = None):
        self.db = db
        self.carts = CartRepo(db)
        self.orders = OrderRepo(db)
        self.catalog = ProductRepo(db)
        self.inventory = InventoryService(db, catalog=self.catalog)
        self.notifications = notifications or NotificationService()

    def checkout(self, user_id: int, payment_info: dict | None = None) -> Dict[str, Any]:
        try:
            order = run_in_transaction(
                self.db, lambda db: self._place_order(user_id, payment_info)
            )
        except CheckoutError as e:
            logger.warning(f"Checkout of user {user_id} aborted: {e}")
            raise
        except SQLAlchemyError as e:
            logger.exception(f"Checkout of user {user_id} failed in the store")
            raise PersistenceError() from e

        logger.info(f"Order {order.id} placed by user {user_id}, total {order.total_amount}")

        try:
            self.notifications.send_order_notification(user_id, order.id)
        except Exception as e:
            # the order is committed, a lost notice does not undo it
            logger.warning(f"Order notification for order {order.id} not queued: {e}")

        return serialize_order(order)

    def _place_order(self, user_id: int, payment_info: dict | None) -> OrderModel:
        now = utcnow()

        cart = self.carts.get_cart_by_user(user_id, for_update=True)
        if cart is None or not cart.items:
            raise EmptyCart()

        total: Decimal = ZERO
        lines: list[OrderItemModel] = []

        for item in cart.items:
            variant = self.catalog.find_variant(item.product_id, item.variant_id)
            if variant is None:
                raise VariantNotFound()

            if variant.track_inventory and variant.inventory_quantity < item.quantity:
                raise InsufficientStock(variant.sku)

            unit_price = effective_price(variant.price, now)
            total += unit_price * item.quantity

            if not self.inventory.reserve(item.product_id, item.variant_id, item.quantity):
                raise StockConflict(variant.sku)

            line = OrderItemModel(
                product_id=item.product_id,
                variant_id=item.variant_id,
                sku=variant.sku,
                quantity=item.quantity,
                unit_price=unit_price,
            )
            #live price for the audit trail, attributes as the user picked them
            line.take_snapshot(variant)
            line.variant_attributes = list(item.variant_attributes or [])
            lines.append(line)

        order = self.orders.create_order(
            OrderModel(
                user_id=user_id,
                status="pending",
                total_amount=total,
                payment_info=payment_info,
                items=lines,
            )
        )

        cart.items = []
        cart.total_amount = ZERO
        self.carts.save_cart(cart)

        return order

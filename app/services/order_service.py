# app/services/order_service.py
from typing import Any, Dict

from sqlalchemy.orm import Session

from app.data.models.order import OrderModel
from app.domain.errors import Forbidden, OrderNotFound
from app.repos.order_repo import OrderRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


def serialize_order(order: OrderModel) -> Dict[str, Any]:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "items": [
            {
                "product_id": it.product_id,
                "variant_id": it.variant_id,
                "sku": it.sku,
                "quantity": it.quantity,
                "unit_price": it.unit_price,
                "price_snapshot": {
                    "base": it.price_base,
                    "sale": it.price_sale,
                    "sale_start_date": it.sale_start_date,
                    "sale_end_date": it.sale_end_date,
                },
                "variant_attributes_snapshot": it.variant_attributes or [],
            }
            for it in order.items
        ],
        "total_amount": order.total_amount,
        "status": order.status,
        "payment_info": order.payment_info,
        "created_at": order.created_at,
    }


class OrderService:
    """Order history queries. Orders are created only by CheckoutService."""

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)

    def list_orders(self, user_id: int) -> list[Dict[str, Any]]:
        return [serialize_order(o) for o in self.repo.list_by_user(user_id)]

    def get_order(self, order_id: int, user_id: int) -> Dict[str, Any]:
        order = self.repo.get_order(order_id)

        if not order:
            raise OrderNotFound()

        if order.user_id != user_id:
            logger.warning(f"User {user_id} tried to read order {order_id} of user {order.user_id}")
            raise Forbidden()

        return serialize_order(order)

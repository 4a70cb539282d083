# app/api/routers/orders.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.data.database import get_db
from app.data.models.user import UserModel
from app.domain.schemas import OrderListOut, OrderOut
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.get("", response_model=OrderListOut)
def list_orders(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    orders = get_service(db).list_orders(user.id)
    return OrderListOut(count=len(orders), orders=orders)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Order details, only for its owner."""
    return OrderOut(order=get_service(db).get_order(order_id, user.id))

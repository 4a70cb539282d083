# app/api/routers/carts.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.data.database import get_db
from app.data.models.user import UserModel
from app.domain.schemas import (
    BulkRemoveIn,
    CartItemIn,
    CartItemUpdate,
    CartOut,
    CheckoutIn,
    MergeCartIn,
    OrderOut,
)
from app.services.cart_service import CartService
from app.services.checkout_service import CheckoutService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("", response_model=CartOut)
def get_cart(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return CartOut(cart=get_service(db).get_cart(user.id))


@router.post("", response_model=CartOut)
def add_item(
    payload: CartItemIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    cart = svc.add_item(
        user.id,
        quantity=payload.quantity,
        product_id=payload.product_id,
        product_slug=payload.product_slug,
        variant_id=payload.variant_id,
    )
    return CartOut(message="Item added to cart", cart=cart)


@router.put("/item", response_model=CartOut)
def update_item(
    payload: CartItemUpdate,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    cart = svc.update_item(user.id, payload.product_id, payload.variant_id, payload.quantity)
    return CartOut(message="Cart updated", cart=cart)


@router.delete("/item", response_model=CartOut)
def remove_item(
    product_id: int = Query(..., gt=0),
    variant_id: int = Query(..., gt=0),
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    cart = get_service(db).remove_item(user.id, product_id, variant_id)
    return CartOut(message="Item removed", cart=cart)


@router.post("/bulk-remove", response_model=CartOut)
def bulk_remove(
    payload: BulkRemoveIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    pairs = [(it.product_id, it.variant_id) for it in payload.items]
    cart = get_service(db).bulk_remove(user.id, pairs)
    return CartOut(message="Items removed", cart=cart)


@router.post("/merge", response_model=CartOut)
def merge_cart(
    payload: MergeCartIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    cart = get_service(db).merge(user.id, payload.items)
    return CartOut(message="Cart merged", cart=cart)


@router.delete("/clear", response_model=CartOut)
def clear_cart(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return CartOut(message="Cart cleared", cart=get_service(db).clear_cart(user.id))


@router.post("/checkout", response_model=OrderOut, status_code=201)
def checkout(
    payload: CheckoutIn | None = None,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    payment_info = payload.payment_info if payload else None
    order = CheckoutService(db).checkout(user.id, payment_info)
    return OrderOut(order=order)

# app/api/routers/wishlist.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.data.database import get_db
from app.data.models.user import UserModel
from app.domain.schemas import CartOut, MessageOut, MoveToCartIn, SlugsIn, WishlistAddIn, WishlistOut
from app.services.wishlist_service import WishlistService

router = APIRouter(prefix="/wishlist", tags=["wishlist"])


def get_service(db: Session):
    return WishlistService(db)


@router.get("", response_model=WishlistOut)
def get_wishlist(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return WishlistOut(wishlist=get_service(db).get_wishlist(user.id))


@router.post("/add", response_model=WishlistOut)
def add_to_wishlist(
    payload: WishlistAddIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    wishlist = get_service(db).add(user.id, payload.product_slug, payload.variant_id)
    return WishlistOut(message="Added to wishlist", wishlist=wishlist)


@router.delete("/remove/{product_slug}", response_model=WishlistOut)
def remove_from_wishlist(
    product_slug: str,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return WishlistOut(message="Removed from wishlist", wishlist=get_service(db).remove(user.id, product_slug))


@router.post("/move-to-cart", response_model=CartOut)
def move_to_cart(
    payload: MoveToCartIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    cart = get_service(db).move_to_cart(user.id, payload.product_ids, payload.move_all)
    return CartOut(message="Wishlist items moved to cart", cart=cart)


@router.post("/merge", response_model=MessageOut)
def merge_wishlist(
    payload: SlugsIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    added = get_service(db).merge(user.id, payload.slugs)
    if not added:
        return MessageOut(message="No products to merge")
    return MessageOut(message="Wishlist merged successfully")


@router.post("/bulk-remove", response_model=WishlistOut)
def bulk_remove(
    payload: SlugsIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return WishlistOut(wishlist=get_service(db).bulk_remove(user.id, payload.slugs))


@router.delete("/clear", response_model=WishlistOut)
def clear_wishlist(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return WishlistOut(message="Wishlist cleared", wishlist=get_service(db).clear(user.id))

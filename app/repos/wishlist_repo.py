# app/repos/wishlist_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.data.models.product import ProductModel
from app.data.models.wishlist import WishlistItemModel, WishlistModel


class WishlistRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_user(self, user_id: int) -> WishlistModel | None:
        return self.db.execute(
            select(WishlistModel)
            .where(WishlistModel.user_id == user_id)
            .options(
                selectinload(WishlistModel.items)
                .selectinload(WishlistItemModel.product)
                .selectinload(ProductModel.variants)
            )
        ).scalar_one_or_none()

    def get_or_create(self, user_id: int) -> WishlistModel:
        wishlist = self.get_by_user(user_id)
        if wishlist is None:
            wishlist = WishlistModel(user_id=user_id, items=[])
            self.db.add(wishlist)
            self.db.flush()
        return wishlist

    def save(self, wishlist: WishlistModel) -> WishlistModel:
        self.db.add(wishlist)
        self.db.commit()
        return wishlist

# app/repos/cart_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_user(self, user_id: int, for_update: bool = False) -> CartModel | None:
        stmt = (
            select(CartModel)
            .where(CartModel.user_id == user_id)
            .options(selectinload(CartModel.items))
        )
        if for_update:
            # serializes two checkouts of the same cart (ignored by sqlite)
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_or_create_cart(self, user_id: int) -> CartModel:
        cart = self.get_cart_by_user(user_id)
        if cart is None:
            cart = CartModel(user_id=user_id, total_amount=0, items=[])
            self.db.add(cart)
            self.db.flush()
        return cart

    @staticmethod
    def find_item(cart: CartModel, product_id: int, variant_id: int) -> CartItemModel | None:
        return next(
            (
                it
                for it in cart.items
                if it.product_id == product_id and it.variant_id == variant_id
            ),
            None,
        )

    def save_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

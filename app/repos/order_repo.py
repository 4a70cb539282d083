# app/repos/order_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.data.models.order import OrderModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        # no commit, runs inside the checkout transaction
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(selectinload(OrderModel.items))
        ).scalar_one_or_none()

    def list_by_user(self, user_id: int) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.user_id == user_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
                .options(selectinload(OrderModel.items))
            ).scalars()
        )

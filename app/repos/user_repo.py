# app/repos/user_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.data.models.user import UserModel


class UserRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def get_by_email(self, email: str) -> UserModel | None:
        return self.db.execute(
            select(UserModel).where(UserModel.email == email.lower())
        ).scalar_one_or_none()

    def get_by_phone(self, phone: str) -> UserModel | None:
        return self.db.execute(
            select(UserModel).where(UserModel.phone == phone)
        ).scalar_one_or_none()

    def get_by_google_id(self, google_id: str) -> UserModel | None:
        return self.db.execute(
            select(UserModel).where(UserModel.google_id == google_id)
        ).scalar_one_or_none()

    def create_user(self, user: UserModel) -> UserModel:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def save(self, user: UserModel) -> UserModel:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

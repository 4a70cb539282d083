# app/api/deps.py
import redis
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.data.database import get_db
from app.data.models.user import UserModel
from app.domain.errors import Forbidden, Unauthenticated
from app.repos.user_repo import UserRepo
from app.services.google_client import GoogleClient
from app.services.token_service import TokenService

bearer = HTTPBearer(auto_error=False)


def get_redis(request: Request) -> redis.Redis:
    # created once in the app lifespan
    return request.app.state.redis


def get_token_service(redis_client: redis.Redis = Depends(get_redis)) -> TokenService:
    return TokenService(redis_client)


def get_google_client() -> GoogleClient:
    return GoogleClient()


def get_token_payload(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    tokens: TokenService = Depends(get_token_service),
) -> dict:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Not authenticated")
    return tokens.decode(credentials.credentials)


def get_current_user(
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
) -> UserModel:
    user = UserRepo(db).get_user(int(payload["sub"]))
    if user is None:
        raise Unauthenticated("User not found")
    if user.status != "active":
        raise Forbidden("Your account is not active")
    return user


def require_admin(user: UserModel = Depends(get_current_user)) -> UserModel:
    if user.role != "admin":
        raise Forbidden("Admin access required")
    return user

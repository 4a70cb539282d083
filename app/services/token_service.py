# app/services/token_service.py
import uuid
from datetime import datetime, timedelta, timezone

import jwt
import redis

from app.data.models.user import UserModel
from app.domain.errors import Unauthenticated
from app.utils.retry import redis_retry
from app.utils.settings import ACCESS_TOKEN_TTL_SECONDS, JWT_ALGORITHM, JWT_SECRET
from app.utils.logging import get_logger

logger = get_logger(__name__)


class TokenService:
    """
    HS256 access tokens {sub, role, jti, iat, exp}.
    Logout puts the jti on a Redis blacklist until the token would expire anyway.
    """

    def __init__(self, redis_client: redis.Redis, secret: str | None = None, ttl_seconds: int | None = None):
        self.redis = redis_client
        self.secret = secret or JWT_SECRET
        self.ttl_seconds = ttl_seconds or ACCESS_TOKEN_TTL_SECONDS

    @staticmethod
    def _blacklist_key(jti: str) -> str:
        return f"blacklist:{jti}"

    def issue(self, user: UserModel) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "role": user.role,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + timedelta(seconds=self.ttl_seconds),
        }
        return jwt.encode(payload, self.secret, algorithm=JWT_ALGORITHM)

    def decode(self, token: str) -> dict:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Token expired")
        except jwt.InvalidTokenError:
            raise Unauthenticated("Invalid token")

        if not payload.get("sub") or not payload.get("jti"):
            raise Unauthenticated("Invalid token")

        if self._is_revoked(payload["jti"]):
            raise Unauthenticated("Token revoked")

        return payload

    def revoke(self, payload: dict) -> None:
        ttl = int(payload["exp"] - datetime.now(timezone.utc).timestamp())
        if ttl <= 0:
            return
        self._blacklist(payload["jti"], ttl)
        logger.info(f"Token {payload['jti']} of user {payload['sub']} revoked")

    @redis_retry()
    def _blacklist(self, jti: str, ttl: int) -> None:
        self.redis.set(self._blacklist_key(jti), "1", ex=ttl)

    @redis_retry()
    def _is_revoked(self, jti: str) -> bool:
        return bool(self.redis.exists(self._blacklist_key(jti)))

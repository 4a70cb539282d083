# app/services/otp_service.py
import hashlib
import hmac
import secrets

import redis

from app.domain.errors import TooManyAttempts, Unauthenticated
from app.utils.retry import redis_retry
from app.utils.settings import OTP_MAX_ATTEMPTS, OTP_TTL_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)


def generate_otp() -> str:
    return str(100000 + secrets.randbelow(900000))


def _hash(otp: str) -> str:
    return hashlib.sha256(otp.encode()).hexdigest()


class OtpService:
    """
    One-time phone codes kept in Redis.
    otp:{phone} holds the sha256 of the code, otp:attempts:{phone} counts verify calls.
    """

    def __init__(self, redis_client: redis.Redis, ttl_seconds: int | None = None, max_attempts: int | None = None):
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds or OTP_TTL_SECONDS
        self.max_attempts = max_attempts or OTP_MAX_ATTEMPTS

    @staticmethod
    def _code_key(phone: str) -> str:
        return f"otp:{phone}"

    @staticmethod
    def _attempts_key(phone: str) -> str:
        return f"otp:attempts:{phone}"

    @redis_retry()
    def issue(self, phone: str) -> str:
        otp = generate_otp()
        self.redis.set(self._code_key(phone), _hash(otp), ex=self.ttl_seconds)
        self.redis.delete(self._attempts_key(phone))
        logger.info(f"OTP issued for {phone}")
        return otp

    def verify(self, phone: str, otp: str) -> None:
        attempts = self._count_attempt(phone)

        if attempts > self.max_attempts:
            logger.warning(f"OTP attempts exhausted for {phone}")
            raise TooManyAttempts()

        stored = self._stored_hash(phone)
        if not stored:
            raise Unauthenticated("OTP expired or not requested")

        if isinstance(stored, bytes):
            stored = stored.decode()

        if not hmac.compare_digest(stored, _hash(otp)):
            logger.warning(f"Wrong OTP for {phone} (attempt {attempts})")
            raise Unauthenticated("Invalid OTP")

        # single use
        self._consume(phone)

    def _count_attempt(self, phone: str) -> int:
        #no retry here, a repeated INCR would count one attempt twice
        attempts_key = self._attempts_key(phone)
        attempts = self.redis.incr(attempts_key)
        if attempts == 1:
            self.redis.expire(attempts_key, self.ttl_seconds)
        return attempts

    @redis_retry()
    def _stored_hash(self, phone: str) -> str | None:
        return self.redis.get(self._code_key(phone))

    @redis_retry()
    def _consume(self, phone: str) -> None:
        self.redis.delete(self._code_key(phone), self._attempts_key(phone))

# app/utils/retry.py
import logging

import redis
import requests
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.utils.settings import HTTP_RETRY_ATTEMPTS, REDIS_RETRY_ATTEMPTS
from app.utils.logging import get_logger

logger = get_logger(__name__)


def _is_transient_http(exc: BaseException) -> bool:
    """Network failures and 5xx answers. A 4xx will not change on a second try."""
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True
    if isinstance(exc, requests.HTTPError):
        response = exc.response
        return response is None or response.status_code >= 500
    return False


def http_retry(attempts: int | None = None):
    """Outbound provider calls: Google tokeninfo, SMS gateway."""
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts or HTTP_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception(_is_transient_http),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )


def redis_retry(attempts: int | None = None):
    """
    Idempotent Redis commands: OTP codes, token blacklist.
    Only lost connections are retried, a ResponseError is a bug in the command.
    """
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts or REDIS_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type((redis.ConnectionError, redis.TimeoutError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )

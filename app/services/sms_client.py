# app/services/sms_client.py
import requests

from app.utils.retry import http_retry
from app.utils.settings import FAST2SMS_API_KEY, FAST2SMS_URL, HTTP_TIMEOUT_SECONDS, SMS_PROVIDER
from app.utils.logging import get_logger

logger = get_logger(__name__)


class SmsClient:
    """
    SMS delivery.
    "console" only logs the message (dev mode), "fast2sms" posts to the gateway.
    """

    def __init__(
        self,
        provider: str | None = None,
        api_key: str | None = None,
        url: str | None = None,
        timeout: int | None = None,
    ):
        self.provider = (provider or SMS_PROVIDER).lower()
        self.api_key = api_key if api_key is not None else FAST2SMS_API_KEY
        self.url = url or FAST2SMS_URL
        self.timeout = timeout or HTTP_TIMEOUT_SECONDS

    def send(self, phone: str, message: str) -> dict:
        if self.provider == "fast2sms":
            return self._send_fast2sms(phone, message)

        logger.info(f"[SMS:console] to {phone}: {message}")
        return {"status": "DEV_MODE", "message": "SMS not sent, logged only"}

    @http_retry()
    def _send_fast2sms(self, phone: str, message: str) -> dict:
        logger.info(f"SmsClient POST {self.url} to {phone}")

        resp = requests.post(
            self.url,
            json={"route": "otp", "message": message, "numbers": phone},
            headers={"authorization": self.api_key},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

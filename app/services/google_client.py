# app/services/google_client.py
import requests

from app.domain.errors import Unauthenticated
from app.utils.retry import http_retry
from app.utils.settings import GOOGLE_CLIENT_ID, GOOGLE_TOKENINFO_URL, HTTP_TIMEOUT_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)


class GoogleClient:
    """Verifies Google ID tokens against the tokeninfo endpoint."""

    def __init__(
        self,
        client_id: str | None = None,
        tokeninfo_url: str | None = None,
        timeout: int | None = None,
    ):
        self.client_id = client_id if client_id is not None else GOOGLE_CLIENT_ID
        self.tokeninfo_url = tokeninfo_url or GOOGLE_TOKENINFO_URL
        self.timeout = timeout or HTTP_TIMEOUT_SECONDS

    @http_retry()
    def _tokeninfo(self, id_token: str) -> requests.Response:
        logger.info(f"GoogleClient GET {self.tokeninfo_url}")

        resp = requests.get(self.tokeninfo_url, params={"id_token": id_token}, timeout=self.timeout)
        #a 4xx is a bad token, answered by verify_id_token
        if resp.status_code >= 500:
            resp.raise_for_status()
        return resp

    def verify_id_token(self, id_token: str) -> dict:
        resp = self._tokeninfo(id_token)
        if resp.status_code != 200:
            raise Unauthenticated("Invalid Google token")

        info = resp.json()

        if self.client_id and info.get("aud") != self.client_id:
            logger.warning(f"Google token issued for another audience: {info.get('aud')}")
            raise Unauthenticated("Invalid Google token")

        if str(info.get("email_verified", "")).lower() != "true" or not info.get("email"):
            raise Unauthenticated("Google email not verified")

        return {
            "google_id": info["sub"],
            "email": info["email"].lower(),
            "name": info.get("name"),
        }

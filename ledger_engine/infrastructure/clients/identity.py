"""Authenticated session identity"""

import logging

import httpx

from ledger_engine.config import settings
from ledger_engine.services.repository import IdentityProvider

logger = logging.getLogger(__name__)


class SessionIdentity(IdentityProvider):
    """Identity backed by a bearer-token session with the auth service"""

    def __init__(
        self,
        user_id: str | None,
        access_token: str | None = None,
        auth_url: str | None = None,
        client: httpx.Client | None = None,
    ):
        self.user_id = user_id
        self.access_token = access_token
        self.auth_url = (auth_url or settings.auth_api_base).rstrip("/")
        self.client = client or httpx.Client(timeout=settings.http_timeout_seconds)

    def current_user_id(self) -> str | None:
        return self.user_id

    def sign_out(self) -> None:
        """
        End the session with the auth service and forget it locally.

        The local session is cleared even if the logout call fails, so a
        dead token is never reused.
        """
        token = self.access_token
        self.user_id = None
        self.access_token = None
        if not token:
            return
        try:
            response = self.client.post(
                f"{self.auth_url}/logout",
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Logout call failed", extra={"error": str(e)})


class HeaderIdentity(IdentityProvider):
    """Identity asserted by an upstream gateway (X-User-Id header)"""

    def __init__(self, user_id: str | None):
        self.user_id = user_id

    def current_user_id(self) -> str | None:
        return self.user_id

    def sign_out(self) -> None:
        self.user_id = None

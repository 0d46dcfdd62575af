"""
Identity Provider Client

Validates bearer tokens against the Supabase Auth REST API
(GET /auth/v1/user). The API never sees passwords; it only asks the provider
who a token belongs to.
"""
import logging
from typing import Dict, Any, Optional

import requests

from spendwise.config import settings

logger = logging.getLogger(__name__)


class InvalidTokenError(Exception):
    """The provider rejected the token."""


class IdentityProviderError(Exception):
    """The provider could not be reached or answered unexpectedly."""


class IdentityProviderClient:
    """Thin HTTP client for the identity provider's user endpoint."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0,
                 http: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.http = http or requests.Session()

    def get_user(self, access_token: str) -> Dict[str, Any]:
        """
        Resolve an access token to the provider's user record.

        Args:
            access_token: Bearer token presented by the client

        Returns:
            User record with at least an "id" key

        Raises:
            InvalidTokenError: If the provider rejects the token
            IdentityProviderError: If the provider is unreachable or errors
        """
        try:
            response = self.http.get(
                f"{self.base_url}/auth/v1/user",
                headers={
                    "apikey": self.api_key,
                    "Authorization": f"Bearer {access_token}",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Identity provider request failed: %s", exc)
            raise IdentityProviderError(str(exc)) from exc

        if response.status_code in (401, 403):
            raise InvalidTokenError("Token rejected by identity provider")

        try:
            response.raise_for_status()
            user = response.json()
        except (requests.HTTPError, ValueError) as exc:
            logger.error("Identity provider returned an unusable response: %s", exc)
            raise IdentityProviderError(str(exc)) from exc

        if not isinstance(user, dict) or not user.get("id"):
            raise InvalidTokenError("Identity provider returned no user")

        return user


def display_name(user: Dict[str, Any]) -> str:
    """Best-effort display name from the provider's user metadata."""
    metadata = user.get("user_metadata") or {}
    return (metadata.get("full_name") or metadata.get("name") or "").strip()


_client: Optional[IdentityProviderClient] = None


def get_identity_client() -> IdentityProviderClient:
    """FastAPI dependency returning the process-wide identity client."""
    global _client
    if _client is None:
        _client = IdentityProviderClient(
            settings.SUPABASE_URL,
            settings.SUPABASE_KEY,
            timeout=settings.IDENTITY_TIMEOUT_SECONDS,
        )
    return _client

"""Session lookup against the external identity provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityUser:
    id: str
    email: str | None = None


class IdentityClient:
    """Resolves a session access token to the authenticated user."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required for the identity client")
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._transport = transport

    async def get_user(self, access_token: str) -> IdentityUser | None:
        """Return the session's user, or None when the session is not valid."""
        headers = {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout
            ) as client:
                response = await client.get(f"{self.base_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Identity provider unreachable: %s", exc)
            return None

        if response.status_code in (401, 403):
            return None
        if not response.is_success:
            logger.warning("Identity lookup failed with HTTP %s", response.status_code)
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Identity provider returned a non-JSON body")
            return None

        if not isinstance(payload, dict) or not payload.get("id"):
            return None
        email = payload.get("email")
        return IdentityUser(id=str(payload["id"]), email=str(email) if email else None)

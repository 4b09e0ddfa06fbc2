"""HTTP client for the remote procedure layer."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

MISSING_PROCEDURE_CODE = "PGRST202"
_MISSING_PROCEDURE_MESSAGE = "Could not find the function"


@dataclass(frozen=True)
class RemoteErrorDetail:
    """Error shape returned by the remote layer."""

    message: str = ""
    code: str | None = None
    details: str | None = None
    hint: str | None = None
    http_status: int | None = None

    @classmethod
    def from_payload(cls, payload: object, http_status: int | None = None) -> "RemoteErrorDetail":
        if not isinstance(payload, Mapping):
            text = str(payload).strip() if payload is not None else ""
            return cls(message=text, http_status=http_status)

        def _text(key: str) -> str | None:
            value = payload.get(key)
            return str(value) if value is not None else None

        return cls(
            message=_text("message") or "",
            code=_text("code"),
            details=_text("details"),
            hint=_text("hint"),
            http_status=http_status,
        )


def is_missing_procedure_error(error: RemoteErrorDetail | None) -> bool:
    """True when the remote reports that the named procedure does not exist."""
    if error is None:
        return False
    if error.code == MISSING_PROCEDURE_CODE:
        return True
    return _MISSING_PROCEDURE_MESSAGE in (error.message or "")


class RemoteProcedureError(Exception):
    """Raised when a remote procedure call returns an error."""

    def __init__(self, procedure: str, error: RemoteErrorDetail) -> None:
        super().__init__(error.message or f"Remote procedure {procedure} failed")
        self.procedure = procedure
        self.error = error

    @property
    def is_missing_procedure(self) -> bool:
        return is_missing_procedure_error(self.error)


class RemoteProcedureClient:
    """Invokes named stored procedures with an untyped parameter bag."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        *,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required for the remote procedure client")
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._transport = transport

    def _headers(self, access_token: str | None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self._api_key:
            headers["apikey"] = self._api_key
        bearer = access_token or self._api_key
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        return headers

    async def call(
        self,
        procedure: str,
        params: Mapping[str, object] | None = None,
        *,
        access_token: str | None = None,
    ) -> Any:
        """Invoke ``procedure`` and return its decoded result.

        Raises ``RemoteProcedureError`` for any remote or transport failure.
        """
        url = f"{self.base_url}/rest/v1/rpc/{procedure}"
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout
            ) as client:
                response = await client.post(
                    url,
                    json=dict(params or {}),
                    headers=self._headers(access_token),
                )
        except httpx.HTTPError as exc:
            logger.warning("Remote procedure %s unreachable: %s", procedure, exc)
            raise RemoteProcedureError(
                procedure,
                RemoteErrorDetail(message="Unable to reach remote procedure layer"),
            ) from exc

        if response.status_code == 204 or not response.content:
            if response.is_success:
                return None

        try:
            payload = response.json()
        except ValueError:
            payload = response.text

        if not response.is_success:
            detail = RemoteErrorDetail.from_payload(payload, http_status=response.status_code)
            if not detail.message:
                detail = RemoteErrorDetail(
                    message=f"Remote procedure {procedure} failed with HTTP {response.status_code}",
                    code=detail.code,
                    http_status=response.status_code,
                )
            logger.debug(
                "Remote procedure %s failed: code=%s status=%s",
                procedure,
                detail.code,
                response.status_code,
            )
            raise RemoteProcedureError(procedure, detail)

        return payload

"""Client for the object-storage presigning worker."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from freight_gateway.errors import ConfigurationError, UpstreamServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresignedUpload:
    upload_url: str
    object_key: str
    expires_in: int | None


@dataclass(frozen=True)
class PresignedView:
    view_url: str
    expires_in: int | None


def build_worker_headers(access_token: str) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {access_token}",
    }


def _expires_in(payload: dict[str, Any]) -> int | None:
    value = payload.get("expires_in")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


class PresignWorkerClient:
    """Requests short-lived read and write URLs for stored objects."""

    def __init__(
        self,
        base_url: str | None,
        *,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") if base_url else None
        self._timeout = timeout_seconds
        self._transport = transport

    def _require_base_url(self) -> str:
        if not self.base_url:
            raise ConfigurationError("Missing server config: R2_PRESIGN_WORKER_URL")
        return self.base_url

    async def _post(
        self, path: str, body: dict[str, object], access_token: str | None
    ) -> tuple[httpx.Response, dict[str, Any] | None]:
        base_url = self._require_base_url()
        if not access_token:
            raise ConfigurationError("Missing worker auth context: no session access token")

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout
            ) as client:
                response = await client.post(
                    f"{base_url}{path}",
                    json=body,
                    headers=build_worker_headers(access_token),
                )
        except httpx.HTTPError as exc:
            logger.warning("Presign worker unreachable at %s: %s", path, exc)
            raise UpstreamServiceError("Unable to reach R2 presign worker") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None
        return response, payload if isinstance(payload, dict) else None

    async def presign_put(
        self,
        *,
        trip_id: str,
        doc_type: str,
        file_ext: str,
        object_key: str,
        access_token: str | None,
    ) -> PresignedUpload:
        """Ask the worker to sign a PUT for the canonical ``object_key``."""
        response, payload = await self._post(
            "/presign/put",
            {
                "tripId": trip_id,
                "docType": doc_type,
                "fileExt": file_ext,
                "objectKey": object_key,
            },
            access_token,
        )
        upload_url = payload.get("upload_url") if payload else None
        if not response.is_success or not upload_url:
            error = payload.get("error") if payload else None
            logger.warning(
                "Presign PUT rejected (status=%s, doc_type=%s)", response.status_code, doc_type
            )
            raise UpstreamServiceError(error or "Unable to prepare upload URL from worker")

        signed_key = payload.get("object_key")
        if signed_key and signed_key != object_key:
            raise UpstreamServiceError(
                "Worker returned unexpected object key. "
                "Please update worker to sign requested objectKey."
            )

        return PresignedUpload(
            upload_url=str(upload_url),
            object_key=object_key,
            expires_in=_expires_in(payload),
        )

    async def presign_get(self, *, object_key: str, access_token: str | None) -> PresignedView:
        """Ask the worker for a time-limited view URL."""
        response, payload = await self._post(
            "/presign/get",
            {"objectKey": object_key},
            access_token,
        )
        view_url = payload.get("view_url") if payload else None
        if not response.is_success or not view_url:
            error = payload.get("error") if payload else None
            raise UpstreamServiceError(error or "Unable to generate file view URL")
        return PresignedView(view_url=str(view_url), expires_in=_expires_in(payload))

"""Async client for the gateway's JSON routes."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import httpx

from freight_gateway.cache.view_url_cache import CachedViewUrl, ObjectViewUrlCache
from freight_gateway.config import UploadSettings, load_settings
from freight_gateway.uploads.transfer import ProgressCallback
from freight_gateway.uploads.workflow import (
    PreparedUpload,
    UploadedFileResult,
    UploadFileInfo,
    prepare_and_upload_single_file,
)


class GatewayClientError(Exception):
    """A gateway route answered with ``ok: false`` or a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        errors: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.errors = list(errors or [])


def _segment(value: str) -> str:
    return quote(value, safe="")


def _file_payload(info: UploadFileInfo) -> dict[str, object]:
    return {
        "fileName": info.file_name,
        "mimeType": info.mime_type,
        "fileSizeBytes": info.file_size_bytes,
    }


def _uploaded_payload(result: UploadedFileResult) -> dict[str, object]:
    return {
        "objectKey": result.object_key,
        "fileName": result.file_name,
        "mimeType": result.mime_type,
        "fileSizeBytes": result.file_size_bytes,
    }


class GatewayClient:
    """Calls the trip and payment routes and unwraps the ``{ok, data}`` envelope.

    The view-URL cache is injected so several clients can share one.
    Upload retry and timeout limits default to the ``uploads`` settings section.
    """

    def __init__(
        self,
        base_url: str,
        *,
        access_token: str | None = None,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        view_url_cache: ObjectViewUrlCache | None = None,
        upload_transport: httpx.AsyncBaseTransport | None = None,
        upload_settings: UploadSettings | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._timeout = timeout_seconds
        self._transport = transport
        self._upload_transport = upload_transport
        self.upload_settings = (
            upload_settings if upload_settings is not None else load_settings().uploads
        )
        self.view_url_cache = (
            view_url_cache if view_url_cache is not None else ObjectViewUrlCache()
        )

    def _transfer_options(self, options: dict[str, Any]) -> dict[str, Any]:
        options.setdefault("transport", self._upload_transport)
        options.setdefault("max_attempts", self.upload_settings.max_attempts)
        options.setdefault("timeout_seconds", self.upload_settings.timeout_seconds)
        return options

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Mapping[str, object] | None = None,
        params: Mapping[str, object] | None = None,
    ) -> Any:
        """Send a request and return the envelope's ``data``."""
        query = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout
            ) as client:
                response = await client.request(
                    method,
                    f"{self.base_url}{path}",
                    json=dict(json) if json is not None else None,
                    params=query or None,
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            raise GatewayClientError(f"Request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.is_success or not isinstance(payload, dict) or not payload.get("ok"):
            body = payload if isinstance(payload, dict) else {}
            raise GatewayClientError(
                str(body.get("message") or "Request failed"),
                status_code=response.status_code,
                code=body.get("code"),
                errors=body.get("errors"),
            )
        return payload.get("data")

    # -- auth ---------------------------------------------------------------

    async def get_my_profile(self) -> dict[str, Any] | None:
        return await self.request("GET", "/api/auth/me")

    # -- trips --------------------------------------------------------------

    async def list_trips(
        self,
        *,
        search: str | None = None,
        stage: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        return await self.request(
            "GET",
            "/api/trips",
            params={"search": search, "stage": stage, "limit": limit, "offset": offset},
        )

    async def list_trip_history(
        self,
        *,
        search: str | None = None,
        from_date: str | None = None,
        to_date: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        return await self.request(
            "GET",
            "/api/trips/history",
            params={
                "search": search,
                "fromDate": from_date,
                "toDate": to_date,
                "limit": limit,
                "offset": offset,
            },
        )

    async def create_trip(self, trip: Mapping[str, object]) -> dict[str, Any]:
        return await self.request("POST", "/api/trips", json=trip)

    async def list_available_vehicles(
        self,
        *,
        vehicle_type: str | None = None,
        search: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        return await self.request(
            "GET",
            "/api/trips/available-vehicles",
            params={
                "vehicleType": vehicle_type,
                "search": search,
                "limit": limit,
                "offset": offset,
            },
        )

    async def list_ops_vehicles_users(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/trips/ops-vehicles-users")

    async def get_trip(self, trip_id: str) -> dict[str, Any]:
        return await self.request("GET", f"/api/trips/{_segment(trip_id)}")

    async def update_trip(self, trip_id: str, changes: Mapping[str, object]) -> dict[str, Any]:
        return await self.request("PATCH", f"/api/trips/{_segment(trip_id)}", json=changes)

    async def accept_trip(self, trip_id: str) -> dict[str, Any]:
        return await self.request("POST", f"/api/trips/{_segment(trip_id)}/accept")

    async def confirm_trip(
        self, trip_id: str, quote_details: Mapping[str, object]
    ) -> dict[str, Any]:
        return await self.request(
            "POST", f"/api/trips/{_segment(trip_id)}/confirm", json=quote_details
        )

    async def assign_vehicle(
        self,
        trip_id: str,
        vehicle_id: str,
        driver_id: str | None = None,
    ) -> dict[str, Any]:
        return await self.request(
            "POST",
            f"/api/trips/{_segment(trip_id)}/assign-vehicle",
            json={"vehicleId": vehicle_id, "driverId": driver_id},
        )

    async def list_loading_proofs(self, trip_id: str) -> list[dict[str, Any]]:
        return await self.request("GET", f"/api/trips/{_segment(trip_id)}/loading-proof")

    async def prepare_loading_proof(self, trip_id: str, info: UploadFileInfo) -> PreparedUpload:
        data = await self.request(
            "POST",
            f"/api/trips/{_segment(trip_id)}/loading-proof/prepare",
            json=_file_payload(info),
        )
        return PreparedUpload(upload_url=data["uploadUrl"], object_key=data["objectKey"])

    async def confirm_loading_proof(self, trip_id: str, uploaded: UploadedFileResult) -> Any:
        return await self.request(
            "POST",
            f"/api/trips/{_segment(trip_id)}/loading-proof/confirm",
            json=_uploaded_payload(uploaded),
        )

    async def upload_loading_proof(
        self,
        trip_id: str,
        file_name: str,
        content: bytes,
        mime_type: str | None,
        *,
        on_progress: ProgressCallback | None = None,
        **transfer_options: Any,
    ) -> UploadedFileResult:
        """Prepare, transfer and confirm one loading proof file."""

        async def prepare(info: UploadFileInfo) -> PreparedUpload:
            return await self.prepare_loading_proof(trip_id, info)

        async def confirm(uploaded: UploadedFileResult) -> Any:
            return await self.confirm_loading_proof(trip_id, uploaded)

        return await prepare_and_upload_single_file(
            file_name,
            content,
            mime_type,
            prepare=prepare,
            confirm=confirm,
            on_progress=on_progress,
            **self._transfer_options(transfer_options),
        )

    async def create_advance_request(
        self, trip_id: str, advance: Mapping[str, object]
    ) -> dict[str, Any]:
        return await self.request(
            "POST", f"/api/trips/{_segment(trip_id)}/advance-request", json=advance
        )

    async def list_payment_requests(self, trip_id: str) -> list[dict[str, Any]]:
        return await self.request("GET", f"/api/trips/{_segment(trip_id)}/payment-requests")

    async def get_payment_summary(self, trip_id: str) -> dict[str, Any]:
        return await self.request("GET", f"/api/trips/{_segment(trip_id)}/payment-summary")

    async def list_timeline(self, trip_id: str) -> list[dict[str, Any]]:
        return await self.request("GET", f"/api/trips/{_segment(trip_id)}/timeline")

    # -- payments -----------------------------------------------------------

    async def list_payment_queue(
        self,
        *,
        status: str | None = None,
        type: str | None = None,
        search: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        return await self.request(
            "GET",
            "/api/payments/queue",
            params={
                "status": status,
                "type": type,
                "search": search,
                "limit": limit,
                "offset": offset,
            },
        )

    async def prepare_payment_proof(
        self, payment_request_id: str, info: UploadFileInfo
    ) -> PreparedUpload:
        data = await self.request(
            "POST",
            f"/api/payments/{_segment(payment_request_id)}/proof/prepare",
            json=_file_payload(info),
        )
        return PreparedUpload(upload_url=data["uploadUrl"], object_key=data["objectKey"])

    async def mark_payment_paid(
        self,
        payment_request_id: str,
        uploaded: UploadedFileResult,
        *,
        payment_reference: str | None = None,
        paid_amount: float | None = None,
        notes: str | None = None,
    ) -> Any:
        body = _uploaded_payload(uploaded)
        body.update(
            {
                "paymentReference": payment_reference,
                "paidAmount": paid_amount,
                "notes": notes,
            }
        )
        return await self.request(
            "POST",
            f"/api/payments/{_segment(payment_request_id)}/mark-paid",
            json=body,
        )

    async def upload_payment_proof(
        self,
        payment_request_id: str,
        file_name: str,
        content: bytes,
        mime_type: str | None,
        *,
        on_progress: ProgressCallback | None = None,
        **transfer_options: Any,
    ) -> UploadedFileResult:
        """Prepare and transfer a payment proof. Marking paid is a separate call."""

        async def prepare(info: UploadFileInfo) -> PreparedUpload:
            return await self.prepare_payment_proof(payment_request_id, info)

        return await prepare_and_upload_single_file(
            file_name,
            content,
            mime_type,
            prepare=prepare,
            on_progress=on_progress,
            **self._transfer_options(transfer_options),
        )

    async def get_object_view_url(self, object_key: str) -> CachedViewUrl:
        """View URL for a stored object, served from the cache while still valid."""
        cached = await self.view_url_cache.get(object_key)
        if cached is not None:
            return cached

        data = await self.request(
            "POST",
            "/api/payments/object-view-url",
            json={"objectKey": object_key},
        )
        fresh = CachedViewUrl(view_url=data["viewUrl"], expires_in=data.get("expiresIn"))
        await self.view_url_cache.set(object_key, fresh.view_url, fresh.expires_in)
        return fresh

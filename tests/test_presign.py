from __future__ import annotations

import json

import httpx
import pytest

from freight_gateway.errors import ConfigurationError, UpstreamServiceError
from freight_gateway.storage.presign import PresignWorkerClient


def _worker(handler) -> PresignWorkerClient:
    return PresignWorkerClient("https://worker.test/", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_presign_put_sends_canonical_key() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "upload_url": "https://storage.test/put?sig=1",
                "object_key": "trips/t-1/loading/k.jpg",
                "expires_in": 900,
            },
        )

    upload = await _worker(handler).presign_put(
        trip_id="t-1",
        doc_type="loading",
        file_ext="jpg",
        object_key="trips/t-1/loading/k.jpg",
        access_token="tok",
    )

    assert upload.upload_url == "https://storage.test/put?sig=1"
    assert upload.object_key == "trips/t-1/loading/k.jpg"
    assert upload.expires_in == 900
    request = seen[0]
    assert request.url == "https://worker.test/presign/put"
    assert request.headers["authorization"] == "Bearer tok"
    assert json.loads(request.content) == {
        "tripId": "t-1",
        "docType": "loading",
        "fileExt": "jpg",
        "objectKey": "trips/t-1/loading/k.jpg",
    }


@pytest.mark.asyncio
async def test_presign_put_rejects_different_object_key() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"upload_url": "https://u", "object_key": "other"})

    with pytest.raises(UpstreamServiceError, match="unexpected object key"):
        await _worker(handler).presign_put(
            trip_id="t-1",
            doc_type="loading",
            file_ext="jpg",
            object_key="trips/t-1/loading/k.jpg",
            access_token="tok",
        )


@pytest.mark.asyncio
async def test_presign_put_surfaces_worker_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": "Not allowed for this trip"})

    with pytest.raises(UpstreamServiceError, match="Not allowed for this trip") as exc_info:
        await _worker(handler).presign_put(
            trip_id="t-1",
            doc_type="loading",
            file_ext="jpg",
            object_key="k",
            access_token="tok",
        )
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_presign_get_returns_view_url() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"objectKey": "a/b.pdf"}
        return httpx.Response(200, json={"view_url": "https://storage.test/a/b.pdf?v=1"})

    view = await _worker(handler).presign_get(object_key="a/b.pdf", access_token="tok")

    assert view.view_url == "https://storage.test/a/b.pdf?v=1"
    assert view.expires_in is None


@pytest.mark.asyncio
async def test_presign_get_without_url_is_upstream_error() -> None:
    with pytest.raises(UpstreamServiceError, match="Unable to generate file view URL"):
        await _worker(lambda request: httpx.Response(200, json={})).presign_get(
            object_key="a/b.pdf", access_token="tok"
        )


@pytest.mark.asyncio
async def test_unreachable_worker() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamServiceError, match="Unable to reach R2 presign worker"):
        await _worker(handler).presign_get(object_key="a", access_token="tok")


@pytest.mark.asyncio
async def test_missing_configuration() -> None:
    with pytest.raises(ConfigurationError, match="R2_PRESIGN_WORKER_URL"):
        await PresignWorkerClient(None).presign_get(object_key="a", access_token="tok")

    with pytest.raises(ConfigurationError, match="no session access token"):
        await _worker(lambda request: httpx.Response(200)).presign_get(
            object_key="a", access_token=None
        )

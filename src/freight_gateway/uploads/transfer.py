"""Presigned URL upload with retry and progress reporting."""

from __future__ import annotations

import asyncio
import logging
import math
import random
from collections.abc import AsyncIterator, Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]
Sleep = Callable[[float], Awaitable[None]]

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_ATTEMPTS = 3
UPLOAD_CHUNK_SIZE = 64 * 1024
_FIRST_RETRY_BASE_SECONDS = 0.5
_LATER_RETRY_BASE_SECONDS = 1.5
_RETRY_JITTER_MS = 250


class UploadTransferError(Exception):
    """Raised when an upload fails after the last attempt."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        attempts: int = 1,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.attempts = attempts


def backoff_delay_seconds(
    attempt: int,
    rng: Callable[[], float] = random.random,
) -> float:
    """Delay after failed ``attempt``: 500 ms base after the first, 1500 ms after later ones."""
    base = _FIRST_RETRY_BASE_SECONDS if attempt <= 1 else _LATER_RETRY_BASE_SECONDS
    jitter_ms = math.floor(rng() * _RETRY_JITTER_MS)
    return base + jitter_ms / 1000


async def _chunked(
    content: bytes,
    on_progress: ProgressCallback | None,
) -> AsyncIterator[bytes]:
    total = len(content)
    sent = 0
    for start in range(0, total, UPLOAD_CHUNK_SIZE):
        chunk = content[start : start + UPLOAD_CHUNK_SIZE]
        yield chunk
        sent += len(chunk)
        if on_progress is not None:
            # 100 is reported once the server has accepted the upload.
            on_progress(min(99, max(0, round(sent * 100 / total))))


async def _put_once(
    client: httpx.AsyncClient,
    upload_url: str,
    content: bytes,
    mime_type: str,
    on_progress: ProgressCallback | None,
) -> None:
    try:
        response = await client.put(
            upload_url,
            content=_chunked(content, on_progress),
            headers={"Content-Type": mime_type, "Content-Length": str(len(content))},
        )
    except httpx.TimeoutException as exc:
        raise UploadTransferError("Upload timed out") from exc
    except httpx.HTTPError as exc:
        raise UploadTransferError("Upload failed due to network error") from exc

    if not response.is_success:
        raise UploadTransferError(
            f"Upload failed (status {response.status_code})",
            status_code=response.status_code,
        )


async def upload_file_to_presigned_url(
    upload_url: str,
    content: bytes,
    mime_type: str,
    *,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    on_progress: ProgressCallback | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """PUT ``content`` to a presigned URL.

    Progress is reported per chunk and stays below 100 until the upload
    succeeds, at which point exactly one 100 is reported. Failed attempts
    are retried with backoff up to ``max_attempts``; the last failure is
    raised as ``UploadTransferError``.
    """
    attempts = max(1, max_attempts)

    async with httpx.AsyncClient(transport=transport, timeout=timeout_seconds) as client:
        for attempt in range(1, attempts + 1):
            try:
                await _put_once(client, upload_url, content, mime_type, on_progress)
            except UploadTransferError as exc:
                logger.warning("Upload attempt %d/%d failed: %s", attempt, attempts, exc)
                if attempt >= attempts:
                    raise UploadTransferError(
                        str(exc),
                        status_code=exc.status_code,
                        attempts=attempts,
                    ) from exc
                await sleep(backoff_delay_seconds(attempt))
                continue

            if on_progress is not None:
                on_progress(100)
            return


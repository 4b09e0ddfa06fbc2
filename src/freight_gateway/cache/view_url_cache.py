"""Cache of time-limited object view URLs."""

from __future__ import annotations

import asyncio
import json
import logging
import math
import re
import time
from calendar import timegm
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable
from urllib.parse import parse_qs, urlparse

logger = logging.getLogger(__name__)

CACHE_VERSION = 1
MAX_ENTRIES = 200
SAFETY_WINDOW_SECONDS = 30.0
DEFAULT_TTL_SECONDS = 4 * 60.0

_AMZ_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})Z$")


@dataclass(frozen=True)
class CachedViewUrl:
    view_url: str
    expires_in: int | None


@dataclass
class _Entry:
    view_url: str
    expires_at: float
    updated_at: float


def estimate_expiry_from_url(view_url: str) -> float | None:
    """Absolute expiry (epoch seconds) from ``X-Amz-Date`` + ``X-Amz-Expires``."""
    try:
        query = parse_qs(urlparse(view_url).query)
    except ValueError:
        return None
    amz_date = (query.get("X-Amz-Date") or [None])[0]
    amz_expires = (query.get("X-Amz-Expires") or [None])[0]
    if not amz_date or not amz_expires:
        return None

    match = _AMZ_DATE_RE.match(amz_date)
    if not match:
        return None
    try:
        ttl = float(amz_expires)
    except ValueError:
        return None
    if not math.isfinite(ttl) or ttl <= 0:
        return None

    year, month, day, hour, minute, second = (int(part) for part in match.groups())
    issued_at = timegm((year, month, day, hour, minute, second, 0, 0, 0))
    return issued_at + ttl


class ObjectViewUrlCache:
    """Bounded view-URL cache with optional JSON file persistence.

    Entries expire at the explicit ``expires_in`` when given, else at the
    expiry encoded in the signed URL, else after a default TTL. An entry is
    treated as expired once less than the safety window remains. When more
    than ``max_entries`` survive a prune, the most recently updated are kept.
    """

    def __init__(
        self,
        *,
        max_entries: int = MAX_ENTRIES,
        safety_window_seconds: float = SAFETY_WINDOW_SECONDS,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        persist_path: str | Path | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._max_entries = max_entries
        self._safety_window = safety_window_seconds
        self._default_ttl = default_ttl_seconds
        self._persist_path = Path(persist_path) if persist_path else None
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._hydrated = False
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(
        self,
        object_key: str,
        min_remaining_seconds: float | None = None,
    ) -> CachedViewUrl | None:
        if min_remaining_seconds is None:
            min_remaining_seconds = self._safety_window
        async with self._lock:
            self._hydrate()
            entry = self._entries.get(object_key)
            if entry is None:
                return None

            remaining = entry.expires_at - self._clock()
            if remaining <= min_remaining_seconds:
                del self._entries[object_key]
                self._persist()
                return None

            return CachedViewUrl(
                view_url=entry.view_url,
                expires_in=max(1, math.floor(remaining)),
            )

    async def set(self, object_key: str, view_url: str, expires_in: int | None) -> None:
        async with self._lock:
            self._hydrate()
            now = self._clock()
            if expires_in:
                expires_at = now + expires_in
            else:
                expires_at = estimate_expiry_from_url(view_url) or now + self._default_ttl

            self._entries[object_key] = _Entry(
                view_url=view_url,
                expires_at=expires_at,
                updated_at=now,
            )
            self._prune(now)
            self._persist()

    async def invalidate(self, object_key: str) -> None:
        async with self._lock:
            self._hydrate()
            if self._entries.pop(object_key, None) is not None:
                self._persist()

    def _prune(self, now: float) -> None:
        cutoff = now + self._safety_window
        self._entries = {
            key: entry for key, entry in self._entries.items() if entry.expires_at > cutoff
        }
        if len(self._entries) <= self._max_entries:
            return
        newest = sorted(
            self._entries.items(), key=lambda item: item[1].updated_at, reverse=True
        )
        self._entries = dict(newest[: self._max_entries])

    def _hydrate(self) -> None:
        if self._hydrated:
            return
        self._hydrated = True
        if self._persist_path is None or not self._persist_path.exists():
            return

        try:
            payload = json.loads(self._persist_path.read_text(encoding="utf-8"))
            if payload.get("version") != CACHE_VERSION:
                return
            entries = payload.get("entries")
            if not isinstance(entries, dict):
                return
            self._entries = {
                key: _Entry(
                    view_url=str(value["view_url"]),
                    expires_at=float(value["expires_at"]),
                    updated_at=float(value["updated_at"]),
                )
                for key, value in entries.items()
            }
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Discarding unreadable view URL cache %s: %s", self._persist_path, exc)
            self._entries = {}
            self._persist_path.unlink(missing_ok=True)
            return
        self._prune(self._clock())

    def _persist(self) -> None:
        if self._persist_path is None:
            return
        payload = {
            "version": CACHE_VERSION,
            "entries": {key: asdict(entry) for key, entry in self._entries.items()},
        }
        try:
            self._persist_path.parent.mkdir(parents=True, exist_ok=True)
            self._persist_path.write_text(json.dumps(payload), encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to persist view URL cache %s: %s", self._persist_path, exc)

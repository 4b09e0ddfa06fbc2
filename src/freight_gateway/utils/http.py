"""Shared HTTP request helpers."""

from __future__ import annotations

from starlette.requests import Request

_BEARER_PREFIX = "bearer "


def _sanitize_ip(value: str) -> str:
    """Strip control characters from an IP string to prevent log injection."""
    return "".join(c for c in value if 0x20 <= ord(c) < 0x7F)


def get_client_ip(request: Request, trust_forwarded_headers: bool = False) -> str:
    """Get client IP with optional trusted proxy header support."""
    if trust_forwarded_headers:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return _sanitize_ip(forwarded_for.split(",")[0].strip())

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return _sanitize_ip(real_ip.strip())

    if request.client:
        return request.client.host

    return "unknown"


def extract_access_token(request: Request, cookie_name: str) -> str | None:
    """Session token from ``Authorization: Bearer`` or the session cookie."""
    auth_header = request.headers.get("authorization", "")
    if auth_header.lower().startswith(_BEARER_PREFIX):
        token = auth_header[len(_BEARER_PREFIX):].strip()
        if token:
            return token

    cookie_value = (request.cookies.get(cookie_name) or "").strip()
    return cookie_value or None

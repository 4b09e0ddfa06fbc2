"""Audit logging middleware with sensitive field masking."""

from __future__ import annotations

import logging
import re
import time
from functools import lru_cache
from typing import Any, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..auth.context import SENSITIVE_FIELDS
from ..utils.http import get_client_ip

logger = logging.getLogger(__name__)

# Control character pattern for log injection prevention.
_CONTROL_CHAR_RE = re.compile(r"[\x00-\x08\x0a-\x1f\x7f]")


def _sanitize_log_value(value: str) -> str:
    """Replace control characters (newlines, tabs, etc.) to prevent log injection."""
    return _CONTROL_CHAR_RE.sub("_", value)


@lru_cache(maxsize=128)
def _get_mask_pattern(field: str) -> re.Pattern:
    return re.compile(
        rf'(["\']?{re.escape(field)}["\']?\s*[:=]\s*)["\']?[^"\'\s&,]*["\']?',
        re.IGNORECASE,
    )


def mask_sensitive_text(message: str, mask_fields: frozenset[str] = SENSITIVE_FIELDS) -> str:
    """Mask ``field=value`` / ``"field": "value"`` pairs in free text."""
    masked = message
    for field in mask_fields:
        masked = _get_mask_pattern(field).sub(r"\1***MASKED***", masked)
    return masked


class AuditMiddleware(BaseHTTPMiddleware):
    """
    Audit logging middleware.

    Logs request id, actor id, route, status and duration. Query strings and
    exception messages are masked before they reach the log.
    """

    EXEMPT_PATHS = frozenset({"/health", "/ready"})

    def __init__(
        self,
        app: Callable,
        enabled: bool = True,
        trust_forwarded_headers: bool = False,
    ) -> None:
        super().__init__(app)
        self.enabled = enabled
        self._trust_forwarded_headers = trust_forwarded_headers

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.enabled or request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        request_id = _sanitize_log_value(getattr(request.state, "request_id", "-"))
        start_time = time.time()

        client_ip = get_client_ip(
            request,
            trust_forwarded_headers=self._trust_forwarded_headers,
        )
        safe_path = _sanitize_log_value(request.url.path)
        safe_query = _sanitize_log_value(mask_sensitive_text(request.url.query))
        safe_ip = _sanitize_log_value(client_ip)

        logger.info(
            "REQUEST_START request_id=%s method=%s path=%s query=%s client_ip=%s",
            request_id,
            request.method,
            safe_path,
            safe_query or "-",
            safe_ip,
        )

        error_message: str | None = None
        status_code: int = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response

        except Exception as e:
            error_message = mask_sensitive_text(str(e))
            raise

        finally:
            duration_ms = int((time.time() - start_time) * 1000)
            user_id: Any = getattr(request.state, "actor_id", None) or "anonymous"
            safe_user_id = _sanitize_log_value(str(user_id))

            if error_message:
                logger.error(
                    "REQUEST_END request_id=%s user_id=%s method=%s path=%s "
                    "status=%s duration_ms=%d error=%s",
                    request_id,
                    safe_user_id,
                    request.method,
                    safe_path,
                    status_code,
                    duration_ms,
                    _sanitize_log_value(error_message),
                )
            else:
                logger.info(
                    "REQUEST_END request_id=%s user_id=%s method=%s path=%s "
                    "status=%s duration_ms=%d",
                    request_id,
                    safe_user_id,
                    request.method,
                    safe_path,
                    status_code,
                    duration_ms,
                )

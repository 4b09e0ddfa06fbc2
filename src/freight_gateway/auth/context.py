"""Request-scoped session context."""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable

# Fields that must never appear in logs
SENSITIVE_FIELDS = frozenset(
    {
        "access_token",
        "refresh_token",
        "apikey",
        "secret",
        "password",
        "authorization",
        "upload_url",
        "view_url",
    }
)


@dataclass(frozen=True)
class RequestContext:
    """
    Immutable request-scoped context.

    SECURITY: access_token is forwarded to the remote layer but MUST NEVER be logged.
    """

    access_token: str | None = field(default=None, repr=False)
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    role: str | None = None

    def __repr__(self) -> str:
        """Safe repr that never includes the session token."""
        return (
            f"RequestContext("
            f"request_id={self.request_id!r}, "
            f"user_id={self.user_id!r}, "
            f"role={self.role!r}, "
            f"authenticated={self.access_token is not None})"
        )

    def __str__(self) -> str:
        return self.__repr__()

    def with_actor(self, user_id: str, role: str) -> "RequestContext":
        """Return new context carrying the resolved actor."""
        return replace(self, user_id=user_id, role=role)


_request_context: ContextVar[RequestContext | None] = ContextVar(
    "request_context",
    default=None,
)


def set_request_context(ctx: RequestContext) -> Token[RequestContext | None]:
    """Set context and return reset token."""
    return _request_context.set(ctx)


def reset_request_context(token: Token[RequestContext | None]) -> None:
    """Reset context using token from set_request_context()."""
    _request_context.reset(token)


def get_request_context() -> RequestContext:
    """Get context or raise RuntimeError."""
    ctx = _request_context.get()
    if ctx is None:
        raise RuntimeError("No request context set")
    return ctx


def get_request_context_optional() -> RequestContext | None:
    """Get context or None."""
    return _request_context.get()


def update_request_context(
    updater: Callable[[RequestContext], RequestContext],
) -> Token[RequestContext | None]:
    """Update context with a function and return reset token."""
    current = get_request_context()
    return _request_context.set(updater(current))

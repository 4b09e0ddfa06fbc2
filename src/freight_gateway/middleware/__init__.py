"""Session and audit middleware for the gateway."""

from .audit import AuditMiddleware
from .session import SessionMiddleware

__all__ = ["AuditMiddleware", "SessionMiddleware"]

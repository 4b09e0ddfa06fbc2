"""Session middleware: binds the caller's session token to the request."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..auth.context import RequestContext, reset_request_context, set_request_context
from ..utils.http import extract_access_token

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Extracts the session token and sets the request context.

    The token is only located here. Validation happens per route through
    the actor resolver, so requests without a token pass through with an
    unauthenticated context.
    """

    def __init__(self, app: Any, cookie_name: str = "sb-access-token") -> None:
        super().__init__(app)
        self.cookie_name = cookie_name

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        context = RequestContext(
            access_token=extract_access_token(request, self.cookie_name),
            request_id=request_id,
        )
        request.state.request_id = context.request_id

        ctx_token = set_request_context(context)
        try:
            return await call_next(request)
        finally:
            reset_request_context(ctx_token)

"""Current-user profile route."""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from freight_gateway.auth.context import get_request_context_optional
from freight_gateway.domain.normalize import first_row, normalize_profile
from freight_gateway.errors import RemoteFailureError
from freight_gateway.routes._shared import gateway_route, get_services, ok
from freight_gateway.rpc.client import RemoteProcedureError
from freight_gateway.rpc.error_map import map_remote_error

PROFILE_PROCEDURE = "auth_get_my_profile_v1"


@gateway_route
async def get_my_profile(request: Request) -> Response:
    """Signed-in user's profile; ``data`` is null for anonymous sessions."""
    ctx = get_request_context_optional()
    access_token = ctx.access_token if ctx else None
    if not access_token:
        return ok(None)

    services = get_services(request)
    user = await services.identity.get_user(access_token)
    if user is None:
        return ok(None)

    try:
        data = await services.rpc.call(PROFILE_PROCEDURE, {}, access_token=access_token)
    except RemoteProcedureError as exc:
        if exc.is_missing_procedure:
            raise map_remote_error(exc) from exc
        raise RemoteFailureError(exc.error.message or "Unable to fetch profile") from exc

    request.state.actor_id = user.id
    row = first_row(data)
    return ok(normalize_profile(row) if row else None)


routes = [
    Route("/api/auth/me", endpoint=get_my_profile, methods=["GET"]),
]

"""Helpers shared by the trip, payment and auth routes."""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from freight_gateway.app import GatewayServices
from freight_gateway.auth.context import (
    get_request_context_optional,
    update_request_context,
)
from freight_gateway.domain.models import Actor
from freight_gateway.domain.normalize import first_row
from freight_gateway.errors import GatewayError, RemoteFailureError, UnauthorizedError
from freight_gateway.rpc.client import RemoteProcedureError
from freight_gateway.rpc.error_map import map_remote_error
from freight_gateway.rpc.fallback import ProcedureChain

logger = logging.getLogger(__name__)

Endpoint = Callable[[Request], Awaitable[Response]]


def ok(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse({"ok": True, "data": data}, status_code=status_code)


def error_response(exc: GatewayError) -> JSONResponse:
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)


def get_services(request: Request) -> GatewayServices:
    return request.app.state.services


async def read_json(request: Request) -> object:
    """Decoded JSON body, or None when the body is absent or malformed."""
    try:
        return await request.json()
    except ValueError:
        return None


def session_token(request: Request) -> str:
    """Session token bound by the session middleware. Raises 401 when absent."""
    ctx = get_request_context_optional()
    if ctx is None or not ctx.access_token:
        raise UnauthorizedError()
    return ctx.access_token


def gateway_route(handler: Endpoint) -> Endpoint:
    """Convert gateway errors raised by ``handler`` into envelope responses."""

    @functools.wraps(handler)
    async def endpoint(request: Request) -> Response:
        try:
            return await handler(request)
        except GatewayError as exc:
            if exc.status_code >= 500:
                logger.warning(
                    "%s %s failed: %s (%s)",
                    request.method,
                    request.url.path,
                    exc.message,
                    exc.code,
                )
            return error_response(exc)
        except Exception:
            logger.exception("Unhandled error in %s %s", request.method, request.url.path)
            return error_response(GatewayError())

    return endpoint


class RouteCall:
    """One authorized invocation: the actor plus the session token it acts with."""

    def __init__(self, request: Request, actor: Actor, access_token: str) -> None:
        self.request = request
        self.actor = actor
        self.access_token = access_token

    def params(self, **extra: object) -> dict[str, object]:
        params: dict[str, object] = {"p_actor_user_id": self.actor.id}
        params.update(extra)
        return params

    async def call(
        self,
        procedure: str,
        params: Mapping[str, object],
        fallback_message: str,
    ) -> Any:
        """Invoke a single procedure, mapping remote failures."""
        return await self.invoke(ProcedureChain.single(procedure, params), fallback_message)

    async def invoke(self, chain: ProcedureChain, fallback_message: str) -> Any:
        services = get_services(self.request)
        try:
            result = await chain.invoke(services.rpc, access_token=self.access_token)
        except RemoteProcedureError as exc:
            raise map_remote_error(exc, fallback_message) from exc
        return result.data


async def authorize(request: Request, group: str, access_token: str) -> RouteCall:
    """Resolve the actor for ``group``; sets the actor on the request context."""
    services = get_services(request)
    actor = await services.actors.resolve(access_token, services.policy.allowed_roles(group))
    request.state.actor_id = actor.id
    update_request_context(lambda ctx: ctx.with_actor(actor.id, actor.role))
    return RouteCall(request, actor, access_token)


def require_row(data: object, message: str) -> dict[str, Any]:
    """Result row of a mutation; an empty result is a remote failure."""
    row = first_row(data)
    if row is None:
        raise RemoteFailureError(message)
    return row

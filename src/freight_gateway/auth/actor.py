"""Actor resolution: session → user → role → allow-list check."""

from __future__ import annotations

import logging
from collections.abc import Collection

from freight_gateway.auth.identity import IdentityClient
from freight_gateway.domain.models import Actor
from freight_gateway.errors import ForbiddenError, UnauthorizedError
from freight_gateway.rpc.client import RemoteProcedureClient, RemoteProcedureError
from freight_gateway.rpc.error_map import map_remote_error

logger = logging.getLogger(__name__)

ASSERT_ACTOR_PROCEDURE = "trip_assert_actor_v1"


class ActorResolver:
    """
    Resolves the caller of a request.

    Read-only: the identity lookup and the assert-actor procedure never
    mutate remote state.
    """

    def __init__(self, identity: IdentityClient, rpc: RemoteProcedureClient) -> None:
        self._identity = identity
        self._rpc = rpc

    async def resolve(
        self,
        access_token: str | None,
        allowed_roles: Collection[str],
    ) -> Actor:
        if not access_token:
            raise UnauthorizedError()

        user = await self._identity.get_user(access_token)
        if user is None:
            raise UnauthorizedError()

        try:
            role = await self._rpc.call(
                ASSERT_ACTOR_PROCEDURE,
                {"p_actor_user_id": user.id},
                access_token=access_token,
            )
        except RemoteProcedureError as exc:
            raise map_remote_error(exc, "Unauthorized") from exc

        if isinstance(role, list):
            role = role[0] if role else None
        if not role:
            raise UnauthorizedError()

        actor = Actor(id=user.id, role=str(role))
        if actor.role not in allowed_roles:
            logger.info("Actor %s with role %s denied", actor.id, actor.role)
            raise ForbiddenError()
        return actor

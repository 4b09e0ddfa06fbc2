from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from freight_gateway.auth.actor import ASSERT_ACTOR_PROCEDURE, ActorResolver
from freight_gateway.auth.identity import IdentityUser
from freight_gateway.errors import (
    ForbiddenError,
    MissingRemoteProcedureError,
    UnauthorizedError,
)
from freight_gateway.rpc.client import RemoteErrorDetail, RemoteProcedureError

TRIP_ROLES = frozenset({"admin", "operations_vehicles"})


def _resolver(user: IdentityUser | None, role: object = "admin") -> tuple[ActorResolver, MagicMock]:
    identity = MagicMock()
    identity.get_user = AsyncMock(return_value=user)
    rpc = MagicMock()
    if isinstance(role, Exception):
        rpc.call = AsyncMock(side_effect=role)
    else:
        rpc.call = AsyncMock(return_value=role)
    return ActorResolver(identity, rpc), rpc


@pytest.mark.asyncio
async def test_resolves_actor_with_allowed_role() -> None:
    resolver, rpc = _resolver(IdentityUser(id="user-1"), "operations_vehicles")

    actor = await resolver.resolve("tok", TRIP_ROLES)

    assert actor.id == "user-1"
    assert actor.role == "operations_vehicles"
    rpc.call.assert_awaited_once_with(
        ASSERT_ACTOR_PROCEDURE,
        {"p_actor_user_id": "user-1"},
        access_token="tok",
    )


@pytest.mark.asyncio
async def test_missing_token_is_unauthorized() -> None:
    resolver, rpc = _resolver(IdentityUser(id="user-1"))

    with pytest.raises(UnauthorizedError):
        await resolver.resolve(None, TRIP_ROLES)
    rpc.call.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_session_is_unauthorized() -> None:
    resolver, rpc = _resolver(None)

    with pytest.raises(UnauthorizedError):
        await resolver.resolve("expired", TRIP_ROLES)
    rpc.call.assert_not_awaited()


@pytest.mark.asyncio
async def test_role_list_uses_first_entry() -> None:
    resolver, _ = _resolver(IdentityUser(id="user-1"), ["admin", "accounts"])
    assert (await resolver.resolve("tok", TRIP_ROLES)).role == "admin"


@pytest.mark.asyncio
@pytest.mark.parametrize("role", [None, "", []])
async def test_empty_role_is_unauthorized(role: object) -> None:
    resolver, _ = _resolver(IdentityUser(id="user-1"), role)

    with pytest.raises(UnauthorizedError):
        await resolver.resolve("tok", TRIP_ROLES)


@pytest.mark.asyncio
async def test_role_outside_allow_list_is_forbidden() -> None:
    resolver, _ = _resolver(IdentityUser(id="user-1"), "accounts")

    with pytest.raises(ForbiddenError):
        await resolver.resolve("tok", TRIP_ROLES)


@pytest.mark.asyncio
async def test_inactive_actor_maps_to_forbidden() -> None:
    error = RemoteProcedureError(
        ASSERT_ACTOR_PROCEDURE, RemoteErrorDetail(message="actor_inactive")
    )
    resolver, _ = _resolver(IdentityUser(id="user-1"), error)

    with pytest.raises(ForbiddenError, match="User account is inactive"):
        await resolver.resolve("tok", TRIP_ROLES)


@pytest.mark.asyncio
async def test_missing_assert_procedure_is_reported() -> None:
    error = RemoteProcedureError(
        ASSERT_ACTOR_PROCEDURE,
        RemoteErrorDetail(code="PGRST202", message="Could not find the function"),
    )
    resolver, _ = _resolver(IdentityUser(id="user-1"), error)

    with pytest.raises(MissingRemoteProcedureError, match=ASSERT_ACTOR_PROCEDURE):
        await resolver.resolve("tok", TRIP_ROLES)

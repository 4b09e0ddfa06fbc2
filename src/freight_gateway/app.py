"""Application service assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from freight_gateway.auth.actor import ActorResolver
from freight_gateway.auth.identity import IdentityClient
from freight_gateway.config import Settings, load_settings
from freight_gateway.policy.loader import load_policy
from freight_gateway.policy.models import AccessPolicy
from freight_gateway.rpc.client import RemoteProcedureClient
from freight_gateway.storage.presign import PresignWorkerClient

logger = logging.getLogger(__name__)


@dataclass
class GatewayServices:
    """Dependency container handed to every route through ``app.state``.

    Built once per process by ``get_services``; tests build their own with
    fake transports.
    """

    settings: Settings
    rpc: RemoteProcedureClient
    identity: IdentityClient
    actors: ActorResolver
    policy: AccessPolicy
    presign: PresignWorkerClient


def _load_access_policy(path: str) -> AccessPolicy:
    try:
        return load_policy(path)
    except FileNotFoundError:
        logger.warning("Policy file %s not found, using built-in role allow-lists", path)
        return AccessPolicy()


def build_services(settings: Settings) -> GatewayServices:
    if not settings.remote.base_url:
        raise RuntimeError(
            "SUPABASE_URL is required. Set SUPABASE_URL (or NEXT_PUBLIC_SUPABASE_URL) "
            "to the remote procedure layer base URL"
        )

    rpc = RemoteProcedureClient(
        settings.remote.base_url,
        settings.remote.api_key,
        timeout_seconds=settings.remote.timeout_seconds,
    )
    identity = IdentityClient(
        settings.remote.base_url,
        settings.remote.api_key,
        timeout_seconds=settings.remote.timeout_seconds,
    )
    presign = PresignWorkerClient(
        settings.presign.worker_url,
        timeout_seconds=settings.presign.timeout_seconds,
    )
    if presign.base_url is None:
        logger.warning("No presign worker URL configured; upload routes will fail")

    return GatewayServices(
        settings=settings,
        rpc=rpc,
        identity=identity,
        actors=ActorResolver(identity, rpc),
        policy=_load_access_policy(settings.policy.path),
        presign=presign,
    )


@lru_cache(maxsize=1)
def get_services() -> GatewayServices:
    """Get or create the process-wide service container."""
    return build_services(load_settings())

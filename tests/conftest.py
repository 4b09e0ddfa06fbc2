from __future__ import annotations

import asyncio
import contextlib
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from starlette.testclient import TestClient

from freight_gateway.app import GatewayServices
from freight_gateway.auth.actor import ActorResolver
from freight_gateway.auth.identity import IdentityClient
from freight_gateway.config import PresignSettings, RemoteSettings, Settings
from freight_gateway.policy.models import AccessPolicy
from freight_gateway.rpc.client import RemoteProcedureClient
from freight_gateway.storage.presign import PresignWorkerClient
from freight_gateway.transport.http_server import create_http_app

REMOTE_URL = "https://remote.test"
WORKER_URL = "https://worker.test"
ACCESS_TOKEN = "session-token-1"


@pytest.fixture(autouse=True)
def _close_default_event_loop() -> None:
    yield
    policy = asyncio.get_event_loop_policy()
    local = getattr(policy, "_local", None)
    loop = getattr(local, "_loop", None) if local is not None else None
    if loop is not None and not loop.is_running() and not loop.is_closed():
        with contextlib.suppress(Exception):
            loop.close()
    if loop is not None:
        with contextlib.suppress(Exception):
            policy.set_event_loop(None)


class FakeRemote:
    """In-memory stand-in for the identity provider, RPC layer and presign worker.

    ``procedures`` maps a procedure name to its JSON result, or to a callable
    receiving the decoded params and returning either a result or an
    ``httpx.Response``. Names in ``missing`` answer like an undeployed procedure.
    """

    def __init__(self) -> None:
        self.user: dict[str, Any] | None = {"id": "user-1", "email": "ops@example.com"}
        self.role: object = "admin"
        self.procedures: dict[str, Any] = {}
        self.missing: set[str] = set()
        self.rpc_calls: list[tuple[str, dict[str, Any]]] = []
        self.presign_calls: list[tuple[str, dict[str, Any]]] = []
        self.paths: list[str] = []
        self.presign_handler: Callable[[str, dict[str, Any]], httpx.Response] | None = None

    @property
    def business_calls(self) -> list[str]:
        return [name for name, _ in self.rpc_calls if name != "trip_assert_actor_v1"]

    def params_for(self, procedure: str) -> dict[str, Any]:
        for name, params in self.rpc_calls:
            if name == procedure:
                return params
        raise AssertionError(f"{procedure} was not called")

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.paths.append(path)
        body = json.loads(request.content) if request.content else {}

        if path == "/auth/v1/user":
            if self.user is None:
                return httpx.Response(401, json={"message": "invalid JWT"})
            return httpx.Response(200, json=self.user)

        if path.startswith("/rest/v1/rpc/"):
            name = path.rsplit("/", 1)[-1]
            self.rpc_calls.append((name, body))
            if name == "trip_assert_actor_v1":
                return httpx.Response(200, json=self.role)
            if name in self.missing:
                return httpx.Response(
                    404,
                    json={
                        "code": "PGRST202",
                        "message": f"Could not find the function public.{name}",
                    },
                )
            result = self.procedures.get(name)
            if callable(result):
                result = result(body)
            if isinstance(result, httpx.Response):
                return result
            return httpx.Response(200, json=result)

        if path.startswith("/presign/"):
            self.presign_calls.append((path, body))
            if self.presign_handler is not None:
                return self.presign_handler(path, body)
            if path == "/presign/put":
                return httpx.Response(
                    200,
                    json={
                        "upload_url": f"https://storage.test/{body['objectKey']}?sig=abc",
                        "object_key": body["objectKey"],
                        "expires_in": 900,
                    },
                )
            return httpx.Response(
                200,
                json={
                    "view_url": f"https://storage.test/{body['objectKey']}?view=1",
                    "expires_in": 300,
                },
            )

        return httpx.Response(404, json={"message": f"unexpected path {path}"})


def _build_services(
    remote: FakeRemote, *, worker_url: str | None = WORKER_URL
) -> GatewayServices:
    transport = httpx.MockTransport(remote.handler)
    settings = Settings(
        remote=RemoteSettings(base_url=REMOTE_URL, api_key="anon-key"),
        presign=PresignSettings(worker_url=worker_url),
    )
    rpc = RemoteProcedureClient(REMOTE_URL, "anon-key", transport=transport)
    identity = IdentityClient(REMOTE_URL, "anon-key", transport=transport)
    return GatewayServices(
        settings=settings,
        rpc=rpc,
        identity=identity,
        actors=ActorResolver(identity, rpc),
        policy=AccessPolicy(),
        presign=PresignWorkerClient(worker_url, transport=transport),
    )


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def services(remote: FakeRemote) -> GatewayServices:
    return _build_services(remote)


@pytest.fixture
def services_factory(remote: FakeRemote) -> Callable[..., GatewayServices]:
    return lambda **kwargs: _build_services(remote, **kwargs)


@pytest.fixture
def client(services: GatewayServices) -> TestClient:
    return TestClient(create_http_app(services))


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {ACCESS_TOKEN}"}

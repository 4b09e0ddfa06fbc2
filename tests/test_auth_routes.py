from __future__ import annotations

import httpx
from starlette.testclient import TestClient


def test_anonymous_profile_is_null(client: TestClient, remote) -> None:
    response = client.get("/api/auth/me")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "data": None}
    assert remote.paths == []


def test_expired_session_profile_is_null(client: TestClient, remote, auth_headers) -> None:
    remote.user = None

    response = client.get("/api/auth/me", headers=auth_headers)

    assert response.json() == {"ok": True, "data": None}
    assert remote.rpc_calls == []


def test_profile_is_normalized(client: TestClient, remote, auth_headers) -> None:
    remote.procedures["auth_get_my_profile_v1"] = [
        {
            "id": "user-1",
            "full_name": "Asha Patil",
            "email": "asha@example.com",
            "role": "accounts",
            "active": True,
        }
    ]

    response = client.get("/api/auth/me", headers=auth_headers)

    assert response.json()["data"] == {
        "id": "user-1",
        "fullName": "Asha Patil",
        "email": "asha@example.com",
        "role": "accounts",
        "active": True,
    }


def test_profile_missing_procedure(client: TestClient, remote, auth_headers) -> None:
    remote.missing = {"auth_get_my_profile_v1"}

    response = client.get("/api/auth/me", headers=auth_headers)

    assert response.status_code == 500
    assert response.json()["message"] == "Missing RPC: auth_get_my_profile_v1"


def test_profile_remote_error_is_failure(client: TestClient, remote, auth_headers) -> None:
    remote.procedures["auth_get_my_profile_v1"] = httpx.Response(
        400, json={"message": "profile_not_found"}
    )

    response = client.get("/api/auth/me", headers=auth_headers)

    assert response.status_code == 500
    assert response.json()["code"] == "remote_failure"
    assert response.json()["message"] == "profile_not_found"

from __future__ import annotations

import pytest

from freight_gateway import config

_ENV_KEYS = (
    "SUPABASE_URL",
    "NEXT_PUBLIC_SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "NEXT_PUBLIC_SUPABASE_ANON_KEY",
    "R2_PRESIGN_WORKER_URL",
    "NEXT_PUBLIC_R2_PRESIGN_WORKER_URL",
    "CLOUDFLARE_R2_PRESIGN_WORKER_URL",
    "R2_WORKER_URL",
    "GATEWAY_PORT",
    "UPLOAD_MAX_ATTEMPTS",
    "REMOTE_TIMEOUT_SECONDS",
    "HTTP_ALLOWED_ORIGINS",
    "HTTP_ENABLE_CORS",
    "SESSION_COOKIE_NAME",
    "LOG_FILE",
    "POLICY_PATH",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    config._load_settings_cached.cache_clear()
    yield
    config._load_settings_cached.cache_clear()


def test_defaults() -> None:
    settings = config.load_settings()

    assert settings.server.port == 8000
    assert settings.remote.base_url is None
    assert settings.session.cookie_name == "sb-access-token"
    assert settings.uploads.max_attempts == 3
    assert settings.policy.path.endswith("policy.yaml")


def test_remote_settings_use_first_non_empty_alias(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "   ")
    monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_URL", "https://project.example.co/")
    monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_ANON_KEY", "anon-key")

    settings = config.load_settings()

    assert settings.remote.base_url == "https://project.example.co"
    assert settings.remote.api_key == "anon-key"


def test_presign_worker_url_aliases_in_order(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("R2_WORKER_URL", "https://last.example/")
    assert config.resolve_presign_worker_url() == "https://last.example"

    monkeypatch.setenv("CLOUDFLARE_R2_PRESIGN_WORKER_URL", "https://cf.example")
    assert config.resolve_presign_worker_url() == "https://cf.example"

    monkeypatch.setenv("R2_PRESIGN_WORKER_URL", "https://primary.example")
    assert config.resolve_presign_worker_url() == "https://primary.example"


def test_invalid_numbers_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UPLOAD_MAX_ATTEMPTS", "many")
    monkeypatch.setenv("REMOTE_TIMEOUT_SECONDS", "soon")

    settings = config.load_settings()

    assert settings.uploads.max_attempts == 3
    assert settings.remote.timeout_seconds == 15.0


def test_out_of_range_port_is_a_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GATEWAY_PORT", "80")

    with pytest.raises(RuntimeError, match="Invalid configuration"):
        config.load_settings()


def test_cors_origins_are_split(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(
        "HTTP_ALLOWED_ORIGINS", "https://erp.example.com, https://Admin.example.com,"
    )
    monkeypatch.setenv("HTTP_ENABLE_CORS", "yes")

    settings = config.load_settings()

    assert settings.server.http_enable_cors is True
    assert settings.server.http_allowed_origins == (
        "https://erp.example.com",
        "https://Admin.example.com",
    )


def test_resolve_path_rejects_traversal() -> None:
    with pytest.raises(ValueError, match="Path traversal"):
        config._resolve_path("../../etc/passwd")


def test_load_settings_is_cached() -> None:
    assert config.load_settings() is config.load_settings()

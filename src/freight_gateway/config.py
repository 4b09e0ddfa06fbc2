"""Configuration management for the freight workflow gateway."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class ServerSettings(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1024, le=65535)
    http_allowed_origins: tuple[str, ...] = Field(default=())
    http_enable_cors: bool = Field(default=False)
    http_trust_forwarded_headers: bool = Field(default=False)


class RemoteSettings(BaseModel):
    """Remote procedure layer and identity provider endpoint."""

    base_url: str | None = Field(default=None)
    api_key: str | None = Field(default=None)
    timeout_seconds: float = Field(default=15.0, ge=0.1, le=300)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip().rstrip("/") or None


class SessionSettings(BaseModel):
    cookie_name: str = Field(default="sb-access-token")


class PresignSettings(BaseModel):
    worker_url: str | None = Field(default=None)
    timeout_seconds: float = Field(default=15.0, ge=0.1, le=300)


class UploadSettings(BaseModel):
    max_attempts: int = Field(default=3, ge=1, le=10)
    timeout_seconds: float = Field(default=60.0, ge=1, le=3600)


class PolicySettings(BaseModel):
    path: str = Field(default="./policy.yaml")


class Settings(BaseModel):
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    remote: RemoteSettings = Field(default_factory=RemoteSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    presign: PresignSettings = Field(default_factory=PresignSettings)
    uploads: UploadSettings = Field(default_factory=UploadSettings)
    policy: PolicySettings = Field(default_factory=PolicySettings)


ENV_KEYS = {
    "host": "GATEWAY_HOST",
    "port": "GATEWAY_PORT",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "policy_path": "POLICY_PATH",
    "session_cookie": "SESSION_COOKIE_NAME",
    "remote_timeout": "REMOTE_TIMEOUT_SECONDS",
    "presign_timeout": "PRESIGN_TIMEOUT_SECONDS",
    "upload_max_attempts": "UPLOAD_MAX_ATTEMPTS",
    "upload_timeout": "UPLOAD_TIMEOUT_SECONDS",
}

REMOTE_URL_ENV_KEYS: tuple[str, ...] = ("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL")
REMOTE_KEY_ENV_KEYS: tuple[str, ...] = ("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY")
PRESIGN_WORKER_URL_ENV_KEYS: tuple[str, ...] = (
    "R2_PRESIGN_WORKER_URL",
    "NEXT_PUBLIC_R2_PRESIGN_WORKER_URL",
    "CLOUDFLARE_R2_PRESIGN_WORKER_URL",
    "R2_WORKER_URL",
)

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _split_csv_preserve_case(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    root = _project_root().resolve()
    if candidate.is_absolute():
        resolved = candidate.resolve()
    else:
        resolved = (root / candidate).resolve()
    if not resolved.is_relative_to(root):
        raise ValueError(f"Path traversal detected: '{path}' resolves outside project root")
    return str(resolved)


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def first_non_empty_env(keys: tuple[str, ...]) -> str | None:
    """Return the first environment value among ``keys`` that is not blank."""
    for key in keys:
        value = (os.getenv(key) or "").strip()
        if value:
            return value
    return None


def resolve_presign_worker_url() -> str | None:
    value = first_non_empty_env(PRESIGN_WORKER_URL_ENV_KEYS)
    if value is None:
        return None
    return value.rstrip("/") or None


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])

    settings_data: dict[str, object] = {
        "server": {
            "host": os.getenv(ENV_KEYS["host"], ServerSettings().host),
            "port": _env_int(ENV_KEYS["port"], ServerSettings().port),
            "http_allowed_origins": tuple(
                _split_csv_preserve_case(os.getenv("HTTP_ALLOWED_ORIGINS"))
            ),
            "http_enable_cors": _env_bool(
                "HTTP_ENABLE_CORS",
                ServerSettings().http_enable_cors,
            ),
            "http_trust_forwarded_headers": _env_bool(
                "HTTP_TRUST_FORWARDED_HEADERS",
                ServerSettings().http_trust_forwarded_headers,
            ),
        },
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "remote": {
            "base_url": first_non_empty_env(REMOTE_URL_ENV_KEYS),
            "api_key": first_non_empty_env(REMOTE_KEY_ENV_KEYS),
            "timeout_seconds": _env_float(
                ENV_KEYS["remote_timeout"],
                RemoteSettings().timeout_seconds,
            ),
        },
        "session": {
            "cookie_name": os.getenv(ENV_KEYS["session_cookie"], SessionSettings().cookie_name),
        },
        "presign": {
            "worker_url": resolve_presign_worker_url(),
            "timeout_seconds": _env_float(
                ENV_KEYS["presign_timeout"],
                PresignSettings().timeout_seconds,
            ),
        },
        "uploads": {
            "max_attempts": _env_int(
                ENV_KEYS["upload_max_attempts"],
                UploadSettings().max_attempts,
            ),
            "timeout_seconds": _env_float(
                ENV_KEYS["upload_timeout"],
                UploadSettings().timeout_seconds,
            ),
        },
        "policy": {
            "path": _resolve_path(os.getenv(ENV_KEYS["policy_path"], PolicySettings().path)),
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    return settings

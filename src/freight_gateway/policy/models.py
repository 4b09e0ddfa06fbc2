"""Access policy models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from freight_gateway.domain.models import ROLE_VALUES

DEFAULT_OPERATION_ROLES: dict[str, list[str]] = {
    "trips": [
        "super_admin",
        "admin",
        "operations_consigner",
        "operations_vehicles",
        "sales_consigner",
    ],
    "payments": ["super_admin", "admin", "accounts"],
}


class AccessPolicy(BaseModel):
    """Role allow-lists keyed by route group."""

    version: int = Field(default=1)
    roles: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_OPERATION_ROLES.items()}
    )

    @field_validator("roles", mode="before")
    @classmethod
    def _merge_defaults(cls, v: Any) -> dict:
        merged = {k: list(val) for k, val in DEFAULT_OPERATION_ROLES.items()}
        if v is None:
            return merged
        if isinstance(v, dict):
            for group, roles in v.items():
                merged[group] = list(roles or [])
            return merged
        return v

    @field_validator("roles")
    @classmethod
    def _validate_roles(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        for group, roles in v.items():
            unknown = [role for role in roles if role not in ROLE_VALUES]
            if unknown:
                raise ValueError(f"Unknown roles in policy group '{group}': {unknown}")
        return v

    def allowed_roles(self, group: str) -> frozenset[str]:
        try:
            return frozenset(self.roles[group])
        except KeyError as exc:
            raise KeyError(f"No role policy configured for '{group}'") from exc

    @classmethod
    def from_yaml(cls, data: dict[str, object]) -> "AccessPolicy":
        return cls.model_validate(data)

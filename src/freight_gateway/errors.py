"""Gateway error taxonomy.

Every failure a route can report is one of these exceptions. The route runner
turns them into ``{"ok": false, "message": ..., "code": ...}`` envelopes with
the exception's HTTP status.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict[str, object]:
        return {"ok": False, "message": self.message, "code": self.code}


class UnauthorizedError(GatewayError):
    status_code = 401
    code = "unauthorized"
    default_message = "Unauthorized"


class ForbiddenError(GatewayError):
    status_code = 403
    code = "forbidden"
    default_message = "Forbidden"


class NotFoundError(GatewayError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class InvalidInputError(GatewayError):
    """Client-supplied data failed shape, range or enum checks."""

    status_code = 400
    code = "invalid_input"
    default_message = "Invalid input"

    def __init__(
        self,
        message: str | None = None,
        *,
        errors: list[str] | None = None,
        code: str | None = None,
    ) -> None:
        self.errors = list(errors or [])
        if message is None and self.errors:
            message = self.errors[0]
        super().__init__(message, code=code)

    def to_payload(self) -> dict[str, object]:
        payload = super().to_payload()
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ConflictError(GatewayError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict"


class MissingRemoteProcedureError(GatewayError):
    """No known version of a remote procedure is deployed."""

    code = "missing_remote_procedure"

    def __init__(self, procedure_names: list[str] | tuple[str, ...]) -> None:
        names: list[str] = []
        for name in procedure_names:
            if name not in names:
                names.append(name)
        self.procedure_names = tuple(names)
        super().__init__(f"Missing RPC: {'/'.join(self.procedure_names)}")


class RemoteFailureError(GatewayError):
    code = "remote_failure"
    default_message = "Remote procedure failed"


class UpstreamServiceError(GatewayError):
    """An auxiliary service (presign worker) was unreachable or misbehaved."""

    status_code = 502
    code = "upstream_error"
    default_message = "Upstream service error"


class ConfigurationError(GatewayError):
    code = "configuration_error"
    default_message = "Server configuration error"

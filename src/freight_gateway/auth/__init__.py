"""Session context, identity lookup and actor resolution."""

from .actor import ActorResolver
from .context import (
    RequestContext,
    get_request_context,
    get_request_context_optional,
    reset_request_context,
    set_request_context,
    update_request_context,
)
from .identity import IdentityClient, IdentityUser

__all__ = [
    "ActorResolver",
    "IdentityClient",
    "IdentityUser",
    "RequestContext",
    "get_request_context",
    "get_request_context_optional",
    "reset_request_context",
    "set_request_context",
    "update_request_context",
]

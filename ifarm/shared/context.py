"""
Request context management using contextvars.

Provides async-safe storage for request metadata (correlation id, client
address, user agent). The authenticated subject is deliberately NOT stored
here: access decisions always receive the subject explicitly.

Usage:
    # In middleware:
    set_request_context(correlation_id="abc", ip_address="10.0.0.7")

    # Anywhere during the request:
    ctx = get_request_context()
    ctx.ip_address  # "10.0.0.7"
"""

from contextvars import ContextVar
from dataclasses import dataclass

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_ip_address: ContextVar[str | None] = ContextVar("ip_address", default=None)
_user_agent: ContextVar[str | None] = ContextVar("user_agent", default=None)


@dataclass(frozen=True)
class RequestContext:
    """Immutable snapshot of the current request metadata."""

    correlation_id: str | None
    ip_address: str | None = None
    user_agent: str | None = None


def set_request_context(
    correlation_id: str | None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """Set request metadata for the current async task."""
    _correlation_id.set(correlation_id)
    _ip_address.set(ip_address)
    _user_agent.set(user_agent)


def clear_request_context() -> None:
    """Clear request metadata."""
    _correlation_id.set(None)
    _ip_address.set(None)
    _user_agent.set(None)


def get_request_context() -> RequestContext:
    """Get a snapshot of the current request metadata."""
    return RequestContext(
        correlation_id=_correlation_id.get(),
        ip_address=_ip_address.get(),
        user_agent=_user_agent.get(),
    )

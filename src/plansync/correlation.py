"""Correlation and client-session identifiers carried across async boundaries."""

from __future__ import annotations

from contextvars import ContextVar

# The client id mirrors the transport's per-connection id (an ``X-WS-ID``
# header) so a broadcast can skip the tab that caused it.
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_client_id: ContextVar[str | None] = ContextVar("client_id", default=None)


def get_correlation_id() -> str | None:
    """Get current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Set correlation ID in context."""
    _correlation_id.set(correlation_id)


def get_client_id() -> str | None:
    """Get the id of the client connection issuing the current request."""
    return _client_id.get()


def set_client_id(client_id: str | None) -> None:
    """Set the id of the client connection issuing the current request."""
    _client_id.set(client_id)


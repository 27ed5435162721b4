"""
Trace ID tracking for log records across async operations.

Each discovery run and each outgoing request gets a trace ID held in a
contextvar, so log lines emitted from concurrent tasks can be told apart.
This is unrelated to the integer request id carried on the wire.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Generator
from contextlib import contextmanager

__all__ = [
    "correlation_context",
    "ensure_correlation_id",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "yeelight_correlation_id",
    default=None,
)


def generate_correlation_id() -> str:
    """
    Generate a new trace ID.

    Returns:
        UUID4 hex string without dashes
    """
    return uuid.uuid4().hex


def get_correlation_id() -> str | None:
    """Return the trace ID of the current context, or None if unset."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Set (or clear, with None) the trace ID of the current context."""
    _correlation_id.set(correlation_id)


@contextmanager
def correlation_context(
    correlation_id: str | None = None,
    auto_generate: bool = True,
) -> Generator[str | None]:
    """
    Context manager scoping a trace ID.

    Restores the previous trace ID on exit.

    Args:
        correlation_id: Specific trace ID to use (None to auto-generate)
        auto_generate: Generate a new ID if correlation_id is None

    Yields:
        The trace ID used in this context

    Example:
        with correlation_context() as trace_id:
            logger.info("Discovering devices")
    """
    previous_id = get_correlation_id()

    if correlation_id is None and auto_generate:
        correlation_id = generate_correlation_id()

    set_correlation_id(correlation_id)
    try:
        yield correlation_id
    finally:
        set_correlation_id(previous_id)


def ensure_correlation_id() -> str:
    """Return the current trace ID, generating and setting one if missing."""
    current_id = get_correlation_id()
    if current_id is None:
        current_id = generate_correlation_id()
        set_correlation_id(current_id)
    return current_id

"""Correlation id carried through contextvars.

Set by the HTTP request-id middleware and by ``Task.execute`` for the id of
the task currently running; read by the logging filters and formatter.
"""

from __future__ import annotations

from contextvars import ContextVar, Token

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> Token:
    """Store the current correlation id in a context variable.

    Args:
        correlation_id: Identifier to associate with subsequent logs.

    Returns:
        Token that restores the previous value via ``reset_correlation_id``.
    """

    return _correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    """Fetch the current correlation id from context."""

    return _correlation_id_var.get()


def reset_correlation_id(token: Token) -> None:
    """Restore the correlation id that was active before ``token`` was issued."""

    _correlation_id_var.reset(token)

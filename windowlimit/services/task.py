"""One-shot unit of work with optional result notification.

A Task binds a callable, its arguments and an optional notify target, and
runs the callable at most once. Admission control is not its concern: callers
(or ``windowlimit.core.rate_limit.submit`` / the deferred queue) ask a limiter
first and execute the task only when admitted.

Example:
    >>> class Printer:
    ...     def notify(self, value):
    ...         print(f"job value: {value}")
    >>> squarer = Task(lambda base: base ** 2, Printer(), 7)
    >>> squarer.execute()
    job value: 49
    True
    >>> squarer.execute()
    False
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, Protocol, runtime_checkable

from windowlimit.core.context import reset_correlation_id, set_correlation_id
from windowlimit.core.errors import InvalidJobError, NotificationError

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Anything that accepts a task's result through ``notify``."""

    def notify(self, result: Any) -> Any: ...


def _resolve_notify(target: Any) -> Callable[[Any], Any] | None:
    """Return the callable that delivers a result to ``target``.

    Objects exposing ``notify(result)`` win over plain callables, so a
    callable object that also defines ``notify`` is notified through it.
    """

    if target is None:
        return None
    notify = getattr(target, "notify", None)
    if callable(notify):
        return notify
    if callable(target):
        return target
    raise InvalidJobError(
        "Notify target must define notify(result) or be callable",
        details={"field": "notify_target", "value": type(target).__name__},
    )


def _describe(operation: Callable[..., Any]) -> str:
    return getattr(operation, "__qualname__", None) or type(operation).__name__


class Task:
    """A callable plus arguments that executes at most once.

    Attributes:
        task_id: Random hex id, used as the log correlation id while running.
    """

    def __init__(
        self,
        operation: Callable[..., Any],
        notify_target: Notifier | Callable[[Any], Any] | None = None,
        *args: Any,
        **kwargs: Any,
    ) -> None:
        """Bind an operation to its arguments and optional notify target.

        Args:
            operation: The callable to run.
            notify_target: Receives the operation's return value after it runs.
            *args: Positional arguments for the operation.
            **kwargs: Keyword arguments for the operation.

        Raises:
            InvalidJobError: If ``operation`` is missing or not callable, or if
                ``notify_target`` cannot accept a result.
        """
        if operation is None:
            raise InvalidJobError("The operation cannot be None", details={"field": "operation"})
        if not callable(operation):
            raise InvalidJobError(
                f"The operation must be callable, got {type(operation).__name__}",
                details={"field": "operation", "value": type(operation).__name__},
            )

        self._operation = operation
        self._notify = _resolve_notify(notify_target)
        self._args = args
        self._kwargs = kwargs
        self._lock = threading.Lock()
        self._running = False
        self._has_run = False
        self._result: Any = None
        self.task_id = uuid.uuid4().hex

    @property
    def has_run(self) -> bool:
        with self._lock:
            return self._has_run

    @property
    def result(self) -> Any:
        """Return value of the operation, or None before it has run."""
        with self._lock:
            return self._result

    def execute(self) -> bool:
        """Run the operation once and notify the target with its result.

        The task is marked as run as soon as the operation returns, before the
        notify target is called. A failing operation leaves the task unrun, so
        it may be executed again.

        Returns:
            True if the operation ran now, False if it already ran (or is
            running on another thread).

        Raises:
            NotificationError: If the notify target raised. The task counts as
                run; the original exception is chained as the cause.
        """
        with self._lock:
            if self._has_run or self._running:
                return False
            self._running = True

        token = set_correlation_id(self.task_id)
        try:
            try:
                result = self._operation(*self._args, **self._kwargs)
            except BaseException:
                with self._lock:
                    self._running = False
                raise

            with self._lock:
                self._result = result
                self._has_run = True
                self._running = False

            logger.debug(
                "task.executed",
                extra={"task_id": self.task_id, "operation": _describe(self._operation)},
            )

            if self._notify is not None:
                try:
                    self._notify(result)
                except Exception as exc:
                    logger.error(
                        "task.notify_failed",
                        extra={
                            "task_id": self.task_id,
                            "operation": _describe(self._operation),
                            "error_type": type(exc).__name__,
                        },
                    )
                    raise NotificationError(
                        self.task_id,
                        f"Notify target failed for task {self.task_id}: {exc}",
                    ) from exc
            return True
        finally:
            reset_correlation_id(token)

    def __repr__(self) -> str:
        return (
            f"Task(operation={_describe(self._operation)}, task_id={self.task_id!r}, "
            f"has_run={self.has_run})"
        )

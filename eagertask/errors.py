"""Error types raised by the eagertask runtime."""

from __future__ import annotations

from dataclasses import dataclass


class TaskRuntimeError(Exception):
    """Base class for local failures raised at a call site."""


class InvalidAwaitError(TaskRuntimeError):
    """Raised inside a body that awaits an empty (moved-from or closed) Task."""


class AlreadyAwaitedError(TaskRuntimeError):
    """Raised when a second computation tries to await the same Task.

    A Promise holds at most one waiter. The first registration stays intact.
    """


class NotBoundError(TaskRuntimeError):
    """Raised by ``Task.get()`` on a handle that no longer owns a computation."""


class UnsetValueReadError(TaskRuntimeError):
    """Raised when a Promise value is read before the computation completed."""


class ValueConsumedError(UnsetValueReadError):
    """Raised when a value that was already moved out is read again."""


class NoSchedulerError(TaskRuntimeError):
    """Raised when a ``@task`` function is called outside an active Scheduler.

    Example:
        >>> @task
        ... def job():
        ...     yield Delay(1)
        ...     return 1
        >>>
        >>> with Scheduler() as scheduler:
        ...     handle = job()
        ...     scheduler.run()
    """


@dataclass(eq=False)
class TaskAbortedError(Exception):
    """An exception escaped a computation body.

    There is no recovery channel for this: the scheduler hands the error to
    its abort handler, which terminates the process by default.

    Attributes:
        task_name: Name of the body that failed.
        original: The exception raised by the body.
    """

    task_name: str
    original: BaseException

    def __str__(self) -> str:
        return f"task {self.task_name!r} aborted: {type(self.original).__name__}: {self.original}"


__all__ = [
    "AlreadyAwaitedError",
    "InvalidAwaitError",
    "NoSchedulerError",
    "NotBoundError",
    "TaskAbortedError",
    "TaskRuntimeError",
    "UnsetValueReadError",
    "ValueConsumedError",
]

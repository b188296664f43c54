"""Suspension requests a computation body can yield.

Usage:
    def worker():
        yield Delay(seconds=2.0)   # wait two seconds
        value = yield other_task   # wait for another Task, get its value
        value = yield Await(other) # same thing, spelled out
        return value
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from eagertask.clock import coerce_seconds

if TYPE_CHECKING:
    from eagertask.runtime import Task


@dataclass(frozen=True)
class Delay:
    """Suspend for a duration.

    Always suspends, including for a zero duration: the computation is
    queued on the scheduler's timer queue and resumed by the driver loop.

    Args:
        seconds: Non-negative duration, as seconds or a ``timedelta``.
    """

    seconds: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "seconds", coerce_seconds(self.seconds, name="seconds"))


@dataclass(frozen=True)
class Await:
    """Suspend until another Task completes, resuming with its value."""

    task: Task[Any]

    def __post_init__(self) -> None:
        from eagertask.runtime import Task

        if not isinstance(self.task, Task):
            raise TypeError(f"Await requires Task, got {type(self.task).__name__}")


def sleep(seconds: float | timedelta) -> Delay:
    return Delay(seconds=seconds)


__all__ = ["Await", "Delay", "sleep"]

"""Time sources for the driver loop.

Durations are plain seconds (``int``/``float``) or ``datetime.timedelta``.
Clock readings are floats on an arbitrary, monotonic origin.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol, runtime_checkable


def coerce_seconds(value: float | timedelta, *, name: str) -> float:
    if isinstance(value, timedelta):
        coerced = value.total_seconds()
    elif isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"{name} must be float or timedelta, got {type(value).__name__}")
    else:
        coerced = float(value)
    if math.isnan(coerced) or math.isinf(coerced):
        raise ValueError(f"{name} must be finite, got {value!r}")
    if coerced < 0:
        raise ValueError(f"{name} must be non-negative, got {value!r}")
    return coerced


def _coerce_finite_float(value: float, *, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"{name} must be float, got {type(value).__name__}")
    coerced = float(value)
    if math.isnan(coerced) or math.isinf(coerced):
        raise ValueError(f"{name} must be finite, got {value!r}")
    return coerced


@runtime_checkable
class Clock(Protocol):
    def now(self) -> float: ...

    def sleep_until(self, deadline: float) -> None: ...


class MonotonicClock:
    """Wall-clock time; ``sleep_until`` blocks the whole process."""

    def now(self) -> float:
        return time.monotonic()

    def sleep_until(self, deadline: float) -> None:
        remaining = deadline - time.monotonic()
        if remaining > 0:
            time.sleep(remaining)


@dataclass
class SimClock:
    """Virtual clock. Sleeping jumps straight to the deadline."""

    _mut_current_time: float = 0.0

    def __post_init__(self) -> None:
        self._mut_current_time = _coerce_finite_float(
            self._mut_current_time,
            name="current_time",
        )

    @property
    def current_time(self) -> float:
        return self._mut_current_time

    def now(self) -> float:
        return self._mut_current_time

    def advance_to(self, target_time: float) -> float:
        target = _coerce_finite_float(target_time, name="target_time")
        if target > self._mut_current_time:
            self._mut_current_time = target
        return self.current_time

    def jump_to(self, new_time: float) -> float:
        self._mut_current_time = _coerce_finite_float(new_time, name="new_time")
        return self.current_time

    def sleep_until(self, deadline: float) -> None:
        self.advance_to(deadline)


__all__ = ["Clock", "MonotonicClock", "SimClock", "coerce_seconds"]

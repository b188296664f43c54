"""Runtime configuration read from ``EAGERTASK_*`` environment variables.

    export EAGERTASK_CLOCK=simulated   # monotonic (default) | simulated
    export EAGERTASK_START_TIME=100    # initial virtual time, simulated clock only
    export EAGERTASK_DEBUG=1           # trace starts, sleeps and resumes at DEBUG level
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from frozendict import frozendict

from eagertask.clock import Clock, MonotonicClock, SimClock

ClockKind = Literal["monotonic", "simulated"]

ENV_PREFIX = "EAGERTASK_"

_VALID_CLOCKS: tuple[ClockKind, ...] = ("monotonic", "simulated")
_TRUTHY = frozenset({"1", "true", "yes", "on"})

DEFAULTS: frozendict[str, Any] = frozendict(
    clock="monotonic",
    start_time=0.0,
    debug=False,
)


@dataclass(frozen=True)
class RuntimeConfig:
    clock: ClockKind = DEFAULTS["clock"]
    start_time: float = DEFAULTS["start_time"]
    debug: bool = DEFAULTS["debug"]

    def __post_init__(self) -> None:
        if self.clock not in _VALID_CLOCKS:
            raise ValueError(f"clock must be one of 'monotonic' or 'simulated', got {self.clock!r}")
        if isinstance(self.start_time, bool) or not isinstance(self.start_time, int | float):
            raise TypeError(f"start_time must be float, got {type(self.start_time).__name__}")
        if not math.isfinite(self.start_time):
            raise ValueError(f"start_time must be finite, got {self.start_time!r}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RuntimeConfig:
        env = os.environ if environ is None else environ
        clock = env.get(f"{ENV_PREFIX}CLOCK", DEFAULTS["clock"]).strip().lower()
        raw_start = env.get(f"{ENV_PREFIX}START_TIME")
        try:
            start_time = float(raw_start) if raw_start is not None else DEFAULTS["start_time"]
        except ValueError:
            raise ValueError(
                f"{ENV_PREFIX}START_TIME must be a number, got {raw_start!r}"
            ) from None
        debug = env.get(f"{ENV_PREFIX}DEBUG", "").strip().lower() in _TRUTHY
        return cls(clock=clock, start_time=start_time, debug=debug)  # type: ignore[arg-type]

    def make_clock(self) -> Clock:
        if self.clock == "simulated":
            return SimClock(self.start_time)
        return MonotonicClock()


__all__ = ["DEFAULTS", "ENV_PREFIX", "ClockKind", "RuntimeConfig"]

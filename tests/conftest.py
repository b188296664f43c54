from __future__ import annotations

from collections.abc import Iterator

import pytest

from eagertask import RuntimeConfig, Scheduler, SimClock, TaskAbortedError


class AbortRecorder:
    """Abort handler that records failures instead of terminating the process."""

    def __init__(self) -> None:
        self.errors: list[TaskAbortedError] = []

    def __call__(self, error: TaskAbortedError) -> None:
        self.errors.append(error)


@pytest.fixture
def aborts() -> AbortRecorder:
    return AbortRecorder()


@pytest.fixture
def clock() -> SimClock:
    return SimClock()


@pytest.fixture
def scheduler(clock: SimClock, aborts: AbortRecorder) -> Iterator[Scheduler]:
    with Scheduler(clock, config=RuntimeConfig(clock="simulated"), abort_handler=aborts) as active:
        yield active

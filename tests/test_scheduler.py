from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from eagertask import (
    AlreadyAwaitedError,
    Await,
    Delay,
    FrameState,
    InvalidAwaitError,
    MonotonicClock,
    NoSchedulerError,
    RuntimeConfig,
    Scheduler,
    SimClock,
    Task,
    TaskBody,
    ValueConsumedError,
    sleep,
    task,
)
from eagertask.demo import wait_n

if TYPE_CHECKING:
    from tests.conftest import AbortRecorder


def sleeper(seconds: float, value: object) -> TaskBody[object]:
    yield Delay(seconds)
    return value


def awaiting(other: Task[object]) -> TaskBody[object]:
    return (yield other)


def test_staggered_waits_resume_by_wake_time(
    scheduler: Scheduler, capsys: pytest.CaptureFixture[str]
) -> None:
    w3 = wait_n(3)
    w2 = wait_n(2)
    w1 = wait_n(1)

    scheduler.run()

    assert capsys.readouterr().out.splitlines() == [
        "before wait 3",
        "before wait 2",
        "before wait 1",
        "after wait 1",
        "after wait 2",
        "after wait 3",
    ]
    assert (w1.get(), w2.get(), w3.get()) == (1, 2, 3)
    assert scheduler.now() == 3.0


def test_resume_order_does_not_depend_on_start_order(scheduler: Scheduler) -> None:
    resumed: list[tuple[str, float]] = []

    def waiter(name: str, seconds: float) -> TaskBody[None]:
        yield Delay(seconds)
        resumed.append((name, scheduler.now()))

    late = scheduler.start(waiter, "late", 2.5)
    early = scheduler.start(waiter, "early", 0.5)
    scheduler.run()

    assert resumed == [("early", 0.5), ("late", 2.5)]
    assert early.is_ready() and late.is_ready()


def test_body_runs_eagerly_up_to_first_suspension(scheduler: Scheduler) -> None:
    events: list[str] = []

    def body() -> TaskBody[str]:
        events.append("started")
        yield Delay(1)
        events.append("resumed")
        return "done"

    handle = scheduler.start(body)

    assert events == ["started"]
    assert handle.state is FrameState.SUSPENDED_ON_TIMER
    scheduler.run()
    assert events == ["started", "resumed"]
    assert handle.get() == "done"


def test_zero_delay_still_suspends(scheduler: Scheduler) -> None:
    events: list[str] = []

    def body() -> TaskBody[None]:
        yield sleep(0)
        events.append("resumed")

    handle = scheduler.start(body)

    assert events == []
    assert len(scheduler.timers) == 1
    scheduler.run()
    assert events == ["resumed"]
    assert handle.is_ready()


def test_waiter_resumes_after_dependency_with_its_value(scheduler: Scheduler) -> None:
    dependency = scheduler.start(sleeper, 2, "payload")
    dependent = scheduler.start(awaiting, dependency)

    assert dependent.state is FrameState.SUSPENDED_ON_TASK
    scheduler.run()

    assert dependent.get() == "payload"
    # the value was moved into the waiter
    assert dependency.is_ready()
    with pytest.raises(ValueConsumedError):
        dependency.get()


def test_awaiting_a_completed_task_does_not_touch_the_timer_queue(scheduler: Scheduler) -> None:
    queue_sizes: list[tuple[int, int]] = []

    def immediate() -> TaskBody[int]:
        return 5
        yield

    def body(other: Task[int]) -> TaskBody[int]:
        before = len(scheduler.timers)
        value = yield Await(other)
        queue_sizes.append((before, len(scheduler.timers)))
        return value

    scheduler.start(sleeper, 10, None)
    ready = scheduler.start(immediate)
    handle = scheduler.start(body, ready)

    assert handle.state is FrameState.COMPLETED
    assert handle.get() == 5
    assert queue_sizes == [(1, 1)]


def test_second_waiter_gets_already_awaited(scheduler: Scheduler) -> None:
    def second_body(other: Task[object]) -> TaskBody[object]:
        try:
            yield other
        except AlreadyAwaitedError as exc:
            return exc
        return None

    target = scheduler.start(sleeper, 1, "x")
    first = scheduler.start(awaiting, target)
    second = scheduler.start(second_body, target)

    assert isinstance(second.get(), AlreadyAwaitedError)
    scheduler.run()
    assert first.get() == "x"

    # the first registration survives completion
    third = scheduler.start(second_body, target)
    assert isinstance(third.get(), AlreadyAwaitedError)


def test_awaiting_an_unbound_task_is_invalid(scheduler: Scheduler) -> None:
    def body(other: Task[object]) -> TaskBody[object]:
        try:
            yield other
        except InvalidAwaitError:
            return "invalid"
        return "awaited"

    source = scheduler.start(sleeper, 1, None)
    moved = source.move()

    assert scheduler.start(body, source).get() == "invalid"
    assert scheduler.start(body, Task()).get() == "invalid"
    assert moved.bound


def test_completion_resumes_waiters_depth_first(scheduler: Scheduler) -> None:
    events: list[str] = []

    def leaf() -> TaskBody[int]:
        yield Delay(1)
        events.append("leaf done")
        return 1

    def link(name: str, other: Task[int]) -> TaskBody[int]:
        value = yield other
        events.append(f"{name} resumed")
        return value + 1

    def bystander() -> TaskBody[None]:
        yield Delay(1)
        events.append("bystander woke")

    bottom = scheduler.start(leaf)
    other = scheduler.start(bystander)
    middle = scheduler.start(link, "middle", bottom)
    top = scheduler.start(link, "top", middle)

    scheduler.run()

    assert events == ["leaf done", "middle resumed", "top resumed", "bystander woke"]
    assert top.get() == 3
    assert other.is_ready()


def test_destroyed_dependency_never_wakes_its_waiter(scheduler: Scheduler) -> None:
    dependency = scheduler.start(sleeper, 1, "x")
    dependent = scheduler.start(awaiting, dependency)

    dependency.close()
    scheduler.run()

    assert dependent.state is FrameState.SUSPENDED_ON_TASK
    assert not dependent.is_ready()


def test_destroyed_waiter_is_not_resumed(scheduler: Scheduler) -> None:
    dependency = scheduler.start(sleeper, 1, "x")
    dependent = scheduler.start(awaiting, dependency)

    dependent.close()
    scheduler.run()

    assert dependency.get() == "x"


def test_task_decorator_requires_an_active_scheduler() -> None:
    with pytest.raises(NoSchedulerError):
        wait_n(1)


def test_bodies_start_subtasks_on_their_own_scheduler(scheduler: Scheduler) -> None:
    other = Scheduler(SimClock(), config=RuntimeConfig(clock="simulated"))

    def body() -> TaskBody[int]:
        inner = wait_n(1)
        yield Delay(2)
        return (yield inner)

    handle = other.start(body)
    other.run()

    assert handle.get() == 1
    assert other.stats()["started"] == 2
    assert scheduler.stats()["started"] == 0


def test_task_decorator_keeps_the_body(scheduler: Scheduler) -> None:
    @task
    def double(value: int) -> TaskBody[int]:
        yield Delay(1)
        return value * 2

    handle = double(21)
    scheduler.run()

    assert handle.get() == 42
    assert double.__name__ == "double"
    assert double.body.__name__ == "double"


def test_run_returns_immediately_without_pending_timers(scheduler: Scheduler) -> None:
    scheduler.run()

    assert scheduler.stats()["sleeps"] == 0
    assert scheduler.now() == 0.0


def test_stats_snapshot(scheduler: Scheduler) -> None:
    scheduler.start(sleeper, 1, None)
    handle = scheduler.start(sleeper, 1, None)
    pending = scheduler.stats()

    scheduler.run()
    stats = scheduler.stats()

    assert pending["pending"] == 2
    assert stats["started"] == 2
    assert stats["completed"] == 1
    assert stats["resumed"] == 1
    assert stats["sleeps"] == 1
    assert stats["pending"] == 0
    assert handle.is_ready()
    with pytest.raises(TypeError):
        stats["pending"] = 3  # type: ignore[index]


def test_close_drops_pending_entries(scheduler: Scheduler, caplog: pytest.LogCaptureFixture) -> None:
    handle = scheduler.start(sleeper, 1, None)

    with caplog.at_level(logging.WARNING, logger="eagertask"):
        scheduler.close()

    assert len(scheduler.timers) == 0
    assert "1 pending timer entries" in caplog.text
    assert handle.state is FrameState.SUSPENDED_ON_TIMER


def test_debug_config_traces_resumes(clock: SimClock, caplog: pytest.LogCaptureFixture) -> None:
    scheduler = Scheduler(clock, config=RuntimeConfig(clock="simulated", debug=True))
    handle = scheduler.start(sleeper, 1, None)

    with caplog.at_level(logging.DEBUG, logger="eagertask"):
        scheduler.run()

    assert "resuming task 'sleeper'" in caplog.text
    assert handle.is_ready()


def test_monotonic_clock_waits_in_real_time() -> None:
    scheduler = Scheduler(MonotonicClock(), config=RuntimeConfig())
    clock = scheduler.clock
    started = clock.now()
    handle = scheduler.start(sleeper, 0.02, "slept")

    scheduler.run()

    assert clock.now() - started >= 0.02
    assert handle.get() == "slept"


def test_long_dependency_chain_completes_without_deep_recursion(
    scheduler: Scheduler, aborts: AbortRecorder
) -> None:
    order: list[int] = []

    def leaf() -> TaskBody[int]:
        yield Delay(1)
        order.append(0)
        return 0

    def link(depth: int, other: Task[int]) -> TaskBody[int]:
        value = yield other
        order.append(depth)
        return value + 1

    depth = 3000
    handles = [scheduler.start(leaf)]
    for level in range(1, depth + 1):
        handles.append(scheduler.start(link, level, handles[-1]))

    scheduler.run()

    assert aborts.errors == []
    assert order == list(range(depth + 1))
    assert handles[-1].get() == depth
    assert all(handle.state is FrameState.COMPLETED for handle in handles)

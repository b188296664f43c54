"""Single-threaded driver loop.

The scheduler owns the timer queue. ``run()`` resumes due entries in wake
time order and blocks the process until the next one is due when nothing is
ready, returning once the queue is empty.

Usage:
    @task
    def wait_n(n):
        yield Delay(n)
        return n

    with Scheduler() as scheduler:
        handle = wait_n(2)
        scheduler.run()
    assert handle.get() == 2
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import timedelta
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from frozendict import frozendict

from eagertask.clock import Clock, coerce_seconds
from eagertask.config import RuntimeConfig
from eagertask.errors import NoSchedulerError, TaskAbortedError
from eagertask.runtime import Frame, FrameState, Task, TaskBody
from eagertask.timer_queue import TimerQueue

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

AbortHandler = Callable[[TaskAbortedError], None]

_current_scheduler: ContextVar[Scheduler | None] = ContextVar(
    "eagertask_current_scheduler", default=None
)


def current_scheduler() -> Scheduler:
    scheduler = _current_scheduler.get()
    if scheduler is None:
        raise NoSchedulerError(
            "no active Scheduler\n"
            "Hint: call inside `with Scheduler() as scheduler:` or use scheduler.start(...)"
        )
    return scheduler


def terminate_process(error: TaskAbortedError) -> None:
    """Default abort policy: log the failure and abort the process."""
    original = error.original
    logger.critical(
        "%s; terminating process",
        error,
        exc_info=(type(original), original, original.__traceback__),
    )
    logging.shutdown()
    os.abort()


class Scheduler:
    def __init__(
        self,
        clock: Clock | None = None,
        *,
        config: RuntimeConfig | None = None,
        abort_handler: AbortHandler | None = None,
    ) -> None:
        self._config = config if config is not None else RuntimeConfig.from_env()
        self._clock = clock if clock is not None else self._config.make_clock()
        self._timers = TimerQueue()
        self._abort_handler = abort_handler if abort_handler is not None else terminate_process
        self._enter_tokens: list[Token[Scheduler | None]] = []
        self._started = 0
        self._completed = 0
        self._aborted = 0
        self._resumed = 0
        self._sleeps = 0

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def config(self) -> RuntimeConfig:
        return self._config

    @property
    def timers(self) -> TimerQueue:
        return self._timers

    def now(self) -> float:
        return self._clock.now()

    def start(self, body: Callable[..., TaskBody[T] | T], /, *args: Any, **kwargs: Any) -> Task[T]:
        """Start ``body`` eagerly and return the handle owning it.

        The body runs up to its first suspension point (or to completion)
        before this returns.
        """
        name = getattr(body, "__qualname__", None) or repr(body)
        frame: Frame[T] = Frame(self, name)
        handle = Task(frame)
        self._started += 1
        if self._config.debug:
            logger.debug("starting task %r", name)
        frame.start(body, args, kwargs)
        return handle

    def schedule_wakeup(self, frame: Frame[Any], seconds: float | timedelta) -> None:
        wake_time = self._clock.now() + coerce_seconds(seconds, name="seconds")
        self._timers.insert(wake_time, frame)
        if self._config.debug:
            logger.debug("task %r sleeps until %.6f", frame.name, wake_time)

    def run(self) -> None:
        """Resume due work until the timer queue is empty."""
        timers = self._timers
        while timers:
            frame = timers.extract_if_due(self._clock.now())
            if frame is None:
                deadline = timers.next_time()
                assert deadline is not None
                if self._config.debug:
                    logger.debug("nothing due, sleeping until %.6f", deadline)
                self._sleeps += 1
                self._clock.sleep_until(deadline)
                continue
            if frame.state is not FrameState.SUSPENDED_ON_TIMER:
                logger.debug("dropping timer entry of task %r in state %s", frame.name, frame.state.name)
                continue
            self._resumed += 1
            if self._config.debug:
                logger.debug("resuming task %r", frame.name)
            frame.resume()

    def close(self) -> None:
        dropped = self._timers.clear()
        if dropped:
            logger.warning(
                "scheduler closed with %d pending timer entries; they will not be resumed",
                len(dropped),
            )

    def notify_completed(self, frame: Frame[Any]) -> None:
        self._completed += 1
        if self._config.debug:
            logger.debug("task %r completed", frame.name)

    def notify_aborted(self, frame: Frame[Any], exc: Exception) -> None:
        self._aborted += 1
        error = TaskAbortedError(task_name=frame.name, original=exc)
        error.__cause__ = exc
        self._abort_handler(error)

    @contextmanager
    def activate(self) -> Iterator[Scheduler]:
        token = _current_scheduler.set(self)
        try:
            yield self
        finally:
            _current_scheduler.reset(token)

    def __enter__(self) -> Scheduler:
        self._enter_tokens.append(_current_scheduler.set(self))
        return self

    def __exit__(self, *exc_info: object) -> None:
        _current_scheduler.reset(self._enter_tokens.pop())
        self.close()

    def stats(self) -> frozendict[str, Any]:
        return frozendict(
            started=self._started,
            completed=self._completed,
            aborted=self._aborted,
            resumed=self._resumed,
            sleeps=self._sleeps,
            pending=len(self._timers),
            now=self._clock.now(),
        )


def task(func: Callable[P, TaskBody[T]]) -> Callable[P, Task[T]]:
    """Turn a generator function into an eagerly started task.

    Calling the decorated function starts the body on the current scheduler
    and returns its ``Task``. The undecorated function stays available as
    ``.body``.
    """

    @wraps(func)
    def start(*args: P.args, **kwargs: P.kwargs) -> Task[T]:
        return current_scheduler().start(func, *args, **kwargs)

    start.body = func  # type: ignore[attr-defined]
    return start


__all__ = [
    "AbortHandler",
    "Scheduler",
    "current_scheduler",
    "task",
    "terminate_process",
]

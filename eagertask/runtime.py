"""Eager tasks and the computation frames behind them.

A computation body is a generator function. Starting it creates a
``Frame`` (the owned computation state plus its ``Promise``) and a ``Task``
handle that owns the frame. The body runs synchronously until it yields a
suspension request:

- ``Delay``: the frame is queued on the scheduler's timer queue and the
  driver loop resumes it once the wake time has passed.
- ``Await`` / a ``Task``: if the awaited value is already set the body
  continues at once; otherwise the frame registers itself as the awaited
  promise's waiter and is resumed when that computation completes.

Completion hands the value straight to the registered waiter, which runs
before control goes back to whoever resumed the completing frame. There is
no intermediate queue, and a chain of dependents does not grow the stack.
"""

from __future__ import annotations

import enum
import inspect
import logging
from collections.abc import Callable, Generator
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from eagertask.effects import Await, Delay
from eagertask.errors import (
    AlreadyAwaitedError,
    InvalidAwaitError,
    NotBoundError,
    TaskRuntimeError,
    UnsetValueReadError,
    ValueConsumedError,
)

if TYPE_CHECKING:
    from eagertask.scheduler import Scheduler

logger = logging.getLogger(__name__)

T = TypeVar("T")

TaskBody = Generator[Any, Any, T]

Handoff = tuple["Frame[Any]", Any]


class FrameState(enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUSPENDED_ON_TIMER = "suspended_on_timer"
    SUSPENDED_ON_TASK = "suspended_on_task"
    COMPLETED = "completed"
    ABORTED = "aborted"
    DESTROYED = "destroyed"


_SUSPENDED_STATES = frozenset({FrameState.SUSPENDED_ON_TIMER, FrameState.SUSPENDED_ON_TASK})

_UNSET: Any = object()


class Promise(Generic[T]):
    """Result slot of one computation plus at most one waiter."""

    __slots__ = ("_value", "_is_set", "_taken", "waiter")

    def __init__(self) -> None:
        self._value: Any = _UNSET
        self._is_set = False
        self._taken = False
        self.waiter: Frame[Any] | None = None

    @property
    def is_ready(self) -> bool:
        """True once the value was set, including after it was moved out."""
        return self._is_set

    @property
    def has_value(self) -> bool:
        return self._is_set and not self._taken

    def set_value(self, value: T) -> None:
        if self._is_set:
            raise RuntimeError("promise value already set")
        self._value = value
        self._is_set = True

    def read_value(self) -> T:
        if not self._is_set:
            raise UnsetValueReadError("promise value read before the computation completed")
        if self._taken:
            raise ValueConsumedError("promise value was already moved out")
        return self._value

    def take_value(self) -> T:
        value = self.read_value()
        self._value = _UNSET
        self._taken = True
        return value

    def register_waiter(self, frame: Frame[Any]) -> None:
        if self.waiter is not None:
            raise AlreadyAwaitedError(f"task is already awaited by {self.waiter.name!r}")
        self.waiter = frame

    def detach_waiter(self) -> Frame[Any] | None:
        waiter, self.waiter = self.waiter, None
        return waiter

    def discard(self) -> None:
        self._value = _UNSET
        self.detach_waiter()


class Frame(Generic[T]):
    """Explicit state machine for one computation.

    ``start`` runs the body up to its first suspension point, ``resume`` is
    the re-entry point used by the driver loop. Waiters woken by a completing
    dependency are stepped by the same loop that resumed the dependency.
    """

    def __init__(self, scheduler: Scheduler, name: str) -> None:
        self.scheduler = scheduler
        self.name = name
        self.state = FrameState.NOT_STARTED
        self.promise: Promise[T] = Promise()
        self._gen: TaskBody[T] | None = None

    def __repr__(self) -> str:
        return f"Frame({self.name!r}, state={self.state.name})"

    @property
    def running(self) -> bool:
        return self.state is FrameState.RUNNING

    @property
    def suspended(self) -> bool:
        return self.state in _SUSPENDED_STATES

    def start(
        self,
        body: Callable[..., TaskBody[T] | T],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        if self.state is not FrameState.NOT_STARTED:
            raise RuntimeError(f"task {self.name!r} was already started")
        with self.scheduler.activate():
            self.state = FrameState.RUNNING
            try:
                gen_or_value = body(*args, **kwargs)
            except Exception as exc:
                self._abort(exc)
                return
            if not inspect.isgenerator(gen_or_value):
                handoff = self._complete(gen_or_value)
            else:
                self._gen = gen_or_value
                handoff = self._advance(None, None)
        _run_handoffs(handoff)

    def resume(self, value: Any = None) -> None:
        if self.state is FrameState.DESTROYED:
            logger.debug("not resuming destroyed task %r", self.name)
            return
        if not self.suspended:
            raise RuntimeError(f"cannot resume task {self.name!r} in state {self.state.name}")
        _run_handoffs(self._step(value))

    def destroy(self) -> None:
        """Close the body and drop the value. A registered waiter is never resumed."""
        if self.state is FrameState.DESTROYED:
            return
        gen = self._gen
        if gen is not None and gen.gi_running:
            raise RuntimeError(f"cannot destroy task {self.name!r} while its body is executing")
        self._gen = None
        self.state = FrameState.DESTROYED
        self.promise.discard()
        if gen is not None:
            gen.close()

    def _step(self, value: Any) -> Handoff | None:
        with self.scheduler.activate():
            self.state = FrameState.RUNNING
            return self._advance(value, None)

    def _advance(self, value: Any, error: BaseException | None) -> Handoff | None:
        gen = self._gen
        assert gen is not None
        while True:
            try:
                if error is not None:
                    request = gen.throw(error)
                else:
                    request = gen.send(value)
            except StopIteration as stop:
                self._gen = None
                return self._complete(stop.value)
            except Exception as exc:
                self._gen = None
                self._abort(exc)
                return None

            value, error = None, None
            if isinstance(request, Task):
                request = Await(task=request)

            if isinstance(request, Delay):
                self.state = FrameState.SUSPENDED_ON_TIMER
                self.scheduler.schedule_wakeup(self, request.seconds)
                return None
            if isinstance(request, Await):
                try:
                    suspended, value = self._wait_on(request.task)
                except TaskRuntimeError as exc:
                    error = exc
                    continue
                if suspended:
                    return None
                continue
            error = TypeError(
                f"task {self.name!r} yielded {type(request).__name__}; expected Delay, Await or Task"
            )

    def _wait_on(self, task: Task[Any]) -> tuple[bool, Any]:
        frame = task._frame
        if frame is None:
            raise InvalidAwaitError("awaited task has no bound computation")
        promise = frame.promise
        if promise.waiter is not None:
            raise AlreadyAwaitedError(
                f"task {frame.name!r} is already awaited by {promise.waiter.name!r}"
            )
        if promise.is_ready:
            return False, promise.take_value()
        promise.register_waiter(self)
        self.state = FrameState.SUSPENDED_ON_TASK
        return True, None

    def _complete(self, value: T) -> Handoff | None:
        """Store the value and hand it to the waiter, if any.

        The completing frame does nothing after the handoff, so the caller
        resumes the waiter in its place instead of nesting another call.
        """
        self.promise.set_value(value)
        self.state = FrameState.COMPLETED
        self.scheduler.notify_completed(self)
        waiter = self.promise.waiter
        if waiter is None:
            return None
        if waiter.state is FrameState.DESTROYED:
            logger.debug("waiter %r of task %r was destroyed", waiter.name, self.name)
            return None
        return waiter, self.promise.take_value()

    def _abort(self, exc: Exception) -> None:
        self.state = FrameState.ABORTED
        self.scheduler.notify_aborted(self, exc)


def _run_handoffs(handoff: Handoff | None) -> None:
    # Each waiter runs before the frame that woke it returns to its resumer,
    # on a flat stack however long the chain of dependents is.
    while handoff is not None:
        waiter, value = handoff
        handoff = waiter._step(value)


class Task(Generic[T]):
    """Unique owning handle to one computation.

    ``move()`` transfers ownership and leaves this handle empty. Closing the
    handle (explicitly, via ``with``, or when it is garbage collected)
    destroys the computation even if it has not finished.
    """

    __slots__ = ("_frame", "__weakref__")

    def __init__(self, frame: Frame[T] | None = None) -> None:
        self._frame = frame

    def __repr__(self) -> str:
        if self._frame is None:
            return "Task(<unbound>)"
        return f"Task({self._frame.name!r}, state={self._frame.state.name})"

    @property
    def bound(self) -> bool:
        return self._frame is not None

    def __bool__(self) -> bool:
        return self._frame is not None

    @property
    def name(self) -> str | None:
        return None if self._frame is None else self._frame.name

    @property
    def state(self) -> FrameState | None:
        return None if self._frame is None else self._frame.state

    def is_ready(self) -> bool:
        if self._frame is None:
            return False
        return self._frame.promise.is_ready

    def get(self) -> T:
        """Move the result out. Only the first call after completion succeeds."""
        if self._frame is None:
            raise NotBoundError("get from task without a bound computation")
        return self._frame.promise.take_value()

    def move(self) -> Task[T]:
        frame, self._frame = self._frame, None
        return Task(frame)

    def assign(self, other: Task[T]) -> Task[T]:
        if other is self:
            return self
        self.close()
        frame, other._frame = other._frame, None
        self._frame = frame
        return self

    def close(self) -> None:
        frame = self._frame
        if frame is None:
            return
        frame.destroy()
        self._frame = None

    def __enter__(self) -> Task[T]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __copy__(self) -> Task[T]:
        raise TypeError("Task handles cannot be copied; use move()")

    def __deepcopy__(self, memo: dict[int, Any]) -> Task[T]:
        raise TypeError("Task handles cannot be copied; use move()")

    def __del__(self) -> None:
        frame = getattr(self, "_frame", None)
        if frame is None:
            return
        if frame.running:
            logger.debug("handle of executing task %r dropped; the task finishes unowned", frame.name)
            return
        self._frame = None
        frame.destroy()


__all__ = ["Frame", "FrameState", "Promise", "Task", "TaskBody"]

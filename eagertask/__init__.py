"""eagertask: eagerly started generator tasks on a single-threaded timer loop."""

from eagertask.clock import Clock, MonotonicClock, SimClock, coerce_seconds
from eagertask.config import DEFAULTS, RuntimeConfig
from eagertask.effects import Await, Delay, sleep
from eagertask.errors import (
    AlreadyAwaitedError,
    InvalidAwaitError,
    NoSchedulerError,
    NotBoundError,
    TaskAbortedError,
    TaskRuntimeError,
    UnsetValueReadError,
    ValueConsumedError,
)
from eagertask.scheduler import (
    AbortHandler,
    Scheduler,
    current_scheduler,
    task,
    terminate_process,
)
from eagertask.runtime import Frame, FrameState, Promise, Task, TaskBody
from eagertask.timer_queue import TimerEntry, TimerQueue

__version__ = "0.1.0"

__all__ = [
    "DEFAULTS",
    "AbortHandler",
    "AlreadyAwaitedError",
    "Await",
    "Clock",
    "Delay",
    "Frame",
    "FrameState",
    "InvalidAwaitError",
    "MonotonicClock",
    "NoSchedulerError",
    "NotBoundError",
    "Promise",
    "RuntimeConfig",
    "Scheduler",
    "SimClock",
    "Task",
    "TaskAbortedError",
    "TaskBody",
    "TaskRuntimeError",
    "TimerEntry",
    "TimerQueue",
    "UnsetValueReadError",
    "ValueConsumedError",
    "coerce_seconds",
    "current_scheduler",
    "sleep",
    "task",
    "terminate_process",
]

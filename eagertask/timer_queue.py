"""Min-heap of pending wake-ups ordered by wake time.

Entries with equal wake times come out in insertion order.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from eagertask.runtime import Frame


@dataclass(frozen=True)
class TimerEntry:
    wake_time: float
    sequence: int
    frame: Frame[Any]


class TimerQueue:
    def __init__(self) -> None:
        self._sequence = 0
        self._items: list[tuple[float, int, Frame[Any]]] = []

    def insert(self, wake_time: float, frame: Frame[Any]) -> TimerEntry:
        self._sequence += 1
        heapq.heappush(self._items, (float(wake_time), self._sequence, frame))
        return TimerEntry(wake_time=float(wake_time), sequence=self._sequence, frame=frame)

    def peek_earliest(self) -> TimerEntry | None:
        if not self._items:
            return None
        wake_time, sequence, frame = self._items[0]
        return TimerEntry(wake_time=wake_time, sequence=sequence, frame=frame)

    def extract_if_due(self, now: float) -> Frame[Any] | None:
        if not self._items:
            return None
        wake_time, _sequence, frame = self._items[0]
        if wake_time > now:
            return None
        heapq.heappop(self._items)
        return frame

    def next_time(self) -> float | None:
        if not self._items:
            return None
        return self._items[0][0]

    def clear(self) -> list[TimerEntry]:
        """Drop every pending entry and return them in wake order."""
        dropped = [
            TimerEntry(wake_time=wake_time, sequence=sequence, frame=frame)
            for wake_time, sequence, frame in sorted(self._items, key=lambda item: item[:2])
        ]
        self._items.clear()
        return dropped

    def empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)


__all__ = ["TimerEntry", "TimerQueue"]

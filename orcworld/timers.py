"""Timed events, delivered earliest first."""

from __future__ import annotations

import heapq
import itertools
import threading
from dataclasses import dataclass
from enum import Enum, auto


class TimerKind(Enum):
    ATTACK = auto()
    ATTACK_SKILL = auto()
    HEAL_SKILL = auto()
    HEAL = auto()
    RELIVE = auto()
    RANDOM_MOVE = auto()
    FOLLOW_MOVE = auto()


@dataclass(frozen=True)
class TimerEvent:
    """Something to do for an object once wake_time (seconds) is reached."""

    obj_id: int
    wake_time: float
    kind: TimerKind
    target_id: int = 0


class TimerQueue:
    """Thread-safe priority queue of timer events."""

    def __init__(self) -> None:
        self._heap: list[tuple[float, int, TimerEvent]] = []
        self._order = itertools.count()
        self._lock = threading.Lock()

    def push(self, event: TimerEvent) -> None:
        with self._lock:
            heapq.heappush(self._heap, (event.wake_time, next(self._order), event))

    def pop_due(self, now: float) -> list[TimerEvent]:
        """Remove and return the events due at or before now, earliest first."""
        due: list[TimerEvent] = []
        with self._lock:
            while self._heap and self._heap[0][0] <= now:
                due.append(heapq.heappop(self._heap)[2])
        return due

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)
"""
Environment clock

Supplies record timestamps as UNIX seconds. Timestamps never go backwards,
even if the wall clock does.
"""

from abc import ABC, abstractmethod
import threading
import time


class Clock(ABC):
    """Source of record-creation timestamps"""

    @abstractmethod
    def now(self) -> int:
        """Current timestamp in whole seconds"""
        pass


class SystemClock(Clock):
    """Wall clock clamped to be monotonically non-decreasing"""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class ManualClock(Clock):
    """Clock that only moves when told to"""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Clock cannot start before the epoch")
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, timestamp: int) -> None:
        with self._lock:
            if timestamp < self._now:
                raise ValueError(f"Clock cannot move backwards from {self._now} to {timestamp}")
            self._now = timestamp

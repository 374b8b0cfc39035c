"""Logical time sources for lock-window checks."""
import threading
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Supplies a monotonically non-decreasing slot number."""

    @abstractmethod
    def now(self) -> int:
        """Return the current slot."""


class SystemClock(Clock):
    """Wall-clock seconds since the epoch, never stepping backwards."""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class ManualClock(Clock):
    """A clock that only moves when told to. Used by tests and the CLI."""

    def __init__(self, slot: int = 0):
        if slot < 0:
            raise ValueError("slot must be non-negative")
        self._slot = slot

    def now(self) -> int:
        return self._slot

    def set(self, slot: int) -> None:
        if slot < self._slot:
            raise ValueError(f"clock cannot move backwards ({slot} < {self._slot})")
        self._slot = slot

    def advance(self, slots: int = 1) -> int:
        if slots < 0:
            raise ValueError("slots must be non-negative")
        self._slot += slots
        return self._slot

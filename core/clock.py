# =============================================================================
# POLYMARKET LENDING - CLOCK
# =============================================================================
#
# The host environment is the trusted source of time.
# Every operation reads the clock exactly ONCE and uses that value throughout.
# Time is integer unix seconds, monotonically non-decreasing, possibly equal
# across consecutive operations.
#
# =============================================================================

import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Source of the current time in integer unix seconds."""

    @abstractmethod
    def now(self) -> int:
        """Return the current time."""


class SystemClock(Clock):
    """Wall clock, truncated to whole seconds and never moving backwards."""

    def __init__(self):
        self._last = 0

    def now(self) -> int:
        current = int(time.time())
        if current < self._last:
            current = self._last
        self._last = current
        return current


class ManualClock(Clock):
    """
    Clock advanced explicitly by the caller.

    Used by tests and simulations.
    """

    def __init__(self, start: int = 1_700_000_000):
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move the clock forward and return the new time."""
        if seconds < 0:
            raise ValueError(f"Clock cannot move backwards: {seconds}")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        """Jump to an absolute time (not earlier than the current one)."""
        if timestamp < self._now:
            raise ValueError(f"Clock cannot move backwards: {timestamp} < {self._now}")
        self._now = timestamp

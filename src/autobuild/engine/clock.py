# src/autobuild/engine/clock.py
"""Clock abstraction for testable timing.

Two readings are needed: wall-clock time, compared against artifact file
modification times by the build freshness check, and monotonic time, used
for step durations.

Production code uses SystemClock (the default).
Tests inject MockClock to control time advancement.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Abstract clock.

    Implementations:
    - SystemClock: Uses time.time() / time.monotonic() (production)
    - MockClock: Returns controllable times (testing)
    """

    def now(self) -> float:
        """Return wall-clock time as a POSIX timestamp in seconds.

        Comparable with ``os.stat().st_mtime``.
        """
        ...

    def monotonic(self) -> float:
        """Return monotonic time in seconds (never goes backwards)."""
        ...


class SystemClock:
    """Production clock using the system clocks."""

    def now(self) -> float:
        return time.time()

    def monotonic(self) -> float:
        return time.monotonic()


class MockClock:
    """Controllable clock for deterministic testing.

    Both readings advance together.

    Example:
        clock = MockClock(start=1_700_000_000.0)
        service = FreshnessCheckedBuildService(builder, clock=clock)
        clock.advance(5.0)
    """

    def __init__(self, start: float = 0.0) -> None:
        self._current = start

    def now(self) -> float:
        return self._current

    def monotonic(self) -> float:
        return self._current

    def advance(self, seconds: float) -> None:
        """Advance time by the given number of seconds.

        Raises:
            ValueError: If seconds is negative
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance clock by negative amount: {seconds}")
        self._current += seconds

    def set(self, value: float) -> None:
        """Set time to an absolute value (may go backwards; wall clocks can)."""
        self._current = value


# Default clock instance for production use
DEFAULT_CLOCK: Clock = SystemClock()

"""
Clock -- where trajectory timestamps come from.

TrajectoryStore stamps ``recorded_at`` on every step it writes with the
Clock it was built with.  SystemClock is the default; tests pass a
DeterministicClock so step times are known in advance.

Architecture position:
    Kernel > Domain.  No I/O apart from SystemClock reading the wall clock.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

EPOCH_FOR_TESTS = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware UTC datetimes for trajectory steps."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests.

    Every call to ``now()`` returns the same instant until ``advance()``
    moves it forward, so two steps written without an advance in between
    share a timestamp.
    """

    def __init__(self, start: datetime = EPOCH_FOR_TESTS):
        if start.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware start")
        self._current = start

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: int = 1) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current

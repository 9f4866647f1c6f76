"""
Clock -- injectable time source.

Responsibility:
    Gives the temporal policy and the lifecycle service a single place to
    ask "what time is it".  Nothing in the kernel calls ``datetime.now()``
    directly, so month-end crossings and late-log gaps can be simulated
    in tests by moving a DeterministicClock.

Architecture position:
    Kernel > Domain.  SystemClock is the only sanctioned I/O boundary for
    time.

Failure modes:
    - SequentialClock raises ValueError when constructed empty.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Iterable


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        Services receive a Clock through their constructor and never read
        the system time themselves.

    Guarantees:
        ``now()`` returns a timezone-aware ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current instant (timezone-aware)."""
        ...

    def now_utc(self) -> datetime:
        """Get the current instant normalized to UTC."""
        return self.now().astimezone(timezone.utc)


class SystemClock(Clock):
    """Production clock backed by the system time, in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` is stable until ``advance()``/``set_time()`` is called.
        - ``tick()`` advances by exactly one second.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2026, 2, 5, 15, 0, 0, tzinfo=timezone.utc
        )
        if self._fixed_time.tzinfo is None:
            raise ValueError("DeterministicClock requires a timezone-aware datetime")
        self._offset = timedelta()

    def now(self) -> datetime:
        return self._fixed_time + self._offset

    def set_time(self, time: datetime) -> None:
        if time.tzinfo is None:
            raise ValueError("DeterministicClock requires a timezone-aware datetime")
        self._fixed_time = time
        self._offset = timedelta()

    def advance(self, seconds: int = 1, *, days: int = 0) -> None:
        """Move the clock forward by ``seconds`` plus ``days``."""
        self._offset += timedelta(days=days, seconds=seconds)

    def tick(self) -> datetime:
        self.advance(1)
        return self.now()


class SequentialClock(Clock):
    """
    Returns times from a predefined sequence, then repeats the last one.

    Useful when a single operation reads the clock several times and the
    test needs each read to land on a specific instant.
    """

    def __init__(self, times: Iterable[datetime]):
        self._times = list(times)
        if not self._times:
            raise ValueError("SequentialClock requires at least one time")
        self._index = 0

    def now(self) -> datetime:
        value = self._times[min(self._index, len(self._times) - 1)]
        self._index += 1
        return value

"""
Temporal policy -- lock, lateness, and same-day windows.

Responsibility:
    Every date decision in the engine (is this month closed, was this
    entry logged late, which entries count as "the same day") is made in
    ONE business time zone.  Server-local and client-local time never
    participate, so an entry cannot flip between locked and unlocked
    depending on where the request came from.

Architecture position:
    Kernel > Domain.  Reads time only through the injected Clock.

Invariants enforced:
    - Period lock is dynamic: evaluated against ``clock.now()`` on every
      call, never cached.  An entry created mid-month becomes uneditable
      once the month rolls over without any batch job.
    - Period lock is monotonic: once true for a date it stays true for
      every later instant.
    - Lateness compares date-only forms; ``days_late`` is never negative.

Failure modes:
    - ``zoneinfo.ZoneInfoNotFoundError`` for an unknown zone name.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo
from zoneinfo import ZoneInfo

from allocation_kernel.domain.clock import Clock

DEFAULT_BUSINESS_TIMEZONE = "America/New_York"

_DAY_END = time(23, 59, 59, 999000)
_LOCK_TIME = time(23, 59, 59)


@dataclass(frozen=True)
class Lateness:
    is_late: bool
    days_late: int


@dataclass(frozen=True)
class SerialWindow:
    """Inclusive business-zone boundary of one calendar day."""

    day: date
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


class TemporalPolicy:
    """
    Business-zone date reasoning.

    Contract:
        Accepts ``date``, aware ``datetime``, or naive ``datetime``.  Naive
        datetimes are interpreted as wall-clock time in the business zone.

    Guarantees:
        - ``is_period_locked`` reads the clock on every call.
        - All returned datetimes are aware and in the business zone.
    """

    def __init__(self, clock: Clock, zone_name: str = DEFAULT_BUSINESS_TIMEZONE):
        self._clock = clock
        self._zone: tzinfo = ZoneInfo(zone_name)
        self.zone_name = zone_name

    @property
    def zone(self) -> tzinfo:
        return self._zone

    def now(self) -> datetime:
        """Current instant in the business zone."""
        return self._clock.now().astimezone(self._zone)

    def today(self) -> date:
        return self.now().date()

    def normalize_to_date_only(self, value: date | datetime) -> date:
        """Strip time-of-day in the business zone."""
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.date()
            return value.astimezone(self._zone).date()
        return value

    def lock_boundary(self, value: date | datetime) -> datetime:
        """23:59:59 on the last calendar day of the month containing ``value``."""
        day = self.normalize_to_date_only(value)
        last_day = calendar.monthrange(day.year, day.month)[1]
        return datetime.combine(
            date(day.year, day.month, last_day), _LOCK_TIME, tzinfo=self._zone
        )

    def is_period_locked(self, value: date | datetime) -> bool:
        return self.now() > self.lock_boundary(value)

    def compute_lateness(
        self,
        allocation_date: date | datetime,
        capture_date: date | datetime,
    ) -> Lateness:
        allocated = self.normalize_to_date_only(allocation_date)
        captured = self.normalize_to_date_only(capture_date)
        if captured > allocated:
            return Lateness(is_late=True, days_late=(captured - allocated).days)
        return Lateness(is_late=False, days_late=0)

    def get_serial_window(self, value: date | datetime) -> SerialWindow:
        day = self.normalize_to_date_only(value)
        return SerialWindow(
            day=day,
            start=datetime.combine(day, time.min, tzinfo=self._zone),
            end=datetime.combine(day, _DAY_END, tzinfo=self._zone),
        )


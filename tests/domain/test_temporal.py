"""
Tests for TemporalPolicy.

Covers:
- Business-zone normalization of aware / naive datetimes
- Period lock boundary and dynamic evaluation
- Lock monotonicity (Hypothesis)
- Lateness and serial windows
"""

from datetime import date, datetime, time, timedelta, timezone

import pytest
from hypothesis import given
from hypothesis import strategies as st

from allocation_kernel.domain.clock import DeterministicClock, SequentialClock
from allocation_kernel.domain.temporal import TemporalPolicy


def _policy(at: datetime | None = None) -> tuple[TemporalPolicy, DeterministicClock]:
    clock = DeterministicClock(at)
    return TemporalPolicy(clock), clock


class TestNormalization:
    def test_aware_datetime_converted_to_business_zone(self):
        policy, _ = _policy()
        # 03:00 UTC on Mar 1 is still Feb 28 in New York
        assert policy.normalize_to_date_only(
            datetime(2026, 3, 1, 3, 0, tzinfo=timezone.utc)
        ) == date(2026, 2, 28)

    def test_naive_datetime_is_business_local(self):
        policy, _ = _policy()
        assert policy.normalize_to_date_only(datetime(2026, 3, 1, 3, 0)) == date(2026, 3, 1)

    def test_date_passes_through(self):
        policy, _ = _policy()
        assert policy.normalize_to_date_only(date(2026, 2, 5)) == date(2026, 2, 5)

    def test_today_uses_business_zone(self):
        policy, _ = _policy(datetime(2026, 2, 6, 2, 0, tzinfo=timezone.utc))
        assert policy.today() == date(2026, 2, 5)


class TestPeriodLock:
    def test_boundary_is_last_day_235959(self):
        policy, _ = _policy()
        boundary = policy.lock_boundary(date(2026, 2, 5))
        assert boundary.date() == date(2026, 2, 28)
        assert boundary.time() == time(23, 59, 59)
        assert boundary.utcoffset() == timedelta(hours=-5)

    def test_leap_year_boundary(self):
        policy, _ = _policy()
        assert policy.lock_boundary(date(2028, 2, 10)).date() == date(2028, 2, 29)

    def test_current_month_unlocked(self):
        policy, _ = _policy()
        assert not policy.is_period_locked(date(2026, 2, 1))

    def test_previous_month_locked(self):
        policy, _ = _policy()
        assert policy.is_period_locked(date(2026, 1, 31))

    def test_lock_evaluated_on_every_call(self):
        policy, clock = _policy()
        assert not policy.is_period_locked(date(2026, 2, 5))
        # Feb 28 23:59:59 EST == Mar 1 04:59:59 UTC
        clock.set_time(datetime(2026, 3, 1, 4, 59, 59, tzinfo=timezone.utc))
        assert not policy.is_period_locked(date(2026, 2, 5))
        clock.tick()
        assert policy.is_period_locked(date(2026, 2, 5))

    @given(
        day=st.dates(min_value=date(2025, 1, 1), max_value=date(2027, 12, 31)),
        start=st.datetimes(min_value=datetime(2025, 1, 1), max_value=datetime(2028, 1, 1)),
        step=st.timedeltas(min_value=timedelta(0), max_value=timedelta(days=400)),
    )
    def test_lock_is_monotonic(self, day, start, step):
        clock = DeterministicClock(start.replace(tzinfo=timezone.utc))
        policy = TemporalPolicy(clock)
        before = policy.is_period_locked(day)
        clock.set_time(start.replace(tzinfo=timezone.utc) + step)
        after = policy.is_period_locked(day)
        assert not (before and not after)


class TestLateness:
    def test_same_day_not_late(self):
        policy, _ = _policy()
        lateness = policy.compute_lateness(
            date(2026, 2, 5), datetime(2026, 2, 5, 23, 0, tzinfo=timezone.utc)
        )
        assert not lateness.is_late
        assert lateness.days_late == 0

    def test_late_by_five_days(self):
        policy, _ = _policy()
        lateness = policy.compute_lateness(
            date(2026, 2, 5), datetime(2026, 2, 10, 15, 0, tzinfo=timezone.utc)
        )
        assert lateness.is_late
        assert lateness.days_late == 5

    def test_capture_before_allocation_never_negative(self):
        policy, _ = _policy()
        lateness = policy.compute_lateness(date(2026, 2, 10), date(2026, 2, 5))
        assert lateness.days_late == 0


class TestSerialWindow:
    def test_window_covers_business_day(self):
        policy, _ = _policy()
        window = policy.get_serial_window(datetime(2026, 2, 6, 3, 0, tzinfo=timezone.utc))
        assert window.day == date(2026, 2, 5)
        assert window.start.time() == time(0, 0)
        assert window.end.time() == time(23, 59, 59, 999000)
        assert window.contains(datetime(2026, 2, 5, 5, 0, tzinfo=timezone.utc))
        assert not window.contains(datetime(2026, 2, 6, 5, 0, tzinfo=timezone.utc))


class TestClocks:
    def test_deterministic_clock_rejects_naive_time(self):
        with pytest.raises(ValueError):
            DeterministicClock(datetime(2026, 2, 5, 10, 0))

    def test_advance_and_tick(self):
        clock = DeterministicClock()
        start = clock.now()
        clock.advance(30, days=1)
        assert clock.now() - start == timedelta(days=1, seconds=30)
        assert clock.tick() - start == timedelta(days=1, seconds=31)

    def test_sequential_clock_repeats_last_instant(self):
        times = [
            datetime(2026, 2, 5, 4, 59, tzinfo=timezone.utc),
            datetime(2026, 2, 5, 5, 1, tzinfo=timezone.utc),
        ]
        clock = SequentialClock(times)
        assert clock.now() == times[0]
        assert clock.now() == times[1]
        assert clock.now() == times[1]

    def test_sequential_clock_requires_times(self):
        with pytest.raises(ValueError):
            SequentialClock([])

    def test_today_follows_each_read_across_midnight(self):
        # 23:59 then 00:01 in New York
        clock = SequentialClock([
            datetime(2026, 2, 6, 4, 59, tzinfo=timezone.utc),
            datetime(2026, 2, 6, 5, 1, tzinfo=timezone.utc),
        ])
        policy = TemporalPolicy(clock, "America/New_York")
        assert policy.today() == date(2026, 2, 5)
        assert policy.today() == date(2026, 2, 6)

"""Tests for AllocationSelector read queries."""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from allocation_kernel.domain.allocation import CaseFilters, DeleteDecision
from allocation_kernel.exceptions import AllocationNotFoundError, ValidationFailedError


@pytest.fixture
def january_entries(create_entry, deterministic_clock):
    """Two entries logged while January was still open."""
    deterministic_clock.set_time(datetime(2026, 1, 20, 15, 0, tzinfo=timezone.utc))
    entries = [
        create_entry(allocation_date=date(2026, 1, 15)),
        create_entry("datavant", allocation_date=date(2026, 1, 20), request_type="Follow up",
                     count=4),
    ]
    deterministic_clock.set_time(datetime(2026, 2, 5, 15, 0, tzinfo=timezone.utc))
    return entries


class TestGet:
    def test_unknown_id(self, selector):
        with pytest.raises(AllocationNotFoundError):
            selector.get(uuid4())

    def test_soft_deleted_still_returned(self, create_entry, lifecycle_service, admin_actor,
                                         selector):
        record = create_entry()
        lifecycle_service.admin_direct_delete(record.id, admin_actor, reason="r")
        assert selector.get(record.id).is_deleted is True


class TestTodaysAllocations:
    def test_by_capture_day(self, create_entry, selector, deterministic_clock):
        yesterday_work = create_entry(allocation_date=date(2026, 2, 4))
        deterministic_clock.advance(60)
        today_work = create_entry()

        todays = selector.todays_allocations("ALICE@example.com")
        assert [r.id for r in todays] == [yesterday_work.id, today_work.id]

        deterministic_clock.advance(days=1)
        tomorrow = create_entry(allocation_date=date(2026, 2, 6))
        assert [r.id for r in selector.todays_allocations("alice@example.com")] == [tomorrow.id]

    def test_business_day_boundary(self, create_entry, selector, deterministic_clock):
        # 04:30 UTC on the 6th is 23:30 on the 5th in New York
        deterministic_clock.set_time(datetime(2026, 2, 6, 4, 30, tzinfo=timezone.utc))
        late_evening = create_entry()
        deterministic_clock.set_time(datetime(2026, 2, 5, 15, 0, tzinfo=timezone.utc))

        assert late_evening.id in [r.id for r in selector.todays_allocations("alice@example.com")]

    def test_excludes_other_resources_and_deleted(self, create_entry, lifecycle_service,
                                                  admin_actor, other_actor, selector):
        mine = create_entry()
        deleted = create_entry()
        create_entry(actor=other_actor)
        lifecycle_service.admin_direct_delete(deleted.id, admin_actor, reason="r")

        assert [r.id for r in selector.todays_allocations("alice@example.com")] == [mine.id]


class TestPreviousLoggedCases:
    def test_ordered_newest_first(self, create_entry, selector):
        older = create_entry(allocation_date=date(2026, 2, 4))
        first = create_entry()
        second = create_entry()

        page = selector.previous_logged_cases("alice@example.com")

        assert [r.id for r in page.items] == [second.id, first.id, older.id]
        assert page.total == 3
        assert page.pages == 1

    def test_pagination(self, create_entry, selector):
        for _ in range(5):
            create_entry()

        page = selector.previous_logged_cases("alice@example.com", CaseFilters(page=2, limit=2))

        assert [r.sr_no for r in page.items] == [3, 2]
        assert page.total == 5
        assert page.pages == 3

    def test_filters(self, create_entry, selector, january_entries):
        create_entry(request_id="REQ-1", request_type="New Request")
        create_entry("datavant", request_type="New Request")

        feb = selector.previous_logged_cases("alice@example.com", CaseFilters(month=2, year=2026))
        assert feb.total == 2

        datavant = selector.previous_logged_cases(
            "alice@example.com",
            CaseFilters(subproject_key="datavant|datavant records|texas"),
        )
        assert datavant.total == 2

        by_type = selector.previous_logged_cases(
            "alice@example.com", CaseFilters(request_type="Follow up"),
        )
        assert [r.id for r in by_type.items] == [january_entries[1].id]

        by_request = selector.previous_logged_cases(
            "alice@example.com", CaseFilters(request_id=" REQ-1 "),
        )
        assert by_request.total == 1

    def test_deleted_hidden_unless_requested(self, create_entry, lifecycle_service,
                                             admin_actor, selector):
        record = create_entry()
        lifecycle_service.admin_direct_delete(record.id, admin_actor, reason="r")

        assert selector.previous_logged_cases("alice@example.com").total == 0
        with_deleted = selector.previous_logged_cases(
            "alice@example.com", CaseFilters(include_deleted=True),
        )
        assert with_deleted.total == 1

    @pytest.mark.parametrize("filters", [CaseFilters(page=0), CaseFilters(limit=0)])
    def test_invalid_paging(self, selector, filters):
        with pytest.raises(ValidationFailedError):
            selector.previous_logged_cases("alice@example.com", filters)


class TestAdminQueues:
    def test_late_logs(self, create_entry, selector, other_actor):
        late = create_entry(allocation_date=date(2026, 2, 3))
        create_entry()
        bob_late = create_entry(actor=other_actor, allocation_date=date(2026, 2, 1))

        all_late = selector.late_logs(month=2, year=2026)
        assert [r.id for r in all_late] == [bob_late.id, late.id]
        assert all_late[1].days_late == 2

        assert [r.id for r in selector.late_logs(resource_email="Alice@example.com")] == [late.id]
        assert selector.late_logs(month=1, year=2026) == []

    def test_pending_delete_queue(self, create_entry, lifecycle_service, resource_actor,
                                  admin_actor, selector):
        mro = create_entry()
        datavant = create_entry("datavant", request_type="New Request")
        create_entry()
        lifecycle_service.request_delete(mro.id, resource_actor, reason="dup")
        lifecycle_service.request_delete(datavant.id, resource_actor, reason="dup")

        assert {r.id for r in selector.pending_delete_requests()} == {mro.id, datavant.id}
        assert [r.id for r in selector.pending_delete_requests("Datavant")] == [datavant.id]

        lifecycle_service.review_delete(mro.id, admin_actor, DeleteDecision.REJECT)
        assert [r.id for r in selector.pending_delete_requests()] == [datavant.id]

    def test_edit_history(self, create_entry, lifecycle_service, resource_actor, selector):
        record = create_entry()
        lifecycle_service.edit(record.id, {"remark": "a"}, resource_actor, reason="r1")
        lifecycle_service.edit(record.id, {"remark": "b"}, resource_actor, reason="r2")

        history = selector.edit_history(record.id)
        assert [e.change_reason for e in history] == ["r1", "r2"]


class TestSummaries:
    def test_billing_summary(self, create_entry, lifecycle_service, admin_actor, selector,
                             other_actor, january_entries):
        create_entry(requestor_type="Processed")
        create_entry(actor=other_actor, requestor_type="Manual")
        create_entry("datavant", request_type="New Request", count=3)
        removed = create_entry("datavant", request_type="Follow up", count=2)
        lifecycle_service.admin_direct_delete(removed.id, admin_actor, reason="r")

        rows = selector.billing_summary(2, 2026)

        assert [r.subproject_key for r in rows] == [
            "datavant|datavant records|texas",
            "mro|mro processing|baptist health",
        ]
        datavant, mro = rows
        assert (datavant.entry_count, datavant.total_units) == (1, 3)
        assert datavant.total_amount == Decimal("1.50")
        assert (mro.entry_count, mro.total_units) == (2, 2)
        assert mro.total_amount == Decimal("6.50")
        assert mro.client_name == "MRO"
        assert mro.location_name == "Baptist Health"

        only_mro = selector.billing_summary(2, 2026, client_name="MRO")
        assert [r.subproject_key for r in only_mro] == ["mro|mro processing|baptist health"]

        january = selector.billing_summary(1, 2026)
        assert sum(r.entry_count for r in january) == 2

    def test_empty_period(self, selector):
        assert selector.billing_summary(6, 2026) == []

    def test_monthly_summary(self, create_entry, selector, other_actor):
        create_entry(request_type="Batch")
        create_entry(request_type="Batch")
        create_entry(request_type="DDS")
        create_entry(actor=other_actor, request_type="Batch")

        rows = selector.monthly_summary("alice@example.com", 2, 2026)

        assert [(r.request_type, r.entry_count) for r in rows] == [("Batch", 2), ("DDS", 1)]
        assert rows[0].total_amount == Decimal("6.00")
        assert rows[0].location_name == "Baptist Health"

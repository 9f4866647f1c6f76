"""
ORM immutability listeners for allocation records and their audit rows.

Write-once columns and append-only audit rows are protected at flush time,
independently of the lifecycle service.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from allocation_kernel.domain.allocation import DeleteDecision, DeleteRequestStatus
from allocation_kernel.exceptions import ImmutabilityViolationError
from allocation_kernel.models.allocation import (
    AllocationRecord,
    DeleteRequestModel,
    EditHistoryEntryModel,
)


class TestWriteOnceColumns:
    @pytest.mark.parametrize(
        "field_name, value",
        [
            ("sr_no", 9),
            ("resource_email", "bob@example.com"),
            ("allocation_date", date(2026, 2, 4)),
            ("system_captured_date", datetime(2026, 2, 6, 15, 0, tzinfo=timezone.utc)),
            ("location_id", uuid4()),
            ("subproject_key", "mro|elsewhere|nowhere"),
            ("billing_rate_at_logging", Decimal("99.00")),
        ],
    )
    def test_write_once_field_blocked(self, create_entry, session, field_name, value):
        record = session.get(AllocationRecord, create_entry().id)
        setattr(record, field_name, value)

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert field_name in exc_info.value.reason

    def test_mutable_fields_allowed(self, create_entry, session):
        record = session.get(AllocationRecord, create_entry().id)
        record.remark = "direct"
        record.billing_rate = Decimal("1.00")
        session.flush()
        assert record.version == 2


class TestEditHistoryAppendOnly:
    @pytest.fixture
    def history_row(self, create_entry, lifecycle_service, resource_actor, session):
        record = create_entry()
        lifecycle_service.edit(record.id, {"remark": "x"}, resource_actor, reason="r")
        return session.get(AllocationRecord, record.id).edit_history[0]

    def test_update_blocked(self, history_row, session):
        history_row.change_reason = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_standalone_delete_blocked(self, history_row, session):
        session.delete(history_row)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_removed_with_hard_deleted_record(self, history_row, session):
        record = history_row.allocation
        session.delete(record)
        session.flush()
        assert session.get(EditHistoryEntryModel, history_row.id) is None


class TestDeleteRequestFreeze:
    def test_terminal_request_frozen(self, create_entry, lifecycle_service, resource_actor,
                                     admin_actor, session):
        record = create_entry()
        lifecycle_service.request_delete(record.id, resource_actor, reason="dup")
        lifecycle_service.review_delete(record.id, admin_actor, DeleteDecision.REJECT)

        request = session.get(AllocationRecord, record.id).delete_requests[0]
        assert request.status == DeleteRequestStatus.REJECTED.value
        request.status = DeleteRequestStatus.APPROVED.value

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_pending_request_may_be_decided(self, create_entry, lifecycle_service,
                                            resource_actor, session):
        record = create_entry()
        lifecycle_service.request_delete(record.id, resource_actor, reason="dup")

        request = session.get(AllocationRecord, record.id).delete_requests[0]
        request.status = DeleteRequestStatus.REJECTED.value
        session.flush()

        assert session.get(DeleteRequestModel, request.id).status == "rejected"

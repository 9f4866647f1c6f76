"""
Allocation domain types (``allocation_kernel.domain.allocation``).

Responsibility
--------------
Pure value objects for the entry lifecycle: actor identity, create input,
the explicit set of editable fields, edit-history entries, the delete
sub-record state machine, and the frozen record DTO returned to callers.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.  No imports from ``db/``,
``models/``, ``services/`` or ``selectors/``.

Invariants enforced
-------------------
* Delete lifecycle -- ``DELETE_REQUEST_TRANSITIONS`` defines the only
  valid status edges; approved and rejected are terminal.
* Edits are described by ``EditableField`` members, never by arbitrary
  attribute names.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from allocation_kernel.exceptions import (
    InvalidDeleteTransitionError,
    ValidationFailedError,
)


class ActorRole(str, Enum):
    RESOURCE = "resource"
    ADMIN = "admin"


class EntrySource(str, Enum):
    ASSIGNMENT = "assignment"
    DIRECT_ENTRY = "direct_entry"


class ActivityType(str, Enum):
    """Event types sent to the activity sink."""

    CASE_LOGGED = "CASE_LOGGED"
    CASE_UPDATED = "CASE_UPDATED"
    CASE_DELETE_REQUESTED = "CASE_DELETE_REQUESTED"
    CASE_DELETED = "CASE_DELETED"
    CASE_DELETE_REJECTED = "CASE_DELETE_REJECTED"
    CASE_LOCK_CHANGED = "CASE_LOCK_CHANGED"


# =========================================================================
# Delete sub-record lifecycle
# =========================================================================


class DeleteRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DeleteType(str, Enum):
    SOFT = "soft"
    HARD = "hard"


class DeleteDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


DELETE_REQUEST_TRANSITIONS: dict[DeleteRequestStatus, frozenset[DeleteRequestStatus]] = {
    DeleteRequestStatus.PENDING: frozenset({
        DeleteRequestStatus.APPROVED,
        DeleteRequestStatus.REJECTED,
    }),
    DeleteRequestStatus.APPROVED: frozenset(),
    DeleteRequestStatus.REJECTED: frozenset(),
}

TERMINAL_DELETE_STATUSES: frozenset[DeleteRequestStatus] = frozenset({
    DeleteRequestStatus.APPROVED,
    DeleteRequestStatus.REJECTED,
})


def validate_delete_transition(
    current: DeleteRequestStatus,
    target: DeleteRequestStatus,
) -> None:
    if target not in DELETE_REQUEST_TRANSITIONS[current]:
        raise InvalidDeleteTransitionError(current.value, target.value)


# =========================================================================
# Editable fields
# =========================================================================


class EditableField(str, Enum):
    """Business fields an edit may change.  Everything else is derived."""

    REQUEST_ID = "request_id"
    REQUEST_TYPE = "request_type"
    REQUESTOR_TYPE = "requestor_type"
    TASK_TYPE = "task_type"
    FACILITY_NAME = "facility_name"
    PROCESSING_TIME = "processing_time"
    REMARK = "remark"
    GEOGRAPHY_NAME = "geography_name"
    COUNT = "count"

    @classmethod
    def parse(cls, name: EditableField | str) -> EditableField:
        if isinstance(name, cls):
            return name
        try:
            return cls(name)
        except ValueError:
            raise ValidationFailedError(str(name), "field is not editable") from None

    def coerce(self, value: Any) -> Any:
        """Normalize a submitted value to the column's representation."""
        if self is EditableField.COUNT:
            return normalize_count(value)
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValidationFailedError(self.value, "must be a string")
        return value.strip()


def normalize_count(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationFailedError("count", "must be an integer")
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ValidationFailedError("count", f"not an integer: {value!r}") from None
    if count < 1:
        raise ValidationFailedError("count", "must be at least 1")
    return count


# =========================================================================
# Inputs
# =========================================================================


@dataclass(frozen=True)
class ActorInfo:
    """Who is calling.  ``email`` is compared case-insensitively."""

    actor_id: str
    email: str
    name: str
    role: ActorRole = ActorRole.RESOURCE

    @property
    def normalized_email(self) -> str:
        return normalize_email(self.email)

    @property
    def is_admin(self) -> bool:
        return self.role is ActorRole.ADMIN


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


@dataclass(frozen=True)
class CreateAllocationInput:
    location_id: UUID | None
    allocation_date: date | None
    request_type: str
    request_id: str = ""
    requestor_type: str = ""
    task_type: str = ""
    facility_name: str = ""
    processing_time: str = ""
    remark: str = ""
    geography_name: str = ""
    count: int = 1
    logged_date: date | None = None
    source: EntrySource = EntrySource.DIRECT_ENTRY
    assignment_ref: str | None = None


# =========================================================================
# Outputs
# =========================================================================


@dataclass(frozen=True)
class FieldChange:
    field: str
    old_value: Any
    new_value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "old_value": self.old_value, "new_value": self.new_value}


@dataclass(frozen=True)
class EditHistoryEntry:
    sequence: int
    edited_at: datetime
    edited_by_id: str
    edited_by_email: str
    edited_by_name: str
    editor_role: ActorRole
    change_reason: str
    change_notes: str | None
    fields_changed: tuple[FieldChange, ...]


@dataclass(frozen=True)
class DeleteRequestRecord:
    request_id: UUID
    status: DeleteRequestStatus
    requested_at: datetime
    requested_by_id: str
    requested_by_email: str
    requested_by_name: str
    delete_reason: str
    reviewed_at: datetime | None = None
    reviewed_by_id: str | None = None
    reviewed_by_email: str | None = None
    review_comment: str | None = None
    delete_type: DeleteType | None = None


@dataclass(frozen=True)
class AllocationRecordDTO:
    id: UUID
    sr_no: int
    resource_id: str
    resource_email: str
    resource_name: str
    allocation_date: date
    logged_date: date
    system_captured_date: datetime
    day: int
    month: int
    year: int
    client_name: str
    project_name: str
    location_id: UUID
    location_name: str
    subproject_key: str
    process_type: str
    request_id: str
    request_type: str
    requestor_type: str
    task_type: str
    facility_name: str
    processing_time: str
    remark: str
    geography_name: str
    count: int
    billing_rate: Decimal
    billing_amount: Decimal
    billing_rate_at_logging: Decimal
    is_late_log: bool
    days_late: int
    source: EntrySource
    assignment_ref: str | None
    is_locked: bool
    locked_at: datetime | None
    locked_by: str | None
    is_deleted: bool
    deleted_at: datetime | None
    deleted_by: str | None
    has_pending_delete_request: bool
    edit_count: int
    last_edited_at: datetime | None
    version: int
    edit_history: tuple[EditHistoryEntry, ...] = ()
    delete_requests: tuple[DeleteRequestRecord, ...] = ()

    @property
    def delete_request(self) -> DeleteRequestRecord | None:
        """The most recent delete sub-record, if any."""
        return self.delete_requests[-1] if self.delete_requests else None


@dataclass(frozen=True)
class HardDeleteConfirmation:
    """Terminal result of an approved hard delete; the id no longer resolves."""

    allocation_id: UUID
    deleted_at: datetime
    deleted_by: str
    delete_type: DeleteType = DeleteType.HARD


@dataclass(frozen=True)
class DuplicateCheckResult:
    exists: bool
    suggested_category: str
    conflicting_entry: AllocationRecordDTO | None = None


@dataclass(frozen=True)
class Page:
    items: tuple[AllocationRecordDTO, ...]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


@dataclass(frozen=True)
class BillingSummaryRow:
    subproject_key: str
    client_name: str
    project_name: str
    location_name: str
    entry_count: int
    total_units: int
    total_amount: Decimal


@dataclass(frozen=True)
class MonthlySummaryRow:
    subproject_key: str
    location_name: str
    request_type: str
    entry_count: int
    total_units: int
    total_amount: Decimal


@dataclass(frozen=True)
class CaseFilters:
    month: int | None = None
    year: int | None = None
    subproject_key: str | None = None
    request_type: str | None = None
    request_id: str | None = None
    include_deleted: bool = False
    page: int = 1
    limit: int = 50

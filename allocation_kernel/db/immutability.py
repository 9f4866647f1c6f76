"""
ORM-level write-once and append-only enforcement.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                 | Rule                                  | Why
-----------------------|---------------------------------------|--------------------------------
AllocationRecord       | serial, resource, dates, location and | Serials and billing must stay
                       | the frozen rate are write-once        | reproducible after master data
                       |                                       | or edits change
EditHistoryEntryModel  | Never updated; deleted only together  | The edit trail is the audit
                       | with its parent record (hard delete)  | record of every correction
DeleteRequestModel     | Frozen once approved or rejected      | Reviewer decision is history

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_update] --> _check_*() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_*_delete()
         |
         v
    SQL sent to database (only if checks pass)

Usage:

    from allocation_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup; idempotent
"""

from sqlalchemy import event
from sqlalchemy.orm import object_session
from sqlalchemy.orm.attributes import get_history

from allocation_kernel.exceptions import ImmutabilityViolationError
from allocation_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

WRITE_ONCE_ALLOCATION_FIELDS = (
    "sr_no",
    "resource_email",
    "allocation_date",
    "system_captured_date",
    "location_id",
    "subproject_key",
    "billing_rate_at_logging",
)


def _blocked(entity_type: str, entity_id, operation: str, reason: str, **extra):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            **extra,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_allocation_write_once(mapper, connection, target):
    changed = []
    for field in WRITE_ONCE_ALLOCATION_FIELDS:
        history = get_history(target, field)
        if not history.has_changes():
            continue
        previous = [v for v in history.deleted if v is not None]
        if previous:
            changed.append(field)
    if changed:
        _blocked(
            "AllocationRecord",
            target.id,
            "UPDATE",
            f"write-once field(s) {changed} cannot change after creation",
            fields=changed,
        )


def _check_edit_history_update(mapper, connection, target):
    _blocked(
        "EditHistoryEntry",
        target.id,
        "UPDATE",
        "edit history entries are append-only",
    )


def _check_edit_history_delete(mapper, connection, target):
    session = object_session(target)
    parent = target.allocation
    if session is not None and parent is not None and parent in session.deleted:
        return
    _blocked(
        "EditHistoryEntry",
        target.id,
        "DELETE",
        "edit history is removed only with its record on hard delete",
    )


def _check_delete_request_update(mapper, connection, target):
    from allocation_kernel.domain.allocation import (
        DeleteRequestStatus,
        TERMINAL_DELETE_STATUSES,
    )

    status_history = get_history(target, "status")
    if status_history.deleted:
        original = status_history.deleted[0]
    else:
        original = target.status
    if original is None:
        return
    if DeleteRequestStatus(original) in TERMINAL_DELETE_STATUSES:
        _blocked(
            "DeleteRequest",
            target.id,
            "UPDATE",
            f"delete request already {original}",
        )


def _listener_table():
    from allocation_kernel.models.allocation import (
        AllocationRecord,
        DeleteRequestModel,
        EditHistoryEntryModel,
    )

    return [
        (AllocationRecord, "before_update", _check_allocation_write_once),
        (EditHistoryEntryModel, "before_update", _check_edit_history_update),
        (EditHistoryEntryModel, "before_delete", _check_edit_history_delete),
        (DeleteRequestModel, "before_update", _check_delete_request_update),
    ]


def register_immutability_listeners() -> None:
    for target, name, fn in _listener_table():
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)


def unregister_immutability_listeners() -> None:
    """Remove the listeners. TESTS ONLY."""
    for target, name, fn in _listener_table():
        if event.contains(target, name, fn):
            event.remove(target, name, fn)

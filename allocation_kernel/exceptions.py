"""
Typed exception hierarchy for the allocation kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (HTTP handlers, CLI tools, import jobs) must be able to explain a
rejection without parsing message strings.  Every error here therefore:

  1. Has its own class (catch by type, not by message)
  2. Carries a CODE attribute (machine-readable, API-safe)
  3. Carries structured DATA (which field, which date, which lock boundary)

Example:
    try:
        service.request_delete(allocation_id, requester, reason="typo")
    except PeriodLockedError as e:
        api_response(
            code=e.code,
            allocation_date=e.allocation_date,
            locked_since=e.lock_boundary,
        )

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    AllocationEngineError (base)
    |
    +-- ValidationFailedError
    |   +-- FutureAllocationDateError
    |   +-- UnknownClientPolicyError
    |   +-- EntryDeletedError
    |
    +-- NotFoundError
    |   +-- AllocationNotFoundError
    |   +-- LocationNotFoundError
    |
    +-- PeriodLockedError
    +-- ForbiddenError
    +-- DuplicatePrimaryRequestError
    |
    +-- DeleteRequestError
    |   +-- DeleteAlreadyPendingError
    |   +-- NoPendingDeleteRequestError
    |   +-- InvalidDeleteTransitionError
    |
    +-- ConcurrencyConflictError
    |   +-- SerialAllocationConflictError
    |   +-- OptimisticLockError
    |
    +-- CollaboratorUnavailableError
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                         | When Raised
-----------------------------|------------------------------------------------
VALIDATION_FAILED            | Missing/invalid field, blank change reason
FUTURE_ALLOCATION_DATE       | Allocation date after today (business zone)
UNKNOWN_CLIENT_POLICY        | No policy row configured for the client
ENTRY_DELETED                | Operation on a soft-deleted entry
NOT_FOUND                    | Entity id does not exist
PERIOD_LOCKED                | Month closed or explicit lock set
FORBIDDEN                    | Ownership / role / assignment violation
DUPLICATE_PRIMARY_REQUEST    | Primary entry already exists for request id
DELETE_ALREADY_PENDING       | Second delete request while one is pending
NO_PENDING_DELETE_REQUEST    | Review without a pending request
INVALID_DELETE_TRANSITION    | Delete state machine edge not allowed
SERIAL_ALLOCATION_CONFLICT   | Serial race lost on every retry (transient)
OPTIMISTIC_LOCK_CONFLICT     | Stale version on UPDATE/DELETE (transient)
COLLABORATOR_UNAVAILABLE     | Directory/catalog lookup failed
IMMUTABILITY_VIOLATION       | Write to a write-once column or history row
"""

from datetime import date, datetime


class AllocationEngineError(Exception):
    """Base exception for all allocation kernel errors."""

    code: str = "ALLOCATION_ENGINE_ERROR"


# Validation


class ValidationFailedError(AllocationEngineError):
    """A required field is missing or a supplied value is invalid."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class FutureAllocationDateError(ValidationFailedError):
    """Work cannot be logged for a date that has not happened yet."""

    code: str = "FUTURE_ALLOCATION_DATE"

    def __init__(self, allocation_date: date, business_today: date):
        self.allocation_date = allocation_date
        self.business_today = business_today
        super().__init__(
            "allocation_date",
            f"{allocation_date.isoformat()} is after today "
            f"({business_today.isoformat()})",
        )


class UnknownClientPolicyError(ValidationFailedError):
    """No client policy is configured for the location's client."""

    code: str = "UNKNOWN_CLIENT_POLICY"

    def __init__(self, client_name: str):
        self.client_name = client_name
        super().__init__("client_name", f"no policy configured for {client_name!r}")


class EntryDeletedError(ValidationFailedError):
    """The entry has already been soft-deleted."""

    code: str = "ENTRY_DELETED"

    def __init__(self, allocation_id: str):
        self.allocation_id = allocation_id
        super().__init__("allocation_id", f"entry {allocation_id} is deleted")


# Lookup


class NotFoundError(AllocationEngineError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class AllocationNotFoundError(NotFoundError):
    def __init__(self, allocation_id: str):
        super().__init__("AllocationRecord", allocation_id)


class LocationNotFoundError(NotFoundError):
    def __init__(self, location_id: str):
        super().__init__("Location", location_id)


# Locking / access


class PeriodLockedError(AllocationEngineError):
    """
    Entry belongs to a closed month or carries an explicit lock.

    ``lock_boundary`` is the instant (business zone) after which the
    month became locked, so a UI can say "locked since ..." directly.
    """

    code: str = "PERIOD_LOCKED"

    def __init__(
        self,
        allocation_date: date,
        lock_boundary: datetime,
        explicit_lock: bool = False,
    ):
        self.allocation_date = allocation_date
        self.lock_boundary = lock_boundary
        self.explicit_lock = explicit_lock
        if explicit_lock:
            detail = "entry is explicitly locked"
        else:
            detail = f"period closed after {lock_boundary.isoformat()}"
        super().__init__(
            f"Allocation date {allocation_date.isoformat()} is locked: {detail}"
        )


class ForbiddenError(AllocationEngineError):
    """Actor is not allowed to perform the operation."""

    code: str = "FORBIDDEN"

    def __init__(self, actor_email: str, reason: str):
        self.actor_email = actor_email
        self.reason = reason
        super().__init__(f"Forbidden for {actor_email}: {reason}")


class DuplicatePrimaryRequestError(AllocationEngineError):
    """A primary entry already exists for this external request id."""

    code: str = "DUPLICATE_PRIMARY_REQUEST"

    def __init__(
        self,
        request_id: str,
        suggested_category: str,
        conflicting_entry_id: str | None,
    ):
        self.request_id = request_id
        self.suggested_category = suggested_category
        self.conflicting_entry_id = conflicting_entry_id
        super().__init__(
            f"Request ID {request_id!r} already has a primary entry; "
            f"use {suggested_category!r} instead"
        )


# Delete workflow


class DeleteRequestError(AllocationEngineError):
    """Base exception for delete-request workflow errors."""

    code: str = "DELETE_REQUEST_ERROR"


class DeleteAlreadyPendingError(DeleteRequestError):
    code: str = "DELETE_ALREADY_PENDING"

    def __init__(self, allocation_id: str):
        self.allocation_id = allocation_id
        super().__init__(f"Delete request already pending for {allocation_id}")


class NoPendingDeleteRequestError(DeleteRequestError):
    code: str = "NO_PENDING_DELETE_REQUEST"

    def __init__(self, allocation_id: str):
        self.allocation_id = allocation_id
        super().__init__(f"No pending delete request for {allocation_id}")


class InvalidDeleteTransitionError(DeleteRequestError):
    code: str = "INVALID_DELETE_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid delete request transition: {from_status} -> {to_status}"
        )


# Concurrency


class ConcurrencyConflictError(AllocationEngineError):
    """Base for transient conflicts; the caller may retry the operation."""

    code: str = "CONCURRENCY_CONFLICT"


class SerialAllocationConflictError(ConcurrencyConflictError):
    code: str = "SERIAL_ALLOCATION_CONFLICT"

    def __init__(self, resource_email: str, allocation_date: date, attempts: int):
        self.resource_email = resource_email
        self.allocation_date = allocation_date
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a serial for {resource_email} on "
            f"{allocation_date.isoformat()} after {attempts} attempts"
        )


class OptimisticLockError(ConcurrencyConflictError):
    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Collaborators


class CollaboratorUnavailableError(AllocationEngineError):
    """An upstream directory or catalog lookup failed."""

    code: str = "COLLABORATOR_UNAVAILABLE"

    def __init__(self, collaborator: str, operation: str, detail: str = ""):
        self.collaborator = collaborator
        self.operation = operation
        self.detail = detail
        message = f"{collaborator}.{operation} unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# Immutability


class ImmutabilityViolationError(AllocationEngineError):
    """Attempted to modify a write-once column or an append-only row."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )

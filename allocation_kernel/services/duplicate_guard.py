"""
DuplicateGuard -- at most one primary entry per external request id.

Responsibility:
    Answer "does a non-deleted primary entry already exist for this request
    id within this scope?" and, if so, which non-primary category the caller
    should use instead.  The guard reports; it never raises.  The lifecycle
    service decides to block (create / edit into a primary category) and
    a UI may merely warn.

Architecture position:
    Kernel > Services (read-only query used by the write path).

Invariants enforced:
    - The search never leaves the scope's client names: a client sees its
      own entries, plus those of clients sharing its duplicate group when
      its policy does not narrow by client name.  Names compare
      case-insensitively.
    - Soft-deleted entries never conflict.
    - On edit, the record being edited is excluded from the search.
    - A blank request id never conflicts.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from allocation_kernel.domain.allocation import DuplicateCheckResult
from allocation_kernel.domain.client_policy import RequestScope
from allocation_kernel.logging_config import get_logger
from allocation_kernel.models.allocation import AllocationRecord

logger = get_logger("services.duplicate_guard")


class DuplicateGuard:
    def __init__(self, session: Session):
        self._session = session

    def check_primary_request(
        self,
        request_id: str | None,
        scope: RequestScope,
        exclude_id: UUID | None = None,
    ) -> DuplicateCheckResult:
        """
        Look for an existing primary entry.

        Returns:
            ``exists=False`` with a primary category as the suggestion when
            the id is free; otherwise ``exists=True``, the client's
            non-primary suggestion, and the conflicting entry.
        """
        normalized = (request_id or "").strip()
        default_primary = min(scope.primary_categories) if scope.primary_categories else ""
        if not normalized or not scope.primary_categories:
            return DuplicateCheckResult(exists=False, suggested_category=default_primary)

        stmt = (
            select(AllocationRecord)
            .where(
                AllocationRecord.request_id == normalized,
                AllocationRecord.request_type.in_(sorted(scope.primary_categories)),
                AllocationRecord.is_deleted.is_(False),
                func.lower(AllocationRecord.client_name).in_(sorted(scope.client_names)),
            )
            .order_by(AllocationRecord.system_captured_date, AllocationRecord.sr_no)
            .limit(1)
        )
        if exclude_id is not None:
            stmt = stmt.where(AllocationRecord.id != exclude_id)

        existing = self._session.execute(stmt).scalar_one_or_none()
        if existing is None:
            return DuplicateCheckResult(exists=False, suggested_category=default_primary)

        logger.info(
            "duplicate_primary_detected",
            extra={
                "request_id": normalized,
                "scope_clients": sorted(scope.client_names),
                "conflicting_entry_id": str(existing.id),
                "suggested_category": scope.suggested_category,
            },
        )
        return DuplicateCheckResult(
            exists=True,
            suggested_category=scope.suggested_category,
            conflicting_entry=existing.to_dto(),
        )

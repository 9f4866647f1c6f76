"""
Module: allocation_kernel.selectors.allocation_selector
Responsibility: Read-only queries over allocation records: single lookups,
    a resource's cases for today and earlier, late logs, the admin delete
    queue, edit history, and billing / monthly summaries.
Architecture position: Kernel > Selectors.  Uses the TemporalPolicy only to
    resolve "today" in the business zone.

Invariants enforced:
    - Read-only: no mutations.
    - Soft-deleted records are excluded from lists and summaries unless the
      caller asks for them; ``get`` always returns them.
    - Summary amounts are summed in SQL over the stored ``billing_amount``;
      nothing is recomputed from current rates.

Failure modes:
    - AllocationNotFoundError from ``get`` / ``edit_history`` for an unknown id.
    - ValidationFailedError for a page or limit below 1.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from allocation_kernel.domain.allocation import (
    AllocationRecordDTO,
    BillingSummaryRow,
    CaseFilters,
    EditHistoryEntry,
    MonthlySummaryRow,
    Page,
    normalize_email,
)
from allocation_kernel.domain.rates import ZERO
from allocation_kernel.domain.temporal import TemporalPolicy
from allocation_kernel.exceptions import AllocationNotFoundError, ValidationFailedError
from allocation_kernel.models.allocation import AllocationRecord
from allocation_kernel.selectors.base import BaseSelector


def _decimal(value) -> Decimal:
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


class AllocationSelector(BaseSelector[AllocationRecord]):
    """
    Selector for allocation queries.

    Guarantees:
        - Lists are ordered deterministically (date, then serial).
        - Summary rows are ordered by ``subproject_key``.
    """

    def __init__(self, session: Session, temporal: TemporalPolicy):
        super().__init__(session)
        self._temporal = temporal

    def get(self, allocation_id: UUID) -> AllocationRecordDTO:
        record = self.session.get(AllocationRecord, allocation_id)
        if record is None:
            raise AllocationNotFoundError(str(allocation_id))
        return record.to_dto()

    def todays_allocations(self, resource_email: str) -> list[AllocationRecordDTO]:
        """Entries the resource submitted during the current business day."""
        window = self._temporal.get_serial_window(self._temporal.today())
        rows = self.session.execute(
            select(AllocationRecord)
            .where(
                AllocationRecord.resource_email == normalize_email(resource_email),
                AllocationRecord.is_deleted.is_(False),
                AllocationRecord.system_captured_date >= window.start,
                AllocationRecord.system_captured_date <= window.end,
            )
            .order_by(AllocationRecord.system_captured_date, AllocationRecord.sr_no)
        ).scalars()
        return [r.to_dto() for r in rows]

    def previous_logged_cases(
        self,
        resource_email: str,
        filters: CaseFilters | None = None,
    ) -> Page:
        filters = filters or CaseFilters()
        if filters.page < 1:
            raise ValidationFailedError("page", "must be at least 1")
        if filters.limit < 1:
            raise ValidationFailedError("limit", "must be at least 1")

        stmt = select(AllocationRecord).where(
            AllocationRecord.resource_email == normalize_email(resource_email)
        )
        if not filters.include_deleted:
            stmt = stmt.where(AllocationRecord.is_deleted.is_(False))
        if filters.month is not None:
            stmt = stmt.where(AllocationRecord.month == filters.month)
        if filters.year is not None:
            stmt = stmt.where(AllocationRecord.year == filters.year)
        if filters.subproject_key:
            stmt = stmt.where(AllocationRecord.subproject_key == filters.subproject_key)
        if filters.request_type:
            stmt = stmt.where(AllocationRecord.request_type == filters.request_type)
        if filters.request_id:
            stmt = stmt.where(AllocationRecord.request_id == filters.request_id.strip())

        total = self.session.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()
        rows = self.session.execute(
            stmt.order_by(
                AllocationRecord.allocation_date.desc(),
                AllocationRecord.sr_no.desc(),
            )
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        ).scalars()
        return Page(
            items=tuple(r.to_dto() for r in rows),
            total=total,
            page=filters.page,
            limit=filters.limit,
        )

    def late_logs(
        self,
        month: int | None = None,
        year: int | None = None,
        resource_email: str | None = None,
    ) -> list[AllocationRecordDTO]:
        stmt = select(AllocationRecord).where(
            AllocationRecord.is_late_log.is_(True),
            AllocationRecord.is_deleted.is_(False),
        )
        if month is not None:
            stmt = stmt.where(AllocationRecord.month == month)
        if year is not None:
            stmt = stmt.where(AllocationRecord.year == year)
        if resource_email:
            stmt = stmt.where(AllocationRecord.resource_email == normalize_email(resource_email))
        rows = self.session.execute(
            stmt.order_by(
                AllocationRecord.allocation_date,
                AllocationRecord.resource_email,
                AllocationRecord.sr_no,
            )
        ).scalars()
        return [r.to_dto() for r in rows]

    def pending_delete_requests(self, client_name: str | None = None) -> list[AllocationRecordDTO]:
        """The admin review queue."""
        stmt = select(AllocationRecord).where(
            AllocationRecord.has_pending_delete_request.is_(True),
            AllocationRecord.is_deleted.is_(False),
        )
        if client_name:
            stmt = stmt.where(AllocationRecord.client_name == client_name)
        rows = self.session.execute(
            stmt.order_by(AllocationRecord.allocation_date, AllocationRecord.sr_no)
        ).scalars()
        return [r.to_dto() for r in rows]

    def edit_history(self, allocation_id: UUID) -> tuple[EditHistoryEntry, ...]:
        return self.get(allocation_id).edit_history

    def billing_summary(
        self,
        month: int,
        year: int,
        client_name: str | None = None,
    ) -> list[BillingSummaryRow]:
        stmt = (
            select(
                AllocationRecord.subproject_key,
                AllocationRecord.client_name,
                AllocationRecord.project_name,
                AllocationRecord.location_name,
                func.count(AllocationRecord.id),
                func.sum(AllocationRecord.count),
                func.sum(AllocationRecord.billing_amount),
            )
            .where(
                AllocationRecord.month == month,
                AllocationRecord.year == year,
                AllocationRecord.is_deleted.is_(False),
            )
            .group_by(
                AllocationRecord.subproject_key,
                AllocationRecord.client_name,
                AllocationRecord.project_name,
                AllocationRecord.location_name,
            )
            .order_by(AllocationRecord.subproject_key)
        )
        if client_name:
            stmt = stmt.where(AllocationRecord.client_name == client_name)
        return [
            BillingSummaryRow(
                subproject_key=key,
                client_name=client,
                project_name=project,
                location_name=location,
                entry_count=entries,
                total_units=int(units or 0),
                total_amount=_decimal(amount),
            )
            for key, client, project, location, entries, units, amount in self.session.execute(stmt)
        ]

    def monthly_summary(
        self,
        resource_email: str,
        month: int,
        year: int,
    ) -> list[MonthlySummaryRow]:
        stmt = (
            select(
                AllocationRecord.subproject_key,
                AllocationRecord.location_name,
                AllocationRecord.request_type,
                func.count(AllocationRecord.id),
                func.sum(AllocationRecord.count),
                func.sum(AllocationRecord.billing_amount),
            )
            .where(
                AllocationRecord.resource_email == normalize_email(resource_email),
                AllocationRecord.month == month,
                AllocationRecord.year == year,
                AllocationRecord.is_deleted.is_(False),
            )
            .group_by(
                AllocationRecord.subproject_key,
                AllocationRecord.location_name,
                AllocationRecord.request_type,
            )
            .order_by(AllocationRecord.subproject_key, AllocationRecord.request_type)
        )
        return [
            MonthlySummaryRow(
                subproject_key=key,
                location_name=location,
                request_type=request_type,
                entry_count=entries,
                total_units=int(units or 0),
                total_amount=_decimal(amount),
            )
            for key, location, request_type, entries, units, amount in self.session.execute(stmt)
        ]

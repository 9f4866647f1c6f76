"""
Module: allocation_kernel.models.allocation
Responsibility: ORM persistence for allocation records, their edit-history
    entries, and their delete sub-records.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - Serial uniqueness: partial UNIQUE(resource_email, allocation_date, sr_no)
      over non-deleted rows.  The "read max + 1" value is only a hint; this
      index is the source of truth under concurrent creation.
    - One active delete request: partial UNIQUE(allocation_id) over rows in
      status 'pending'.
    - Optimistic concurrency: ``version`` is the mapper's version_id_col;
      a stale UPDATE/DELETE raises StaleDataError.
    - Write-once / append-only columns are guarded in db/immutability.py.

Failure modes:
    - IntegrityError on serial collision (retried by the lifecycle service).
    - IntegrityError on a second pending delete request.
    - StaleDataError on concurrent modification of the same record.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from allocation_kernel.db.base import Base, UUIDString
from allocation_kernel.domain.allocation import (
    ActorRole,
    AllocationRecordDTO,
    DeleteRequestRecord,
    DeleteRequestStatus,
    DeleteType,
    EditHistoryEntry,
    EntrySource,
    FieldChange,
)


class AllocationRecord(Base):
    """
    One logged unit of work.

    Contract:
        Created only by EntryLifecycleService.create(); mutated only through
        its edit / delete-review operations.

    Guarantees:
        - ``billing_rate_at_logging`` and ``subproject_key`` never change
          after INSERT.
        - ``has_pending_delete_request`` mirrors the presence of a pending
          row in ``delete_requests``.
    """

    __tablename__ = "allocation_records"

    __table_args__ = (
        CheckConstraint("sr_no >= 1", name="ck_allocation_records_sr_no"),
        CheckConstraint("count >= 1", name="ck_allocation_records_count"),
        CheckConstraint("days_late >= 0", name="ck_allocation_records_days_late"),
        CheckConstraint(
            "source IN ('assignment', 'direct_entry')",
            name="ck_allocation_records_source",
        ),
        Index("ix_allocation_records_key_period", "subproject_key", "month", "year"),
        Index("ix_allocation_records_request", "request_id", "client_name"),
        Index("ix_allocation_records_pending_delete", "has_pending_delete_request"),
        Index("ix_allocation_records_resource_period", "resource_email", "year", "month"),
    )

    sr_no: Mapped[int] = mapped_column(Integer, nullable=False)

    resource_id: Mapped[str] = mapped_column(String(64), nullable=False)
    resource_email: Mapped[str] = mapped_column(String(255), nullable=False)
    resource_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    allocation_date: Mapped[date] = mapped_column(Date, nullable=False)
    logged_date: Mapped[date] = mapped_column(Date, nullable=False)
    system_captured_date: Mapped[datetime] = mapped_column(nullable=False)
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    client_name: Mapped[str] = mapped_column(String(100), nullable=False)
    project_name: Mapped[str] = mapped_column(String(255), nullable=False)
    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    location_name: Mapped[str] = mapped_column(String(255), nullable=False)
    subproject_key: Mapped[str] = mapped_column(String(800), nullable=False)
    process_type: Mapped[str] = mapped_column(String(100), nullable=False)

    request_id: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    request_type: Mapped[str] = mapped_column(String(100), nullable=False)
    requestor_type: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    task_type: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    facility_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    processing_time: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    remark: Mapped[str] = mapped_column(Text, nullable=False, default="")
    geography_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    billing_rate: Mapped[Decimal] = mapped_column(nullable=False)
    billing_amount: Mapped[Decimal] = mapped_column(nullable=False)
    billing_rate_at_logging: Mapped[Decimal] = mapped_column(nullable=False)

    is_late_log: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    days_late: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    source: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EntrySource.DIRECT_ENTRY.value,
    )
    assignment_ref: Mapped[str | None] = mapped_column(String(64), nullable=True)

    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    locked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    locked_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    deleted_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    has_pending_delete_request: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    edit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_edited_at: Mapped[datetime | None] = mapped_column(nullable=True)

    version: Mapped[int] = mapped_column(BigInteger, nullable=False)

    edit_history: Mapped[list[EditHistoryEntryModel]] = relationship(
        back_populates="allocation",
        order_by="EditHistoryEntryModel.sequence",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    delete_requests: Mapped[list[DeleteRequestModel]] = relationship(
        back_populates="allocation",
        order_by="DeleteRequestModel.sequence",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<AllocationRecord {self.id} {self.resource_email} "
            f"{self.allocation_date} sr_no={self.sr_no}>"
        )

    @property
    def pending_delete_request(self) -> DeleteRequestModel | None:
        for request in self.delete_requests:
            if request.status == DeleteRequestStatus.PENDING.value:
                return request
        return None

    def to_dto(self) -> AllocationRecordDTO:
        """Convert ORM model to frozen domain DTO."""
        return AllocationRecordDTO(
            id=self.id,
            sr_no=self.sr_no,
            resource_id=self.resource_id,
            resource_email=self.resource_email,
            resource_name=self.resource_name,
            allocation_date=self.allocation_date,
            logged_date=self.logged_date,
            system_captured_date=self.system_captured_date,
            day=self.day,
            month=self.month,
            year=self.year,
            client_name=self.client_name,
            project_name=self.project_name,
            location_id=self.location_id,
            location_name=self.location_name,
            subproject_key=self.subproject_key,
            process_type=self.process_type,
            request_id=self.request_id,
            request_type=self.request_type,
            requestor_type=self.requestor_type,
            task_type=self.task_type,
            facility_name=self.facility_name,
            processing_time=self.processing_time,
            remark=self.remark,
            geography_name=self.geography_name,
            count=self.count,
            billing_rate=self.billing_rate,
            billing_amount=self.billing_amount,
            billing_rate_at_logging=self.billing_rate_at_logging,
            is_late_log=self.is_late_log,
            days_late=self.days_late,
            source=EntrySource(self.source),
            assignment_ref=self.assignment_ref,
            is_locked=self.is_locked,
            locked_at=self.locked_at,
            locked_by=self.locked_by,
            is_deleted=self.is_deleted,
            deleted_at=self.deleted_at,
            deleted_by=self.deleted_by,
            has_pending_delete_request=self.has_pending_delete_request,
            edit_count=self.edit_count,
            last_edited_at=self.last_edited_at,
            version=self.version,
            edit_history=tuple(e.to_dto() for e in self.edit_history),
            delete_requests=tuple(r.to_dto() for r in self.delete_requests),
        )


Index(
    "uq_allocation_records_resource_day_serial",
    AllocationRecord.resource_email,
    AllocationRecord.allocation_date,
    AllocationRecord.sr_no,
    unique=True,
    postgresql_where=AllocationRecord.is_deleted == false(),
    sqlite_where=AllocationRecord.is_deleted == false(),
)


class EditHistoryEntryModel(Base):
    """Append-only edit audit entry.  ``sequence`` is 1-based per record."""

    __tablename__ = "allocation_edit_history"

    __table_args__ = (
        UniqueConstraint("allocation_id", "sequence", name="uq_edit_history_sequence"),
        CheckConstraint(
            "editor_role IN ('resource', 'admin')",
            name="ck_edit_history_editor_role",
        ),
    )

    allocation_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("allocation_records.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    edited_at: Mapped[datetime] = mapped_column(nullable=False)
    edited_by_id: Mapped[str] = mapped_column(String(64), nullable=False)
    edited_by_email: Mapped[str] = mapped_column(String(255), nullable=False)
    edited_by_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    editor_role: Mapped[str] = mapped_column(String(20), nullable=False)
    change_reason: Mapped[str] = mapped_column(Text, nullable=False)
    change_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    fields_changed: Mapped[list] = mapped_column(JSON, nullable=False)

    allocation: Mapped[AllocationRecord] = relationship(back_populates="edit_history")

    def to_dto(self) -> EditHistoryEntry:
        return EditHistoryEntry(
            sequence=self.sequence,
            edited_at=self.edited_at,
            edited_by_id=self.edited_by_id,
            edited_by_email=self.edited_by_email,
            edited_by_name=self.edited_by_name,
            editor_role=ActorRole(self.editor_role),
            change_reason=self.change_reason,
            change_notes=self.change_notes,
            fields_changed=tuple(
                FieldChange(c["field"], c["old_value"], c["new_value"])
                for c in self.fields_changed
            ),
        )


class DeleteRequestModel(Base):
    """
    Delete sub-record.

    Contract:
        ``pending -> approved | rejected``; terminal rows are frozen.  A
        record may accumulate several rows over time (request, reject,
        request again) but at most one is pending.
    """

    __tablename__ = "allocation_delete_requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_delete_requests_status",
        ),
        CheckConstraint(
            "delete_type IS NULL OR delete_type IN ('soft', 'hard')",
            name="ck_delete_requests_delete_type",
        ),
        UniqueConstraint("allocation_id", "sequence", name="uq_delete_requests_sequence"),
    )

    allocation_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("allocation_records.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DeleteRequestStatus.PENDING.value,
    )
    requested_at: Mapped[datetime] = mapped_column(nullable=False)
    requested_by_id: Mapped[str] = mapped_column(String(64), nullable=False)
    requested_by_email: Mapped[str] = mapped_column(String(255), nullable=False)
    requested_by_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    delete_reason: Mapped[str] = mapped_column(Text, nullable=False)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reviewed_by_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reviewed_by_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    review_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    delete_type: Mapped[str | None] = mapped_column(String(10), nullable=True)

    allocation: Mapped[AllocationRecord] = relationship(back_populates="delete_requests")

    def to_dto(self) -> DeleteRequestRecord:
        return DeleteRequestRecord(
            request_id=self.id,
            status=DeleteRequestStatus(self.status),
            requested_at=self.requested_at,
            requested_by_id=self.requested_by_id,
            requested_by_email=self.requested_by_email,
            requested_by_name=self.requested_by_name,
            delete_reason=self.delete_reason,
            reviewed_at=self.reviewed_at,
            reviewed_by_id=self.reviewed_by_id,
            reviewed_by_email=self.reviewed_by_email,
            review_comment=self.review_comment,
            delete_type=DeleteType(self.delete_type) if self.delete_type else None,
        )


Index(
    "uq_delete_requests_one_pending",
    DeleteRequestModel.allocation_id,
    unique=True,
    postgresql_where=DeleteRequestModel.status == DeleteRequestStatus.PENDING.value,
    sqlite_where=DeleteRequestModel.status == DeleteRequestStatus.PENDING.value,
)

"""
Module: allocation_kernel.models.activity_log
Responsibility: Persisted activity trail written by SqlActivitySink.

Rows are insert-only; nothing in the kernel updates or deletes them.  The
``subject_ids`` column keeps the allocation ids as strings so a hard-deleted
record's trail survives the record itself.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from allocation_kernel.db.base import Base


class ActivityLogModel(Base):
    __tablename__ = "activity_logs"

    __table_args__ = (
        Index("ix_activity_logs_type_time", "activity_type", "occurred_at"),
    )

    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    actor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_email: Mapped[str] = mapped_column(String(255), nullable=False)
    actor_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    actor_role: Mapped[str] = mapped_column(String(20), nullable=False)
    subject_ids: Mapped[list] = mapped_column(JSON, nullable=False)
    details: Mapped[dict] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<ActivityLog {self.activity_type} by {self.actor_email}>"

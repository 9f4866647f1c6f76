"""
SerialAllocator -- per-resource, per-day entry numbering.

Responsibility:
    Suggest the next ``sr_no`` for a resource on a business day: the highest
    serial among that resource's non-deleted entries in the day's window,
    plus one (or 1 for the first entry of the day).

Architecture position:
    Kernel > Services.  Called by EntryLifecycleService.create().

Invariants enforced:
    The value returned here is a HINT.  Uniqueness is enforced by the
    partial unique index on (resource_email, allocation_date, sr_no) over
    non-deleted rows; two racing creators that compute the same hint make
    the second INSERT fail, and the caller retries inside a savepoint.

Failure modes:
    - None raised here; collisions surface as IntegrityError at flush.
"""

from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from allocation_kernel.domain.allocation import normalize_email
from allocation_kernel.domain.temporal import TemporalPolicy
from allocation_kernel.logging_config import get_logger
from allocation_kernel.models.allocation import AllocationRecord

logger = get_logger("services.serial")


class SerialAllocator:
    def __init__(self, session: Session, temporal: TemporalPolicy):
        self._session = session
        self._temporal = temporal

    def next_serial(self, resource_email: str, on_date: date | datetime) -> int:
        window = self._temporal.get_serial_window(on_date)
        current_max = self._session.execute(
            select(func.max(AllocationRecord.sr_no)).where(
                AllocationRecord.resource_email == normalize_email(resource_email),
                AllocationRecord.allocation_date == window.day,
                AllocationRecord.is_deleted.is_(False),
            )
        ).scalar_one_or_none()

        next_value = (current_max or 0) + 1
        logger.debug(
            "serial_suggested",
            extra={
                "resource_email": normalize_email(resource_email),
                "allocation_date": window.day,
                "sr_no": next_value,
            },
        )
        return next_value

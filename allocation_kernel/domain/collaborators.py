"""
External collaborator ports (``allocation_kernel.domain.collaborators``).

The lifecycle engine consumes four collaborators it does not own.  Each is
a ``typing.Protocol`` so that SQL adapters, HTTP clients and test fakes are
interchangeable without inheritance.

Failure contract
----------------
* ``ResourceDirectory`` / ``LocationCatalog`` raise
  ``CollaboratorUnavailableError`` when the lookup itself fails; "not
  found" is ``None``, not an error.
* ``ActivitySink`` / ``NotificationDispatcher`` are fire-and-forget.  The
  engine logs their failures and never surfaces or retries them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable
from uuid import UUID

from allocation_kernel.domain.allocation import ActorInfo, ActivityType
from allocation_kernel.domain.rates import RateTable


class AssignmentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    REMOVED = "removed"


@dataclass(frozen=True)
class ResourceAssignmentView:
    location_id: UUID
    client_name: str
    project_name: str
    location_name: str
    assigned_date: date | None
    status: AssignmentStatus = AssignmentStatus.ACTIVE

    def permits(self, location_id: UUID, on_date: date) -> bool:
        """Active grant for this location, and ``on_date`` not before it started."""
        if self.location_id != location_id or self.status is not AssignmentStatus.ACTIVE:
            return False
        return self.assigned_date is None or on_date >= self.assigned_date


@dataclass(frozen=True)
class ResourceView:
    resource_id: str
    email: str
    name: str
    assignments: tuple[ResourceAssignmentView, ...] = ()

    def assignment_for(self, location_id: UUID) -> ResourceAssignmentView | None:
        for assignment in self.assignments:
            if assignment.location_id == location_id:
                return assignment
        return None


@dataclass(frozen=True)
class LocationView:
    location_id: UUID
    client_name: str
    project_name: str
    location_name: str
    business_key: str
    flat_rate: Decimal | None = None
    category_rates: Mapping[str, Decimal] = field(default_factory=dict)

    @property
    def rate_table(self) -> RateTable:
        return RateTable(category_rates=dict(self.category_rates), flat_rate=self.flat_rate)


@runtime_checkable
class ResourceDirectory(Protocol):
    def find_resource_by_email(self, email: str) -> ResourceView | None: ...


@runtime_checkable
class LocationCatalog(Protocol):
    def get_location(self, location_id: UUID) -> LocationView | None: ...


@runtime_checkable
class ActivitySink(Protocol):
    def record(
        self,
        event_type: ActivityType,
        actor: ActorInfo,
        subject_ids: Sequence[UUID],
        details: Mapping[str, Any],
    ) -> None: ...


@runtime_checkable
class NotificationDispatcher(Protocol):
    def notify(self, recipients: Sequence[str], template_data: Mapping[str, Any]) -> bool: ...

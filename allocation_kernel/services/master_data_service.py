"""
Master data -- locations, rates, resources, and their SQL-backed ports.

Responsibility:
    - MasterDataService maintains locations (deduplicated by business key),
      location rates, resources and assignments.
    - SqlLocationCatalog / SqlResourceDirectory implement the LocationCatalog
      and ResourceDirectory ports on top of those tables.

Architecture position:
    Kernel > Services.  The lifecycle service depends only on the ports;
    these adapters are one possible backing.

Failure modes:
    - Adapters translate SQLAlchemyError into CollaboratorUnavailableError
      so a failed lookup aborts a create cleanly.
    - LocationNotFoundError when rating or assigning an unknown location.
"""

from datetime import date
from decimal import Decimal
from typing import Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from allocation_kernel.domain.allocation import normalize_email
from allocation_kernel.domain.collaborators import (
    AssignmentStatus,
    LocationView,
    ResourceView,
)
from allocation_kernel.domain.location_key import build_location_key
from allocation_kernel.exceptions import (
    CollaboratorUnavailableError,
    LocationNotFoundError,
    NotFoundError,
    ValidationFailedError,
)
from allocation_kernel.logging_config import get_logger
from allocation_kernel.models.master_data import (
    Location,
    LocationRate,
    Resource,
    ResourceAssignment,
)
from allocation_kernel.services.base import BaseService

logger = get_logger("services.master_data")


class MasterDataService(BaseService[Location]):
    """
    Maintains the location and resource master tables.

    Guarantees:
        - ``upsert_location`` returns the existing row when the business key
          already exists; reloading master data never duplicates a location.
    """

    def upsert_location(
        self,
        client_name: str,
        project_name: str,
        location_name: str,
        flat_rate: Decimal | None = None,
        category_rates: Mapping[str, Decimal] | None = None,
    ) -> LocationView:
        business_key = build_location_key(client_name, project_name, location_name)
        location = self.session.execute(
            select(Location).where(Location.business_key == business_key)
        ).scalar_one_or_none()

        created = location is None
        if created:
            location = Location(
                client_name=client_name.strip(),
                project_name=project_name.strip(),
                location_name=location_name.strip(),
                business_key=business_key,
                flat_rate=flat_rate,
            )
            self.session.add(location)
        elif flat_rate is not None:
            location.flat_rate = flat_rate

        for category, rate in (category_rates or {}).items():
            self._put_rate(location, category, rate)

        self.session.flush()
        logger.info(
            "location_upserted",
            extra={"business_key": business_key, "location_created": created},
        )
        return location.to_view()

    def set_location_rate(self, location_id: UUID, category: str, rate: Decimal) -> LocationView:
        location = self.session.get(Location, location_id)
        if location is None:
            raise LocationNotFoundError(str(location_id))
        self._put_rate(location, category, rate)
        self.session.flush()
        return location.to_view()

    def _put_rate(self, location: Location, category: str, rate: Decimal) -> None:
        category = category.strip()
        if not category:
            raise ValidationFailedError("category", "rate category must not be blank")
        if rate < 0:
            raise ValidationFailedError("rate", "rate must not be negative")
        for existing in location.rates:
            if existing.category == category:
                existing.rate = rate
                return
        location.rates.append(LocationRate(category=category, rate=rate))

    def upsert_resource(self, email: str, name: str) -> ResourceView:
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationFailedError("email", "resource email must not be blank")
        resource = self.session.execute(
            select(Resource).where(Resource.email == normalized)
        ).scalar_one_or_none()
        if resource is None:
            resource = Resource(email=normalized, name=name)
            self.session.add(resource)
        else:
            resource.name = name
        self.session.flush()
        return resource.to_view()

    def assign_location(
        self,
        email: str,
        location_id: UUID,
        assigned_date: date | None,
        status: AssignmentStatus = AssignmentStatus.ACTIVE,
    ) -> ResourceView:
        resource = self.session.execute(
            select(Resource).where(Resource.email == normalize_email(email))
        ).scalar_one_or_none()
        if resource is None:
            raise NotFoundError("Resource", normalize_email(email))
        location = self.session.get(Location, location_id)
        if location is None:
            raise LocationNotFoundError(str(location_id))

        for assignment in resource.assignments:
            if assignment.location_id == location_id:
                assignment.assigned_date = assigned_date
                assignment.status = status.value
                break
        else:
            resource.assignments.append(
                ResourceAssignment(
                    location=location,
                    assigned_date=assigned_date,
                    status=status.value,
                )
            )
        self.session.flush()
        logger.info(
            "location_assigned",
            extra={
                "resource_email": resource.email,
                "business_key": location.business_key,
                "assignment_status": status.value,
            },
        )
        return resource.to_view()


class SqlLocationCatalog:
    """LocationCatalog backed by the ``locations`` table.  No caching."""

    def __init__(self, session: Session):
        self._session = session

    def get_location(self, location_id: UUID) -> LocationView | None:
        try:
            location = self._session.get(Location, location_id, populate_existing=True)
        except SQLAlchemyError as exc:
            raise CollaboratorUnavailableError(
                "LocationCatalog", "get_location", str(exc)
            ) from exc
        return location.to_view() if location is not None else None


class SqlResourceDirectory:
    """ResourceDirectory backed by ``resources`` / ``resource_assignments``."""

    def __init__(self, session: Session):
        self._session = session

    def find_resource_by_email(self, email: str) -> ResourceView | None:
        try:
            resource = self._session.execute(
                select(Resource).where(Resource.email == normalize_email(email))
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise CollaboratorUnavailableError(
                "ResourceDirectory", "find_resource_by_email", str(exc)
            ) from exc
        return resource.to_view() if resource is not None else None

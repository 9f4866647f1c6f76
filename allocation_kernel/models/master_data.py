"""
Module: allocation_kernel.models.master_data
Responsibility: Locations (client / project / location triples) with their
    billing rates, and resources with their location assignments.

Architecture position: Kernel > Models.  Backing store for the SQL
    implementations of the LocationCatalog and ResourceDirectory ports.

Invariants enforced:
    - ``Location.business_key`` is unique: the same three names always map
      to one location row regardless of how often master data is reloaded.
    - ``Resource.email`` is stored lowercased and is unique.
    - One assignment row per (resource, location).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from allocation_kernel.db.base import TrackedBase, UUIDString
from allocation_kernel.domain.collaborators import (
    AssignmentStatus,
    LocationView,
    ResourceAssignmentView,
    ResourceView,
)


class Location(TrackedBase):
    __tablename__ = "locations"

    client_name: Mapped[str] = mapped_column(String(100), nullable=False)
    project_name: Mapped[str] = mapped_column(String(255), nullable=False)
    location_name: Mapped[str] = mapped_column(String(255), nullable=False)
    business_key: Mapped[str] = mapped_column(String(800), nullable=False, unique=True)
    flat_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    rates: Mapped[list[LocationRate]] = relationship(
        back_populates="location",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Location {self.business_key}>"

    def to_view(self) -> LocationView:
        return LocationView(
            location_id=self.id,
            client_name=self.client_name,
            project_name=self.project_name,
            location_name=self.location_name,
            business_key=self.business_key,
            flat_rate=self.flat_rate,
            category_rates={r.category: r.rate for r in self.rates},
        )


class LocationRate(TrackedBase):
    """Rate for one request / requestor category at one location."""

    __tablename__ = "location_rates"

    __table_args__ = (
        UniqueConstraint("location_id", "category", name="uq_location_rates_category"),
        CheckConstraint("rate >= 0", name="ck_location_rates_non_negative"),
    )

    location_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
    )
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    rate: Mapped[Decimal] = mapped_column(nullable=False)

    location: Mapped[Location] = relationship(back_populates="rates")


class Resource(TrackedBase):
    __tablename__ = "resources"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    assignments: Mapped[list[ResourceAssignment]] = relationship(
        back_populates="resource",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_view(self) -> ResourceView:
        return ResourceView(
            resource_id=str(self.id),
            email=self.email,
            name=self.name,
            assignments=tuple(a.to_view() for a in self.assignments),
        )


class ResourceAssignment(TrackedBase):
    __tablename__ = "resource_assignments"

    __table_args__ = (
        UniqueConstraint("resource_id", "location_id", name="uq_resource_assignments_pair"),
        CheckConstraint(
            "status IN ('active', 'inactive', 'removed')",
            name="ck_resource_assignments_status",
        ),
    )

    resource_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("resources.id", ondelete="CASCADE"),
        nullable=False,
    )
    location_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
    )
    assigned_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AssignmentStatus.ACTIVE.value,
    )

    resource: Mapped[Resource] = relationship(back_populates="assignments")
    location: Mapped[Location] = relationship(lazy="joined")

    def to_view(self) -> ResourceAssignmentView:
        return ResourceAssignmentView(
            location_id=self.location_id,
            client_name=self.location.client_name,
            project_name=self.location.project_name,
            location_name=self.location.location_name,
            assigned_date=self.assigned_date,
            status=AssignmentStatus(self.status),
        )

"""ORM models for the allocation kernel."""

from allocation_kernel.models.activity_log import ActivityLogModel
from allocation_kernel.models.allocation import (
    AllocationRecord,
    DeleteRequestModel,
    EditHistoryEntryModel,
)
from allocation_kernel.models.master_data import (
    Location,
    LocationRate,
    Resource,
    ResourceAssignment,
)

__all__ = [
    "ActivityLogModel",
    "AllocationRecord",
    "DeleteRequestModel",
    "EditHistoryEntryModel",
    "Location",
    "LocationRate",
    "Resource",
    "ResourceAssignment",
]

"""
Pure domain layer.

Frozen value objects and pure functions for the allocation engine, with
NO dependency on the ORM, the database, or configuration files.  Time is
read only through an injected ``Clock``.
"""

from allocation_kernel.domain.allocation import (
    ActivityType,
    ActorInfo,
    ActorRole,
    AllocationRecordDTO,
    CreateAllocationInput,
    DeleteDecision,
    DeleteRequestStatus,
    DeleteType,
    EditableField,
    EntrySource,
    HardDeleteConfirmation,
)
from allocation_kernel.domain.client_policy import (
    AllocationPolicySet,
    ClientPolicy,
    DuplicateScope,
    ProcessTypeRule,
)
from allocation_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from allocation_kernel.domain.location_key import build_location_key
from allocation_kernel.domain.rates import BillingBasis, BillingMode, RateTable, resolve_rate
from allocation_kernel.domain.temporal import Lateness, SerialWindow, TemporalPolicy

__all__ = [
    "ActivityType",
    "ActorInfo",
    "ActorRole",
    "AllocationPolicySet",
    "AllocationRecordDTO",
    "BillingBasis",
    "BillingMode",
    "ClientPolicy",
    "Clock",
    "CreateAllocationInput",
    "DeleteDecision",
    "DeleteRequestStatus",
    "DeleteType",
    "DeterministicClock",
    "DuplicateScope",
    "EditableField",
    "EntrySource",
    "HardDeleteConfirmation",
    "Lateness",
    "ProcessTypeRule",
    "RateTable",
    "SerialWindow",
    "SystemClock",
    "TemporalPolicy",
    "build_location_key",
    "resolve_rate",
]

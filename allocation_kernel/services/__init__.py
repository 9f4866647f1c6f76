"""Services for the allocation kernel (write side)."""

from allocation_kernel.services.activity_sink import SqlActivitySink
from allocation_kernel.services.duplicate_guard import DuplicateGuard
from allocation_kernel.services.entry_lifecycle_service import EntryLifecycleService
from allocation_kernel.services.master_data_service import (
    MasterDataService,
    SqlLocationCatalog,
    SqlResourceDirectory,
)
from allocation_kernel.services.notification import LoggingNotificationDispatcher
from allocation_kernel.services.serial_allocator import SerialAllocator

__all__ = [
    "DuplicateGuard",
    "EntryLifecycleService",
    "LoggingNotificationDispatcher",
    "MasterDataService",
    "SerialAllocator",
    "SqlActivitySink",
    "SqlLocationCatalog",
    "SqlResourceDirectory",
]

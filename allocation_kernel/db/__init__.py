"""Database layer - engine, base classes, and ORM guards."""

from allocation_kernel.db.base import UUID, Base, TrackedBase, UTCDateTime, UUIDString
from allocation_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "UUID",
    "UUIDString",
    "create_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
]

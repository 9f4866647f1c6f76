"""
BaseService -- abstract base for allocation kernel write services.

Every service receives a caller-owned SQLAlchemy ``Session`` and persists
with ``session.flush()`` only.  Commit and rollback belong to the caller
(``session_scope()`` or a test fixture), so a record, its edit-history
row and its delete sub-record land in one atomic transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from allocation_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for write services.

    Contract:
        Uses ``session.flush()`` within the caller's transaction.

    Non-goals:
        - Does NOT commit or roll back.
        - Does NOT host read-only queries; those live in ``selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session

"""
Module: allocation_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.  Selectors
    are the read side next to the write services: they answer list and
    summary questions without mutation capability.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain/ value types.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never call session.add(), delete(),
      flush() or commit().
    - DTO return convention: results are frozen domain dataclasses, never
      ORM instances.
    - Session ownership stays with the caller.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from allocation_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs or computed rows.
    """

    def __init__(self, session: Session):
        self.session = session

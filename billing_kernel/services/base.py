"""
BaseService -- abstract base for kernel services.

Responsibility:
    Common constructor for kernel services.  Kernel services receive a
    SQLAlchemy ``Session`` and persist with ``session.flush()`` only.

Invariants enforced:
    Transaction boundaries: kernel services never commit or roll back.
    The module service calling them owns the transaction, so a lock check
    and the write it guards land in the same unit of work.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from billing_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Abstract base class for kernel services."""

    def __init__(self, session: Session):
        self.session = session

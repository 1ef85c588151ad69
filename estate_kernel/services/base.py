"""
BaseService -- abstract base for kernel services.

Responsibility:
    Common constructor for every kernel service. Services receive a
    SQLAlchemy ``Session`` and persist with ``session.flush()``; they never
    commit or roll back. The outer service layer (estate_services) owns the
    transaction boundary and the ledger write lock.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from estate_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Non-goals:
        - Does NOT manage transactions.
        - Does NOT provide read models; those live in estate_kernel/selectors/.
    """

    def __init__(self, session: Session):
        self.session = session

"""
Module: estate_kernel.db.base
Responsibility: Declarative base classes and column types shared by every
    ORM model: UUID primary keys, audit columns, and integer minor-unit money.
Architecture position: Kernel > DB. Lowest-level import target inside the
    kernel; MUST NOT import from models/, services/ or selectors/.

Invariants enforced:
    - UUID primary keys on every table.
    - Monetary columns store integer minor units (hundredths). Decimal in,
      Decimal out; no binary float is ever persisted, so sums are exact on
      every backend.
    - Audit timestamps: TrackedBase provides created_at, updated_at,
      created_by_id, updated_by_id.

Failure modes:
    - ValueError from MinorUnits.process_bind_param when a value carries
      sub-cent precision. Boundary validation (domain.money) rejects such
      input earlier with ValidationError; reaching this is a programming error.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, Date, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

_MINOR_PER_MAJOR = 100
_CENT = Decimal("0.01")


class UUIDString(TypeDecorator):
    """
    UUID stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(str(value))
        return None


class MinorUnits(TypeDecorator):
    """
    Money stored as an integer count of minor units (kobo / cents).

    Contract:
        Python side is always a two-place ``Decimal``; database side is a
        BIGINT. ``Decimal("150.25")`` is stored as ``15025``.

    Guarantees:
        - Exact round-trip for any amount with at most two decimal places.
        - SQL aggregates (``SUM``) stay integral; wrap them with
          ``type_coerce(expr, MinorUnits())`` to get a Decimal back.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
        minor = amount * _MINOR_PER_MAJOR
        if minor != minor.to_integral_value():
            raise ValueError(f"Sub-cent amount cannot be stored: {amount}")
        return int(minor)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return (Decimal(int(value)) / _MINOR_PER_MAJOR).quantize(_CENT)


class Base(DeclarativeBase):
    """
    Declarative base for all estate models.

    Guarantees:
        - id is a uuid4 stored as String(36).
        - Decimal annotations map to MinorUnits.
        - datetime maps to DateTime(timezone=True), date to Date.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: MinorUnits(),
        datetime: DateTime(timezone=True),
        date: Date(),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamp and actor tracking.

    Contract:
        created_at/updated_at/created_by_id/updated_by_id are audit metadata,
        not financial data, so they may change even on otherwise immutable
        records (see db/immutability.py).
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by_id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    updated_by_id: Mapped[PyUUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )


UUID = PyUUID

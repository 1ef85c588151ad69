"""Database layer - engine, base classes, column types, immutability."""

from estate_kernel.db.base import UUID, Base, MinorUnits, TrackedBase, UUIDString
from estate_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    ledger_write_lock,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "ledger_write_lock",
    "Base",
    "TrackedBase",
    "UUIDString",
    "MinorUnits",
    "UUID",
]

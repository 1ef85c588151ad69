"""
Transaction boundary shared by estate_services.

Every public service method that writes runs inside ``unit_of_work``:
the ledger write lock is taken first, then the body runs, then the session
commits (``auto_commit=True``) or is left for the caller. Any exception
rolls the session back when this unit owns the boundary and is re-raised.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from estate_kernel.db.engine import DEFAULT_LEDGER_ID, ledger_write_lock
from estate_kernel.logging_config import get_logger

logger = get_logger("services.unit_of_work")


@contextmanager
def unit_of_work(
    session: Session,
    operation: str,
    auto_commit: bool = True,
    ledger_id: str = DEFAULT_LEDGER_ID,
) -> Generator[Session, None, None]:
    with ledger_write_lock(ledger_id):
        try:
            yield session
            if auto_commit:
                session.commit()
        except Exception as exc:
            if auto_commit:
                session.rollback()
                logger.info(
                    "transaction_rolled_back",
                    extra={
                        "operation": operation,
                        "error_type": type(exc).__name__,
                        "error_code": getattr(exc, "code", None),
                    },
                )
            raise

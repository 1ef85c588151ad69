"""
Module: estate_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    transactional scope, and the per-ledger write lock.
Architecture position: Kernel > DB. May import from db/base.py;
    create_tables imports models so that Base.metadata is complete.

Invariants enforced:
    - Single writer per ledger: every unit of work that posts, voids or
      reverses holds ``ledger_write_lock(ledger_id)`` until it has committed.
      Sequence counters are additionally read with SELECT ... FOR UPDATE so
      separate processes on PostgreSQL serialize numbering as well.
    - Sessions use expire_on_commit=False; services decide commit boundaries.

Supported backends:
    - PostgreSQL (QueuePool, READ COMMITTED).
    - SQLite. In-memory URLs share one connection through StaticPool. pysqlite
      is switched to explicit BEGIN so SAVEPOINT works, and foreign keys are
      enabled on every connection.

Failure modes:
    - RuntimeError if get_engine/get_session/get_session_factory are called
      before init_engine_from_url().
"""

import threading
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from estate_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

DEFAULT_LEDGER_ID = "general"

_ledger_locks: dict[str, threading.RLock] = {}
_ledger_locks_guard = threading.Lock()


def _is_memory_sqlite(url) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def _install_sqlite_pragmas(engine: Engine) -> None:
    """Hand transaction control to SQLAlchemy and enforce foreign keys."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Disable pysqlite's implicit BEGIN so SAVEPOINT behaves.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """
    Create an engine for ``database_url`` without touching module state.

    Useful for tests that need an engine of their own (e.g. a file-backed
    SQLite database shared between threads).
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        connect_args = {"check_same_thread": False}
        if _is_memory_sqlite(url):
            engine = create_engine(
                url, echo=echo, poolclass=StaticPool, connect_args=connect_args
            )
        else:
            connect_args["timeout"] = pool_options.get("pool_timeout", 30)
            engine = create_engine(url, echo=echo, connect_args=connect_args)
        _install_sqlite_pragmas(engine)
        return engine

    return create_engine(
        url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_options.get("pool_size", 10),
        max_overflow=pool_options.get("max_overflow", 10),
        pool_pre_ping=pool_options.get("pool_pre_ping", True),
        pool_timeout=pool_options.get("pool_timeout", 30),
        pool_recycle=pool_options.get("pool_recycle", 1800),
        isolation_level="READ COMMITTED",
    )


def init_engine_from_url(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """
    Initialize the module-level engine and session factory.

    A second call replaces the first; call reset_engine() to dispose.

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()

    _engine = build_engine(database_url, echo=echo, **pool_options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory()


def get_session_factory() -> sessionmaker[Session]:
    """Session factory, for callers that need one session per thread."""
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Transactional scope around a series of operations.

    Commits on normal exit; rolls back and re-raises on exception; always
    closes the session.
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


@contextmanager
def ledger_write_lock(ledger_id: str = DEFAULT_LEDGER_ID) -> Generator[None, None, None]:
    """
    Hold the process-wide write lock for ``ledger_id``.

    Re-entrant, so a service that already holds the lock may call another
    service that takes it again.
    """
    with _ledger_locks_guard:
        lock = _ledger_locks.setdefault(ledger_id, threading.RLock())
    with lock:
        yield


def create_tables(engine: Engine | None = None) -> None:
    """
    Create every estate table.

    Imports all model modules first so Base.metadata is complete.
    """
    from estate_kernel.db.base import Base
    import estate_kernel.models  # noqa: F401
    import estate_kernel.services.sequence_service  # noqa: F401

    Base.metadata.create_all(engine or get_engine())


def drop_tables(engine: Engine | None = None) -> None:
    """Drop all tables. Primarily for testing."""
    from estate_kernel.db.base import Base
    import estate_kernel.models  # noqa: F401
    import estate_kernel.services.sequence_service  # noqa: F401

    Base.metadata.drop_all(engine or get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None


def is_postgres() -> bool:
    if _engine is None:
        return False
    return _engine.dialect.name == "postgresql"

"""
Pytest fixtures for the estate ledger test suite.

Provides:
- A database engine and schema created once per test session
- Per-test sessions isolated by an outer transaction that is rolled back
- Service and selector fixtures wired to a seeded chart of accounts
- Structured log capture

Environment Variables:
- ESTATE_TEST_DATABASE_URL: database URL for the suite. Defaults to an
  in-memory SQLite database; point it at PostgreSQL to run the same tests
  against a server (requires the ``postgres`` extra).
"""

import json
import logging
import os
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from estate_config import get_active_config
from estate_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from estate_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from estate_kernel.domain.clock import DeterministicClock
from estate_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from estate_kernel.selectors.journal_selector import JournalSelector
from estate_kernel.selectors.ledger_selector import LedgerSelector
from estate_kernel.selectors.subledger_selector import SubledgerSelector
from estate_services.chart_migration import ChartMigration
from estate_services.general_ledger import GeneralLedgerService
from estate_services.reconciliation_service import ReconciliationService
from estate_services.subsidiary_ledger import SubsidiaryLedger

DEFAULT_TEST_DATABASE_URL = "sqlite://"


def get_database_url() -> str:
    return os.environ.get("ESTATE_TEST_DATABASE_URL", DEFAULT_TEST_DATABASE_URL)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "slow_locks: mark test as exercising real threads and locks"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture estate_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, subsidiary_ledger):
            subsidiary_ledger.create_bill(...)
            logs = captured_logs()
            assert any(r["message"] == "bill_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("estate_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Session-scoped DB infrastructure (engine + tables once per suite)
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    eng = init_engine_from_url(get_database_url(), echo=False)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    drop_tables(db_engine)
    create_tables(db_engine)
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()
    drop_tables(db_engine)


@pytest.fixture
def session(db_engine, db_tables):
    """
    Session whose work is discarded after the test.

    Services commit freely: with ``create_savepoint`` each commit releases
    a SAVEPOINT inside the outer transaction, which is rolled back at
    teardown.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    sess.close()
    trans.rollback()
    conn.close()


# =============================================================================
# Values
# =============================================================================


@pytest.fixture
def test_actor_id() -> UUID:
    return uuid4()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def config():
    """The packaged default configuration set, ignoring the environment."""
    return get_active_config(environ={})


@pytest.fixture
def seeded_chart(session, config, test_actor_id, deterministic_clock):
    """Default chart and templates; returns accounts keyed by number."""
    ChartMigration(session, config, clock=deterministic_clock).apply(test_actor_id)
    return {a.account_number: a for a in GeneralLedgerService(session, config=config).list_accounts()}


# =============================================================================
# Services and selectors
# =============================================================================


@pytest.fixture
def general_ledger(session, config, deterministic_clock, seeded_chart):
    return GeneralLedgerService(session, config=config, clock=deterministic_clock)


@pytest.fixture
def subsidiary_ledger(session, config, deterministic_clock, seeded_chart):
    return SubsidiaryLedger(session, config=config, clock=deterministic_clock)


@pytest.fixture
def reconciliation_service(session, config, deterministic_clock, seeded_chart):
    return ReconciliationService(session, config=config, clock=deterministic_clock)


@pytest.fixture
def ledger_selector(session):
    return LedgerSelector(session)


@pytest.fixture
def journal_selector(session):
    return JournalSelector(session)


@pytest.fixture
def subledger_selector(session):
    return SubledgerSelector(session)

"""Tests for the structured logging system (estate_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from estate_kernel.exceptions import OverpaymentError
from estate_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite configuration."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


class TestStructuredFormatter:
    """JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "estate_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bill_created", extra={"invoice_number": "INV-2024-0001"})

        assert _parse_log(stream)["invoice_number"] == "INV-2024-0001"

    def test_decimal_date_and_uuid_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        bill_id = uuid4()
        get_logger("test").info(
            "payment_applied",
            extra={"amount": Decimal("500.00"), "paid_on": date(2024, 3, 1), "bill_id": bill_id},
        )

        record = _parse_log(stream)
        assert record["amount"] == "500.00"
        assert record["paid_on"] == "2024-03-01"
        assert record["bill_id"] == str(bill_id)

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        statement_id = uuid4()
        with LogContext.bind(statement_id=statement_id):
            get_logger("test").info("reconciliation_started")

        assert _parse_log(stream)["statement_id"] == str(statement_id)

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("plain")

        record = _parse_log(stream)
        assert "actor_id" not in record
        assert "statement_id" not in record

    def test_ledger_error_attributes_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise OverpaymentError("bill-1", "600.00", "500.00")
        except OverpaymentError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "OverpaymentError"
        assert record["exc_code"] == "OVERPAYMENT"
        assert record["exc_bill_id"] == "bill-1"
        assert record["exc_balance"] == "500.00"
        assert "traceback" in record

    def test_every_line_is_valid_json(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        for i in range(5):
            logger.info("line", extra={"i": i})

        records = _parse_all_logs(stream)
        assert [r["i"] for r in records] == [0, 1, 2, 3, 4]


class TestLogContext:

    def test_set_and_get(self):
        LogContext.set(actor_id="a1")
        assert LogContext.get_all() == {"actor_id": "a1"}

    def test_clear(self):
        LogContext.set(actor_id="a1", entry_id="e1")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_value(self):
        LogContext.set(actor_id="outer")
        with LogContext.bind(actor_id="inner"):
            assert LogContext.get_all()["actor_id"] == "inner"
        assert LogContext.get_all()["actor_id"] == "outer"

    def test_bind_ignores_none_and_unknown(self):
        with LogContext.bind(actor_id=None, not_a_field="x"):
            assert LogContext.get_all() == {}


class TestConfigureLogging:

    def test_idempotent(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=handler)
        assert len(logging.getLogger("estate_kernel").handlers) == 1

    def test_does_not_propagate_to_root(self):
        configure_logging(handler=_make_handler()[0])
        assert logging.getLogger("estate_kernel").propagate is False

    def test_get_logger_returns_child(self):
        assert get_logger("services.reconciliation").name == (
            "estate_kernel.services.reconciliation"
        )

"""
Tests for the pure statement-line matcher.

Covers reference matching, the amount fallback, deterministic tie-breaks,
and how a received amount is split between a bill and a residual.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from estate_engines.reconciliation import ReconciliationMatcher, normalize_reference
from estate_engines.reconciliation_types import (
    BankStatementEntry,
    MatchOutcome,
    MatchRule,
)


@dataclass(frozen=True)
class _Bill:
    invoice_number: str
    due_date: date
    balance: Decimal
    bill_id: UUID = None
    resident_id: UUID = None

    def __post_init__(self):
        object.__setattr__(self, "bill_id", self.bill_id or uuid4())
        object.__setattr__(self, "resident_id", self.resident_id or uuid4())


def _entry(amount: str, reference: str | None = None) -> BankStatementEntry:
    return BankStatementEntry(
        transaction_date=date(2024, 3, 1),
        description="transfer",
        reference_number=reference,
        amount=Decimal(amount),
    )


@pytest.fixture
def matcher():
    return ReconciliationMatcher()


class TestNormalizeReference:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (" inv-2024-0001 ", "INV-2024-0001"),
            ("INV-2024-0001", "INV-2024-0001"),
            ("   ", None),
            (None, None),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_reference(raw) == expected


class TestSelectBill:

    def test_reference_match_is_case_insensitive(self, matcher):
        bill = _Bill("INV-2024-0001", date(2024, 2, 1), Decimal("50000.00"))
        decision = matcher.select_bill(_entry("10.00", "inv-2024-0001 "), [bill])

        assert decision.is_match
        assert decision.bill is bill
        assert decision.rule is MatchRule.REFERENCE

    def test_reference_wins_over_amount(self, matcher):
        by_amount = _Bill("INV-2024-0001", date(2024, 1, 1), Decimal("100.00"))
        by_reference = _Bill("INV-2024-0002", date(2024, 6, 1), Decimal("900.00"))
        decision = matcher.select_bill(
            _entry("100.00", "INV-2024-0002"), [by_amount, by_reference]
        )

        assert decision.bill is by_reference
        assert decision.rule is MatchRule.REFERENCE

    def test_amount_fallback_without_reference(self, matcher):
        bill = _Bill("INV-2024-0001", date(2024, 2, 1), Decimal("25000.00"))
        decision = matcher.select_bill(_entry("25000.00"), [bill])

        assert decision.bill is bill
        assert decision.rule is MatchRule.AMOUNT

    def test_blank_reference_uses_amount_fallback(self, matcher):
        bill = _Bill("INV-2024-0001", date(2024, 2, 1), Decimal("25000.00"))
        decision = matcher.select_bill(_entry("25000.00", "   "), [bill])

        assert decision.rule is MatchRule.AMOUNT

    def test_unknown_reference_never_falls_back_to_amount(self, matcher):
        bill = _Bill("INV-2024-0001", date(2024, 2, 1), Decimal("25000.00"))
        decision = matcher.select_bill(_entry("25000.00", "INV-2099-9999"), [bill])

        assert not decision.is_match
        assert decision.rule is None

    def test_reference_to_settled_bill_stays_unmatched(self, matcher):
        settled = _Bill("INV-2024-0001", date(2024, 1, 1), Decimal("0.00"))
        other = _Bill("INV-2024-0002", date(2024, 2, 1), Decimal("25000.00"))
        decision = matcher.select_bill(_entry("25000.00", "INV-2024-0001"), [settled, other])

        assert not decision.is_match

    def test_amount_fallback_requires_exact_balance(self, matcher):
        bill = _Bill("INV-2024-0001", date(2024, 2, 1), Decimal("50000.00"))
        decision = matcher.select_bill(_entry("30000.00"), [bill])

        assert not decision.is_match
        assert decision.rule is None

    def test_amount_fallback_disabled(self):
        bill = _Bill("INV-2024-0001", date(2024, 2, 1), Decimal("25000.00"))
        decision = ReconciliationMatcher(amount_fallback=False).select_bill(
            _entry("25000.00"), [bill]
        )
        assert not decision.is_match

    def test_tie_break_oldest_due_date_then_invoice(self, matcher):
        later = _Bill("INV-2024-0001", date(2024, 3, 1), Decimal("100.00"))
        older_b = _Bill("INV-2024-0003", date(2024, 1, 1), Decimal("100.00"))
        older_a = _Bill("INV-2024-0002", date(2024, 1, 1), Decimal("100.00"))

        decision = matcher.select_bill(_entry("100.00"), [later, older_b, older_a])
        assert decision.bill is older_a

        # Input order does not matter
        decision = matcher.select_bill(_entry("100.00"), [older_a, later, older_b])
        assert decision.bill is older_a

    def test_closed_bills_ignored(self, matcher):
        paid = _Bill("INV-2024-0001", date(2024, 2, 1), Decimal("0.00"))
        decision = matcher.select_bill(_entry("0.01", "INV-2024-0001"), [paid])
        assert not decision.is_match

    def test_no_bills(self, matcher):
        assert not matcher.select_bill(_entry("1.00", "INV-1"), []).is_match


class TestAllocate:

    def test_full(self):
        allocation = ReconciliationMatcher.allocate(Decimal("25000.00"), Decimal("25000.00"))
        assert allocation.outcome is MatchOutcome.FULL
        assert allocation.applied == Decimal("25000.00")
        assert allocation.residual == Decimal("0.00")

    def test_partial(self):
        allocation = ReconciliationMatcher.allocate(Decimal("30000.00"), Decimal("50000.00"))
        assert allocation.outcome is MatchOutcome.PARTIAL
        assert allocation.applied == Decimal("30000.00")
        assert allocation.residual == Decimal("0.00")

    def test_overpaid(self):
        allocation = ReconciliationMatcher.allocate(Decimal("60000.00"), Decimal("50000.00"))
        assert allocation.outcome is MatchOutcome.OVERPAID
        assert allocation.applied == Decimal("50000.00")
        assert allocation.residual == Decimal("10000.00")

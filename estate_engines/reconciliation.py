"""
estate_engines.reconciliation -- statement line to bill matching.

Responsibility:
    Decide which open bill a bank statement line pays and how the amount is
    split between the bill and a residual. No I/O: the service passes in a
    snapshot of open bills and applies the decision through SubsidiaryLedger.

Invariants enforced:
    - Deterministic: same line and same open bills give the same decision.
    - Reference match first (exact invoice number, case-insensitive,
      surrounding whitespace ignored); amount equality only as a fallback
      for lines that carry no reference. A line quoting an invoice that is
      not open stays unmatched.
    - Tie-break among several qualifying bills: oldest due date, then
      invoice number.
    - Never allocate more than the bill's balance; any excess is a residual.

Usage:
    from estate_engines.reconciliation import ReconciliationMatcher

    matcher = ReconciliationMatcher(amount_fallback=True)
    decision = matcher.select_bill(entry, open_bills)
    if decision.is_match:
        allocation = matcher.allocate(entry.amount, decision.bill.balance)
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from estate_engines.reconciliation_types import (
    Allocation,
    BankStatementEntry,
    BillCandidate,
    MatchDecision,
    MatchOutcome,
    MatchRule,
)
from estate_kernel.logging_config import get_logger

logger = get_logger("engines.reconciliation")

_ZERO = Decimal("0.00")


def normalize_reference(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip().upper()
    return cleaned or None


def _priority(bill: BillCandidate) -> tuple:
    return (bill.due_date, bill.invoice_number)


class ReconciliationMatcher:
    """
    Pure matching policy.

    Contract:
        Only bills with balance > 0 are candidates; callers may pass closed
        bills and they are ignored.
    """

    def __init__(self, amount_fallback: bool = True):
        self.amount_fallback = amount_fallback

    def select_bill(
        self,
        entry: BankStatementEntry,
        open_bills: Sequence[BillCandidate],
    ) -> MatchDecision:
        candidates = [b for b in open_bills if b.balance > _ZERO]

        reference = normalize_reference(entry.reference_number)
        if reference is not None:
            by_reference = [
                b for b in candidates if normalize_reference(b.invoice_number) == reference
            ]
            if by_reference:
                return MatchDecision(min(by_reference, key=_priority), MatchRule.REFERENCE)
            return MatchDecision(None, None)

        if self.amount_fallback:
            by_amount = [b for b in candidates if b.balance == entry.amount]
            if by_amount:
                if len(by_amount) > 1:
                    logger.info(
                        "amount_match_tie_broken",
                        extra={
                            "amount": str(entry.amount),
                            "candidate_count": len(by_amount),
                        },
                    )
                return MatchDecision(min(by_amount, key=_priority), MatchRule.AMOUNT)

        return MatchDecision(None, None)

    @staticmethod
    def allocate(amount: Decimal, balance: Decimal) -> Allocation:
        """
        Split ``amount`` between a bill with ``balance`` and a residual.

        amount == balance -> FULL, amount < balance -> PARTIAL,
        amount > balance -> OVERPAID with residual = amount - balance.
        """
        if amount == balance:
            return Allocation(applied=amount, residual=_ZERO, outcome=MatchOutcome.FULL)
        if amount < balance:
            return Allocation(applied=amount, residual=_ZERO, outcome=MatchOutcome.PARTIAL)
        return Allocation(
            applied=balance,
            residual=amount - balance,
            outcome=MatchOutcome.OVERPAID,
        )

"""
Bank statement reconciliation domain types.

Pure frozen dataclasses shared by statement ingestion (producer), the
matching engine (pure) and ReconciliationService (imperative shell).

Architecture: estate_engines -- pure domain, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol
from uuid import UUID


# =============================================================================
# Input types
# =============================================================================


@dataclass(frozen=True)
class BankStatementEntry:
    """One validated credit line from a bank statement."""

    transaction_date: date
    description: str
    reference_number: str | None
    amount: Decimal


@dataclass(frozen=True)
class StatementMetadata:
    """Header information supplied with an upload."""

    bank_name: str
    account_number: str
    statement_date: date
    file_name: str | None = None


class BillCandidate(Protocol):
    """What matching needs to know about an open bill."""

    bill_id: UUID
    invoice_number: str
    resident_id: UUID
    due_date: date

    @property
    def balance(self) -> Decimal: ...


# =============================================================================
# Engine output
# =============================================================================


class MatchRule(str, Enum):
    """How a statement line found its bill."""

    REFERENCE = "reference"
    AMOUNT = "amount"


class MatchOutcome(str, Enum):
    """Result of reconciling one statement line."""

    FULL = "full"  # amount == balance; bill paid
    PARTIAL = "partial"  # amount < balance; bill partially paid
    OVERPAID = "overpaid"  # amount > balance; balance applied, residual recorded
    UNMATCHED = "unmatched"  # no open bill found
    FAILED = "failed"  # applying the payment raised


@dataclass(frozen=True)
class Allocation:
    """How much of a statement amount goes to the bill, and what is left."""

    applied: Decimal
    residual: Decimal
    outcome: MatchOutcome


@dataclass(frozen=True)
class MatchDecision:
    """The bill chosen for one statement line, if any."""

    bill: BillCandidate | None
    rule: MatchRule | None

    @property
    def is_match(self) -> bool:
        return self.bill is not None


# =============================================================================
# Summary (service output)
# =============================================================================


@dataclass(frozen=True)
class ResidualAmount:
    """Money received beyond a bill's balance, held for manual review."""

    line_number: int
    reference_number: str | None
    bill_id: UUID
    invoice_number: str
    resident_id: UUID
    entry_amount: Decimal
    applied_amount: Decimal
    residual_amount: Decimal
    description: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "lineNumber": self.line_number,
            "referenceNumber": self.reference_number,
            "billId": str(self.bill_id),
            "invoiceNumber": self.invoice_number,
            "residentId": str(self.resident_id),
            "entryAmount": str(self.entry_amount),
            "appliedAmount": str(self.applied_amount),
            "residualAmount": str(self.residual_amount),
            "description": self.description,
        }


@dataclass(frozen=True)
class LineResult:
    """Outcome of one statement line."""

    line_number: int
    reference_number: str | None
    amount: Decimal
    outcome: MatchOutcome
    applied_amount: Decimal = Decimal("0.00")
    residual_amount: Decimal = Decimal("0.00")
    bill_id: UUID | None = None
    invoice_number: str | None = None
    match_rule: MatchRule | None = None
    journal_entry_id: UUID | None = None
    error_code: str | None = None
    error_message: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "lineNumber": self.line_number,
            "referenceNumber": self.reference_number,
            "amount": str(self.amount),
            "status": self.outcome.value,
            "appliedAmount": str(self.applied_amount),
            "residualAmount": str(self.residual_amount),
            "billId": str(self.bill_id) if self.bill_id else None,
            "invoiceNumber": self.invoice_number,
            "matchRule": self.match_rule.value if self.match_rule else None,
            "journalEntryId": str(self.journal_entry_id) if self.journal_entry_id else None,
            "errorCode": self.error_code,
            "errorMessage": self.error_message,
        }


@dataclass(frozen=True)
class RejectedRow:
    """A raw statement row that failed validation and was never matched."""

    row_number: int
    raw: dict[str, Any]
    errors: tuple[str, ...]

    def as_dict(self) -> dict[str, Any]:
        return {"rowNumber": self.row_number, "errors": list(self.errors)}


@dataclass(frozen=True)
class ReconciliationSummary:
    """
    Result of reconciling one statement.

    Counting:
        matched           -- FULL lines
        partially_matched -- PARTIAL and OVERPAID lines
        unmatched         -- UNMATCHED and FAILED lines
    Rejected rows never reach matching and are reported separately.
    """

    statement_id: UUID | None
    total_entries: int
    matched: int
    partially_matched: int
    unmatched: int
    total_matched: Decimal
    residual_amounts: tuple[ResidualAmount, ...] = ()
    details: tuple[LineResult, ...] = ()
    failures: tuple[LineResult, ...] = ()
    rejected_rows: tuple[RejectedRow, ...] = field(default_factory=tuple)

    @classmethod
    def from_results(
        cls,
        statement_id: UUID | None,
        results: list[LineResult],
        residuals: list[ResidualAmount],
        rejected: list[RejectedRow] | tuple[RejectedRow, ...] = (),
    ) -> ReconciliationSummary:
        def count(*outcomes: MatchOutcome) -> int:
            return sum(1 for r in results if r.outcome in outcomes)

        return cls(
            statement_id=statement_id,
            total_entries=len(results),
            matched=count(MatchOutcome.FULL),
            partially_matched=count(MatchOutcome.PARTIAL, MatchOutcome.OVERPAID),
            unmatched=count(MatchOutcome.UNMATCHED, MatchOutcome.FAILED),
            total_matched=sum((r.applied_amount for r in results), Decimal("0.00")),
            residual_amounts=tuple(residuals),
            details=tuple(results),
            failures=tuple(r for r in results if r.outcome == MatchOutcome.FAILED),
            rejected_rows=tuple(rejected),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "statementId": str(self.statement_id) if self.statement_id else None,
            "totalEntries": self.total_entries,
            "matched": self.matched,
            "partiallyMatched": self.partially_matched,
            "unmatched": self.unmatched,
            "totalMatched": str(self.total_matched),
            "residualAmounts": [r.as_dict() for r in self.residual_amounts],
            "details": [d.as_dict() for d in self.details],
            "failures": [f.as_dict() for f in self.failures],
            "rejectedRows": [r.as_dict() for r in self.rejected_rows],
        }

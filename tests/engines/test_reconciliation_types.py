"""Tests for reconciliation summary counting and serialization."""

from decimal import Decimal
from uuid import uuid4

from estate_engines.reconciliation_types import (
    LineResult,
    MatchOutcome,
    MatchRule,
    ReconciliationSummary,
    RejectedRow,
    ResidualAmount,
)


def _result(line_number: int, outcome: MatchOutcome, applied: str = "0.00") -> LineResult:
    return LineResult(
        line_number=line_number,
        reference_number=None,
        amount=Decimal("100.00"),
        outcome=outcome,
        applied_amount=Decimal(applied),
    )


class TestReconciliationSummary:

    def test_counts(self):
        results = [
            _result(1, MatchOutcome.FULL, "100.00"),
            _result(2, MatchOutcome.PARTIAL, "40.00"),
            _result(3, MatchOutcome.OVERPAID, "60.00"),
            _result(4, MatchOutcome.UNMATCHED),
            _result(5, MatchOutcome.FAILED),
        ]
        summary = ReconciliationSummary.from_results(uuid4(), results, [])

        assert summary.total_entries == 5
        assert summary.matched == 1
        assert summary.partially_matched == 2
        assert summary.unmatched == 2
        assert summary.total_matched == Decimal("200.00")
        assert [f.line_number for f in summary.failures] == [5]

    def test_counts_sum_to_total(self):
        results = [_result(i, outcome) for i, outcome in enumerate(MatchOutcome, start=1)]
        summary = ReconciliationSummary.from_results(None, results, [])
        assert summary.matched + summary.partially_matched + summary.unmatched == (
            summary.total_entries
        )

    def test_as_dict_keys(self):
        bill_id = uuid4()
        residual = ResidualAmount(
            line_number=1,
            reference_number="INV-2024-0001",
            bill_id=bill_id,
            invoice_number="INV-2024-0001",
            resident_id=uuid4(),
            entry_amount=Decimal("60000.00"),
            applied_amount=Decimal("50000.00"),
            residual_amount=Decimal("10000.00"),
            description="rent",
        )
        result = LineResult(
            line_number=1,
            reference_number="INV-2024-0001",
            amount=Decimal("60000.00"),
            outcome=MatchOutcome.OVERPAID,
            applied_amount=Decimal("50000.00"),
            residual_amount=Decimal("10000.00"),
            bill_id=bill_id,
            invoice_number="INV-2024-0001",
            match_rule=MatchRule.REFERENCE,
        )
        rejected = RejectedRow(row_number=2, raw={"amount": ""}, errors=("amount is required",))

        data = ReconciliationSummary.from_results(
            None, [result], [residual], [rejected]
        ).as_dict()

        assert data["partiallyMatched"] == 1
        assert data["totalMatched"] == "50000.00"
        assert data["residualAmounts"][0]["residualAmount"] == "10000.00"
        assert data["details"][0]["status"] == "overpaid"
        assert data["details"][0]["matchRule"] == "reference"
        assert data["rejectedRows"] == [{"rowNumber": 2, "errors": ["amount is required"]}]
        assert data["statementId"] is None

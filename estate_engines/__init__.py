"""
Estate engines: pure calculations with no I/O.

- withholding: withholding tax and net vendor payment
- reconciliation: statement line to bill matching and allocation
"""

from estate_engines.reconciliation import ReconciliationMatcher, normalize_reference
from estate_engines.reconciliation_types import (
    Allocation,
    BankStatementEntry,
    LineResult,
    MatchDecision,
    MatchOutcome,
    MatchRule,
    ReconciliationSummary,
    RejectedRow,
    ResidualAmount,
    StatementMetadata,
)
from estate_engines.withholding import WithholdingCalculator, WithholdingResult

__all__ = [
    "ReconciliationMatcher",
    "normalize_reference",
    "Allocation",
    "BankStatementEntry",
    "LineResult",
    "MatchDecision",
    "MatchOutcome",
    "MatchRule",
    "ReconciliationSummary",
    "RejectedRow",
    "ResidualAmount",
    "StatementMetadata",
    "WithholdingCalculator",
    "WithholdingResult",
]

"""
Service layer: owns transaction boundaries and the ledger write lock, and
composes kernel services and pure engines into the estate's operations.
"""

from estate_services.chart_migration import CHART_MARKER, ChartMigration
from estate_services.general_ledger import GeneralLedgerService
from estate_services.reconciliation_service import ReconciliationService
from estate_services.subsidiary_ledger import (
    SUBLEDGER_REFERENCE_TYPES,
    PaymentSource,
    SubsidiaryLedger,
)

__all__ = [
    "CHART_MARKER",
    "ChartMigration",
    "GeneralLedgerService",
    "PaymentSource",
    "SUBLEDGER_REFERENCE_TYPES",
    "ReconciliationService",
    "SubsidiaryLedger",
]

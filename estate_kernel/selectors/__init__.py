"""Read-only selectors."""

from estate_kernel.selectors.journal_selector import JournalEntryDTO, JournalLineDTO, JournalSelector
from estate_kernel.selectors.ledger_selector import (
    AccountBalance,
    BalanceSheet,
    IncomeStatement,
    LedgerSelector,
    TrialBalance,
)
from estate_kernel.selectors.subledger_selector import OpenBillView, SubledgerSelector
from estate_kernel.selectors.template_selector import TemplateSelector

__all__ = [
    "JournalEntryDTO",
    "JournalLineDTO",
    "JournalSelector",
    "AccountBalance",
    "BalanceSheet",
    "IncomeStatement",
    "LedgerSelector",
    "TrialBalance",
    "OpenBillView",
    "SubledgerSelector",
    "TemplateSelector",
]

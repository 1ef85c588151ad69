"""ORM models for the estate ledger."""

from estate_kernel.models.account import (
    Account,
    AccountType,
    NormalBalance,
    normal_balance_for,
)
from estate_kernel.models.bank_statement import (
    BankStatement,
    BankStatementLine,
    StatementLineStatus,
    StatementStatus,
)
from estate_kernel.models.journal import (
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    LineSide,
)
from estate_kernel.models.payables import (
    Expense,
    ExpensePaymentStatus,
    ExpenseStatus,
)
from estate_kernel.models.payment import ApplicationType, PaymentApplication
from estate_kernel.models.receivables import (
    Bill,
    BillPaymentStatus,
    bill_payment_status,
)
from estate_kernel.models.seed_marker import SeedMarker
from estate_kernel.models.template import TransactionTemplate

__all__ = [
    "Account",
    "AccountType",
    "NormalBalance",
    "normal_balance_for",
    "BankStatement",
    "BankStatementLine",
    "StatementLineStatus",
    "StatementStatus",
    "JournalEntry",
    "JournalEntryStatus",
    "JournalLine",
    "LineSide",
    "Expense",
    "ExpensePaymentStatus",
    "ExpenseStatus",
    "ApplicationType",
    "PaymentApplication",
    "Bill",
    "BillPaymentStatus",
    "bill_payment_status",
    "SeedMarker",
    "TransactionTemplate",
]

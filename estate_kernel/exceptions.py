"""
Typed exception hierarchy for the estate ledger.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from EstateLedgerError:

    EstateLedgerError (base)
    |
    +-- ValidationError
    |   +-- DuplicateAccountNumberError
    |   +-- DuplicateInvoiceNumberError
    |
    +-- UnbalancedEntryError
    |
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- EntryNotFoundError
    |   +-- BillNotFoundError
    |   +-- ExpenseNotFoundError
    |   +-- TemplateNotFoundError
    |
    +-- InvalidStateError
    |   +-- EntryNotPostedError
    |   +-- EntryAlreadyVoidError
    |   +-- EntryAlreadyReversedError
    |   +-- SystemAccountError
    |   +-- AccountReferencedError
    |   +-- ExpenseStateError
    |   +-- SubledgerEntryError
    |
    +-- OverpaymentError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                      | When Raised
--------------------------|-------------------------------------------------
VALIDATION_ERROR          | Bad input (negative amount, >2 decimals, ...)
DUPLICATE_ACCOUNT_NUMBER  | Account number already used
DUPLICATE_INVOICE_NUMBER  | Invoice number already used
UNBALANCED_ENTRY          | Sum of debits != sum of credits
ACCOUNT_NOT_FOUND         | Account ID / number does not exist
ENTRY_NOT_FOUND           | Journal entry does not exist
BILL_NOT_FOUND            | Bill does not exist
EXPENSE_NOT_FOUND         | Expense does not exist
TEMPLATE_NOT_FOUND        | No transaction template for a business action
ENTRY_NOT_POSTED          | Void/reverse of an entry that is not posted
ENTRY_ALREADY_VOID        | Second void of the same entry
ENTRY_ALREADY_REVERSED    | Second reversal, or void of a reversed entry
SYSTEM_ACCOUNT            | Delete of a system account
ACCOUNT_REFERENCED        | Delete of an account with journal lines
EXPENSE_STATE             | Expense lifecycle transition not allowed
OVERPAYMENT               | Payment <= 0 or larger than the bill balance
IMMUTABILITY_VIOLATION    | ORM update/delete of a protected record

Every exception stores its context as attributes so that log formatters
and API layers can serialize it without parsing the message.
"""


class EstateLedgerError(Exception):
    """
    Base exception for all estate ledger errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "ESTATE_LEDGER_ERROR"


# Validation


class ValidationError(EstateLedgerError):
    """Input failed boundary validation. Nothing was written."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class DuplicateAccountNumberError(ValidationError):
    """Account number is already used by another account."""

    code: str = "DUPLICATE_ACCOUNT_NUMBER"

    def __init__(self, account_number: str):
        self.account_number = account_number
        super().__init__(
            f"Account number {account_number} already exists",
            field="account_number",
        )


class DuplicateInvoiceNumberError(ValidationError):
    """Invoice number is already used by another bill."""

    code: str = "DUPLICATE_INVOICE_NUMBER"

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(
            f"Invoice number {invoice_number} already exists",
            field="invoice_number",
        )


# Posting


class UnbalancedEntryError(EstateLedgerError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str):
        self.debits = debits
        self.credits = credits
        super().__init__(
            f"Unbalanced entry: debits={debits}, credits={credits}"
        )


# Lookups


class NotFoundError(EstateLedgerError):
    """Referenced record does not exist."""

    code: str = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    """Account not found by ID or number."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref: str):
        self.account_ref = account_ref
        super().__init__(f"Account not found: {account_ref}")


class EntryNotFoundError(NotFoundError):
    """Journal entry not found."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


class BillNotFoundError(NotFoundError):
    """Bill not found."""

    code: str = "BILL_NOT_FOUND"

    def __init__(self, bill_id: str):
        self.bill_id = bill_id
        super().__init__(f"Bill not found: {bill_id}")


class ExpenseNotFoundError(NotFoundError):
    """Expense not found."""

    code: str = "EXPENSE_NOT_FOUND"

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense not found: {expense_id}")


class TemplateNotFoundError(NotFoundError):
    """No active transaction template for a business action."""

    code: str = "TEMPLATE_NOT_FOUND"

    def __init__(self, transaction_type: str):
        self.transaction_type = transaction_type
        super().__init__(
            f"No active transaction template for '{transaction_type}'"
        )


# State transitions


class InvalidStateError(EstateLedgerError):
    """Operation is not allowed in the record's current state."""

    code: str = "INVALID_STATE"


class EntryNotPostedError(InvalidStateError):
    """Only posted entries can be voided or reversed."""

    code: str = "ENTRY_NOT_POSTED"

    def __init__(self, entry_id: str, status: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(
            f"Entry {entry_id} has status {status}, not posted"
        )


class EntryAlreadyVoidError(InvalidStateError):
    """Entry is already void."""

    code: str = "ENTRY_ALREADY_VOID"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Entry {entry_id} is already void")


class EntryAlreadyReversedError(InvalidStateError):
    """Entry has already been reversed."""

    code: str = "ENTRY_ALREADY_REVERSED"

    def __init__(self, entry_id: str, reversal_entry_id: str):
        self.entry_id = entry_id
        self.reversal_entry_id = reversal_entry_id
        super().__init__(
            f"Entry {entry_id} has already been reversed by {reversal_entry_id}"
        )


class SystemAccountError(InvalidStateError):
    """System accounts cannot be deleted."""

    code: str = "SYSTEM_ACCOUNT"

    def __init__(self, account_number: str):
        self.account_number = account_number
        super().__init__(f"Cannot delete system account {account_number}")


class AccountReferencedError(InvalidStateError):
    """Account is referenced (journal lines, templates, expenses) and cannot be deleted."""

    code: str = "ACCOUNT_REFERENCED"

    def __init__(self, account_number: str, reference_count: int, referenced_by: str):
        self.account_number = account_number
        self.reference_count = reference_count
        self.referenced_by = referenced_by
        super().__init__(
            f"Cannot delete account {account_number}: "
            f"referenced by {reference_count} {referenced_by}"
        )


class ExpenseStateError(InvalidStateError):
    """Expense lifecycle transition is not allowed."""

    code: str = "EXPENSE_STATE"

    def __init__(self, expense_id: str, status: str, payment_status: str, action: str):
        self.expense_id = expense_id
        self.status = status
        self.payment_status = payment_status
        self.action = action
        super().__init__(
            f"Cannot {action} expense {expense_id}: "
            f"status={status}, payment_status={payment_status}"
        )


class SubledgerEntryError(InvalidStateError):
    """Bill, payment and expense postings only change through SubsidiaryLedger."""

    code: str = "SUBLEDGER_ENTRY"

    def __init__(self, reference_type: str, action: str, entry_id: str | None = None):
        self.reference_type = reference_type
        self.action = action
        self.entry_id = entry_id
        target = f"entry {entry_id}" if entry_id else "an entry"
        super().__init__(
            f"Cannot {action} {target} of type {reference_type!r} through the general ledger"
        )


# Settlement


class OverpaymentError(EstateLedgerError):
    """Payment amount is not positive or exceeds the outstanding balance."""

    code: str = "OVERPAYMENT"

    def __init__(self, bill_id: str, amount: str, balance: str):
        self.bill_id = bill_id
        self.amount = amount
        self.balance = balance
        super().__init__(
            f"Cannot apply {amount} to bill {bill_id}: outstanding balance is {balance}"
        )


# Immutability


class ImmutabilityViolationError(EstateLedgerError):
    """Attempted to modify or delete a protected record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )

"""
Subsidiary Ledger (``estate_services.subsidiary_ledger``).

Responsibility
--------------
Resident bills (accounts receivable) and vendor expenses (accounts
payable): raising bills, applying payments, the expense approval
lifecycle, and paying expenses net of withholding tax. Every monetary
effect is posted to the general ledger through ``LedgerPoster``.

Architecture position
---------------------
**Services layer**. Sole writer of bill and expense settlement fields and
the only caller of ``LedgerPoster`` for AR/AP postings.
``ReconciliationService`` drives it with ``auto_commit=False``.

Invariants enforced
-------------------
* Bill balance and payment status are derived from ``amount`` and
  ``total_paid``; a caller never supplies them.
* ``0 < amount_applied <= balance`` for every payment application.
* Expense WHT and net payment come from ``WithholdingCalculator``.
* AP payment entry: Dr expense (gross) / Cr bank (net) / Cr WHT payable
  (withheld), which balances exactly.
* Bill and payment postings use the configured transaction templates;
  account numbers are never hard-coded here.

Failure modes
-------------
* ``ValidationError`` / ``DuplicateInvoiceNumberError`` on bad input.
* ``BillNotFoundError`` / ``ExpenseNotFoundError`` for unknown IDs.
* ``OverpaymentError`` for a non-positive amount or one above the balance.
* ``ExpenseStateError`` for an illegal lifecycle transition.
* ``TemplateNotFoundError`` when a template is missing or inactive.

Audit relevance
---------------
Logs ``bill_created``, ``payment_applied``, ``expense_submitted``,
``expense_approved``, ``expense_rejected``, ``expense_paid`` and
``expense_scheduled`` with amounts and journal entry numbers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from estate_config import EstateConfig, get_active_config
from estate_engines.withholding import WithholdingCalculator, WithholdingResult
from estate_kernel.domain.clock import Clock, SystemClock
from estate_kernel.domain.money import ZERO, to_money, to_positive_money
from estate_kernel.domain.values import LineSpec
from estate_kernel.exceptions import (
    BillNotFoundError,
    DuplicateInvoiceNumberError,
    ExpenseNotFoundError,
    ExpenseStateError,
    OverpaymentError,
    ValidationError,
)
from estate_kernel.logging_config import LogContext, get_logger
from estate_kernel.models.account import AccountType
from estate_kernel.models.payables import Expense, ExpensePaymentStatus, ExpenseStatus
from estate_kernel.models.payment import ApplicationType, PaymentApplication
from estate_kernel.models.receivables import Bill
from estate_kernel.selectors.template_selector import TemplateSelector
from estate_kernel.services.account_registry import AccountRegistry
from estate_kernel.services.ledger_poster import LedgerPoster
from estate_kernel.services.sequence_service import SequenceService
from estate_services._unit_of_work import unit_of_work

logger = get_logger("services.subsidiary_ledger")

# reference_type of the journal entries this service posts
BILL_REFERENCE = "bill"
PAYMENT_REFERENCE = "payment_application"
EXPENSE_PAYMENT_REFERENCE = "expense_payment"
SUBLEDGER_REFERENCE_TYPES = frozenset(
    {BILL_REFERENCE, PAYMENT_REFERENCE, EXPENSE_PAYMENT_REFERENCE}
)


@dataclass(frozen=True)
class PaymentSource:
    """Where a resident payment came from."""

    application_type: ApplicationType = ApplicationType.MANUAL
    payment_date: date | None = None
    bank_name: str | None = None
    account_number: str | None = None
    bank_statement_line_id: UUID | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "application_type", ApplicationType(self.application_type))


def _require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    return value.strip()


class SubsidiaryLedger:
    """
    AR bills and AP expenses.

    Contract
    --------
    * With ``auto_commit=True`` every public write method commits on success
      and rolls back on failure. With ``auto_commit=False`` the caller owns
      the transaction and nothing is committed here.
    * All validation happens before the first write of a method.
    """

    def __init__(
        self,
        session: Session,
        config: EstateConfig | None = None,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._config = config or get_active_config()
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._poster = LedgerPoster(
            session,
            clock=self._clock,
            entry_number_format=self._config.numbering.journal_entry,
        )
        self._registry = AccountRegistry(session)
        self._templates = TemplateSelector(session)
        self._sequences = SequenceService(session)
        self._withholding = WithholdingCalculator()

    # =========================================================================
    # Receivables
    # =========================================================================

    def _load_bill(self, bill_id: UUID) -> Bill:
        bill = self._session.execute(
            select(Bill).where(Bill.id == bill_id).with_for_update()
        ).scalar_one_or_none()
        if bill is None:
            raise BillNotFoundError(str(bill_id))
        return bill

    def _invoice_number_taken(self, invoice_number: str) -> bool:
        return self._session.execute(
            select(Bill.id).where(Bill.invoice_number == invoice_number)
        ).first() is not None

    def _next_invoice_number(self, bill_date: date) -> str:
        year = bill_date.year
        seq = self._sequences.next_value(SequenceService.invoice_sequence(year))
        return self._config.numbering.invoice.format(year=year, seq=seq)

    def create_bill(
        self,
        resident_id: UUID,
        amount: Decimal | str | int,
        due_date: date,
        actor_id: UUID,
        description: str | None = None,
        billing_type: str = "service_charge",
        invoice_number: str | None = None,
        period_start: date | None = None,
        period_end: date | None = None,
        bill_date: date | None = None,
    ) -> Bill:
        """
        Raise a bill and post Dr Accounts Receivable / Cr income.

        The posting uses the template configured for ``billing_type``
        (``service_charge_billing`` for service charges). An invoice number
        ``INV-YYYY-NNNN`` is assigned when none is supplied.
        """
        value = to_positive_money(amount)
        if not isinstance(due_date, date):
            raise ValidationError("due_date must be a date", field="due_date")
        if period_start and period_end and period_end < period_start:
            raise ValidationError(
                "period_end cannot be before period_start", field="period_end"
            )
        try:
            transaction_type = self._config.billing_template_for(billing_type)
        except KeyError as exc:
            raise ValidationError(
                f"Unknown billing type: {billing_type!r}", field="billing_type"
            ) from exc
        if invoice_number is not None:
            invoice_number = _require_text(invoice_number, "invoice_number")
        issued_on = bill_date or self._clock.today()

        with LogContext.bind(actor_id=actor_id):
            with unit_of_work(self._session, "create_bill", self._auto_commit):
                template = self._templates.get_active(transaction_type)
                if invoice_number is None:
                    invoice_number = self._next_invoice_number(issued_on)
                if self._invoice_number_taken(invoice_number):
                    raise DuplicateInvoiceNumberError(invoice_number)

                bill = Bill(
                    id=uuid4(),
                    resident_id=resident_id,
                    invoice_number=invoice_number,
                    description=description,
                    billing_type=billing_type,
                    amount=value,
                    total_paid=ZERO,
                    due_date=due_date,
                    period_start=period_start,
                    period_end=period_end,
                    created_by_id=actor_id,
                )
                entry = self._poster.post(
                    [
                        LineSpec.debit(template.debit_account_id, value),
                        LineSpec.credit(template.credit_account_id, value),
                    ],
                    entry_date=issued_on,
                    description=f"{template.name} {invoice_number}"
                    + (f" - {description}" if description else ""),
                    actor_id=actor_id,
                    reference=invoice_number,
                    reference_type=BILL_REFERENCE,
                    reference_id=bill.id,
                )
                bill.journal_entry_id = entry.id
                self._session.add(bill)
                self._session.flush()

                logger.info(
                    "bill_created",
                    extra={
                        "bill_id": str(bill.id),
                        "invoice_number": invoice_number,
                        "billing_type": billing_type,
                        "amount": str(value),
                        "entry_number": entry.entry_number,
                    },
                )
                return bill

    def record_payment_application(
        self,
        bill_id: UUID,
        amount_applied: Decimal | str | int,
        source: PaymentSource | None = None,
        *,
        actor_id: UUID,
    ) -> PaymentApplication:
        """
        Apply a resident payment to a bill.

        Increments ``total_paid``, records an immutable PaymentApplication
        and posts Dr Bank / Cr Accounts Receivable through the
        ``payment_received`` template.

        Raises:
            OverpaymentError: amount <= 0 or amount > the bill's balance.
        """
        value = to_money(amount_applied, "amount_applied")
        source = source or PaymentSource()

        with LogContext.bind(actor_id=actor_id):
            with unit_of_work(self._session, "record_payment_application", self._auto_commit):
                bill = self._load_bill(bill_id)
                balance = bill.balance
                if value <= ZERO or value > balance:
                    logger.warning(
                        "overpayment_rejected",
                        extra={
                            "bill_id": str(bill.id),
                            "amount": str(value),
                            "balance": str(balance),
                        },
                    )
                    raise OverpaymentError(str(bill.id), str(value), str(balance))

                template = self._templates.get_active(self._config.payment_template)
                payment_date = source.payment_date or self._clock.today()
                application_id = uuid4()
                entry = self._poster.post(
                    [
                        LineSpec.debit(template.debit_account_id, value),
                        LineSpec.credit(template.credit_account_id, value),
                    ],
                    entry_date=payment_date,
                    description=f"Payment received for {bill.invoice_number}",
                    actor_id=actor_id,
                    reference=bill.invoice_number,
                    reference_type=PAYMENT_REFERENCE,
                    reference_id=application_id,
                )
                application = PaymentApplication(
                    id=application_id,
                    bill_id=bill.id,
                    bank_statement_line_id=source.bank_statement_line_id,
                    amount_applied=value,
                    application_type=source.application_type.value,
                    bank_name=source.bank_name,
                    account_number=source.account_number,
                    payment_date=payment_date,
                    applied_by_id=actor_id,
                    applied_at=self._clock.now(),
                    journal_entry_id=entry.id,
                    notes=source.notes,
                    created_by_id=actor_id,
                )
                self._session.add(application)
                bill.total_paid = bill.total_paid + value
                bill.updated_by_id = actor_id
                self._session.flush()

                logger.info(
                    "payment_applied",
                    extra={
                        "bill_id": str(bill.id),
                        "invoice_number": bill.invoice_number,
                        "amount": str(value),
                        "balance_after": str(bill.balance),
                        "payment_status": bill.payment_status.value,
                        "application_type": source.application_type.value,
                        "entry_number": entry.entry_number,
                    },
                )
                return application

    # =========================================================================
    # Payables: approval lifecycle
    # =========================================================================

    def _load_expense(self, expense_id: UUID) -> Expense:
        expense = self._session.execute(
            select(Expense).where(Expense.id == expense_id).with_for_update()
        ).scalar_one_or_none()
        if expense is None:
            raise ExpenseNotFoundError(str(expense_id))
        return expense

    @staticmethod
    def _state_error(expense: Expense, action: str) -> ExpenseStateError:
        return ExpenseStateError(
            str(expense.id), str(expense.status), str(expense.payment_status), action
        )

    def submit_expense(
        self,
        vendor_id: UUID,
        account_id: UUID,
        expense_amount: Decimal | str | int,
        description: str,
        actor_id: UUID,
        service_charge: Decimal | str | int | None = None,
        expense_type: str | None = None,
    ) -> Expense:
        """Record a vendor expense awaiting review."""
        amount = to_positive_money(expense_amount, "expense_amount")
        charge = None
        if service_charge is not None:
            charge = to_money(service_charge, "service_charge")
            if charge < ZERO:
                raise ValidationError(
                    "service_charge cannot be negative", field="service_charge"
                )
        text = _require_text(description, "description")

        with unit_of_work(self._session, "submit_expense", self._auto_commit):
            account = self._registry.get_account(account_id)
            if account.account_type != AccountType.EXPENSE or not account.is_active:
                raise ValidationError(
                    f"Account {account.account_number} is not an active expense account",
                    field="account_id",
                )
            expense = Expense(
                vendor_id=vendor_id,
                account_id=account.id,
                expense_type=expense_type,
                description=text,
                expense_amount=amount,
                service_charge=charge,
                status=ExpenseStatus.PENDING.value,
                payment_status=ExpensePaymentStatus.UNPAID.value,
                submitted_by_id=actor_id,
                created_by_id=actor_id,
            )
            self._session.add(expense)
            self._session.flush()

            logger.info(
                "expense_submitted",
                extra={
                    "expense_id": str(expense.id),
                    "account_number": account.account_number,
                    "expense_amount": str(amount),
                    "service_charge": str(charge) if charge is not None else None,
                },
            )
            return expense

    def approve_expense(self, expense_id: UUID, actor_id: UUID) -> Expense:
        with unit_of_work(self._session, "approve_expense", self._auto_commit):
            expense = self._load_expense(expense_id)
            if expense.status != ExpenseStatus.PENDING:
                raise self._state_error(expense, "approve")
            expense.status = ExpenseStatus.APPROVED.value
            expense.reviewed_by_id = actor_id
            expense.reviewed_at = self._clock.now()
            expense.updated_by_id = actor_id
            self._session.flush()
            logger.info("expense_approved", extra={"expense_id": str(expense.id)})
            return expense

    def reject_expense(self, expense_id: UUID, actor_id: UUID, reason: str) -> Expense:
        text = _require_text(reason, "reason")
        with unit_of_work(self._session, "reject_expense", self._auto_commit):
            expense = self._load_expense(expense_id)
            if expense.status != ExpenseStatus.PENDING:
                raise self._state_error(expense, "reject")
            expense.status = ExpenseStatus.REJECTED.value
            expense.rejection_reason = text
            expense.reviewed_by_id = actor_id
            expense.reviewed_at = self._clock.now()
            expense.updated_by_id = actor_id
            self._session.flush()
            logger.info(
                "expense_rejected",
                extra={"expense_id": str(expense.id), "reason": text},
            )
            return expense

    # =========================================================================
    # Payables: payment
    # =========================================================================

    def _withholding_for(self, expense: Expense, wht_rate: Any) -> WithholdingResult:
        if wht_rate is None:
            wht_rate = (
                expense.wht_rate
                if expense.wht_rate is not None
                else self._config.withholding.default_rate
            )
        return self._withholding.calculate(
            expense.expense_amount, expense.service_charge, wht_rate
        )

    def pay_expense_now(
        self,
        expense_id: UUID,
        bank_account_id: UUID,
        wht_rate: Decimal | str | int | None,
        actor_id: UUID,
        payment_date: date | None = None,
    ) -> Expense:
        """
        Pay an approved expense from a bank account.

        ``wht_rate`` of None uses the rate fixed by ``pay_expense_later`` or
        else the configured default.

        Posts:
            Dr expense account   gross (expense + service charge)
            Cr bank account      net payment
            Cr WHT payable       withheld amount (omitted when zero)
        """
        with LogContext.bind(actor_id=actor_id):
            with unit_of_work(self._session, "pay_expense_now", self._auto_commit):
                expense = self._load_expense(expense_id)
                if expense.status != ExpenseStatus.APPROVED or expense.payment_status not in (
                    ExpensePaymentStatus.UNPAID,
                    ExpensePaymentStatus.APPROVED_FOR_PAYMENT,
                ):
                    raise self._state_error(expense, "pay")

                bank = self._registry.get_account(bank_account_id)
                if bank.account_type != AccountType.ASSET:
                    raise ValidationError(
                        f"Account {bank.account_number} is not an asset account",
                        field="bank_account_id",
                    )
                result = self._withholding_for(expense, wht_rate)
                wht_account = self._registry.get_by_number(
                    self._config.posting_roles.wht_payable
                )
                paid_on = payment_date or self._clock.today()

                lines = [
                    LineSpec.debit(expense.account_id, result.gross_amount, expense.description),
                    LineSpec.credit(bank.id, result.net_payment),
                ]
                if result.wht_amount > ZERO:
                    lines.append(LineSpec.credit(wht_account.id, result.wht_amount, "WHT withheld"))

                entry = self._poster.post(
                    lines,
                    entry_date=paid_on,
                    description=f"Expense payment - {expense.description}"[:500],
                    actor_id=actor_id,
                    reference_type=EXPENSE_PAYMENT_REFERENCE,
                    reference_id=expense.id,
                )

                expense.wht_rate = result.wht_rate
                expense.wht_amount = result.wht_amount
                expense.net_payment = result.net_payment
                expense.payment_status = ExpensePaymentStatus.PAID.value
                expense.paid_date = paid_on
                expense.paid_from_account_id = bank.id
                expense.paid_by_id = actor_id
                expense.payment_journal_entry_id = entry.id
                expense.updated_by_id = actor_id

                self._session.add(
                    PaymentApplication(
                        expense_id=expense.id,
                        amount_applied=result.net_payment,
                        application_type=ApplicationType.MANUAL.value,
                        payment_date=paid_on,
                        applied_by_id=actor_id,
                        applied_at=self._clock.now(),
                        journal_entry_id=entry.id,
                        created_by_id=actor_id,
                    )
                )
                self._session.flush()

                logger.info(
                    "expense_paid",
                    extra={
                        "expense_id": str(expense.id),
                        "gross_amount": str(result.gross_amount),
                        "wht_amount": str(result.wht_amount),
                        "net_payment": str(result.net_payment),
                        "entry_number": entry.entry_number,
                    },
                )
                return expense

    def pay_expense_later(
        self,
        expense_id: UUID,
        wht_rate: Decimal | str | int | None,
        actor_id: UUID,
    ) -> Expense:
        """Fix WHT and net payment and mark the expense approved for payment. No posting."""
        with unit_of_work(self._session, "pay_expense_later", self._auto_commit):
            expense = self._load_expense(expense_id)
            if (
                expense.status != ExpenseStatus.APPROVED
                or expense.payment_status != ExpensePaymentStatus.UNPAID
            ):
                raise self._state_error(expense, "schedule")

            result = self._withholding_for(expense, wht_rate)
            expense.wht_rate = result.wht_rate
            expense.wht_amount = result.wht_amount
            expense.net_payment = result.net_payment
            expense.payment_status = ExpensePaymentStatus.APPROVED_FOR_PAYMENT.value
            expense.updated_by_id = actor_id
            self._session.flush()

            logger.info(
                "expense_scheduled",
                extra={
                    "expense_id": str(expense.id),
                    "wht_amount": str(result.wht_amount),
                    "net_payment": str(result.net_payment),
                },
            )
            return expense

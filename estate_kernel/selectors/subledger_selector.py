"""
Module: estate_kernel.selectors.subledger_selector
Responsibility: Read side of the receivable and payable subledgers: open
    bills, resident outstanding balances, payment history, expenses awaiting
    payment.

Open bills are selected in SQL with ``amount > total_paid``; payment status
is never a stored column to filter on.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, type_coerce

from estate_kernel.db.base import MinorUnits
from estate_kernel.models.payables import Expense, ExpensePaymentStatus, ExpenseStatus
from estate_kernel.models.payment import PaymentApplication
from estate_kernel.models.receivables import Bill
from estate_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class OpenBillView:
    """Snapshot of an open bill as seen by reconciliation matching."""

    bill_id: UUID
    invoice_number: str
    resident_id: UUID
    due_date: date
    amount: Decimal
    total_paid: Decimal

    @property
    def balance(self) -> Decimal:
        return self.amount - self.total_paid


class SubledgerSelector(BaseSelector[Bill]):

    def open_bills(self, resident_id: UUID | None = None) -> list[OpenBillView]:
        """Bills with a positive balance, oldest due date first."""
        stmt = (
            select(Bill)
            .where(Bill.amount > Bill.total_paid)
            .order_by(Bill.due_date, Bill.invoice_number)
        )
        if resident_id is not None:
            stmt = stmt.where(Bill.resident_id == resident_id)
        return [
            OpenBillView(
                bill_id=b.id,
                invoice_number=b.invoice_number,
                resident_id=b.resident_id,
                due_date=b.due_date,
                amount=b.amount,
                total_paid=b.total_paid,
            )
            for b in self.session.execute(stmt).scalars()
        ]

    def resident_outstanding(self, resident_id: UUID) -> Decimal:
        total = self.session.execute(
            select(
                type_coerce(
                    func.coalesce(func.sum(Bill.amount - Bill.total_paid), 0),
                    MinorUnits(),
                )
            ).where(Bill.resident_id == resident_id)
        ).scalar_one()
        return total if total is not None else Decimal("0.00")

    def payments_for_bill(self, bill_id: UUID) -> list[PaymentApplication]:
        return list(
            self.session.execute(
                select(PaymentApplication)
                .where(PaymentApplication.bill_id == bill_id)
                .order_by(PaymentApplication.applied_at)
            ).scalars()
        )

    def expenses_awaiting_payment(self) -> list[Expense]:
        """Approved expenses scheduled with pay-later."""
        return list(
            self.session.execute(
                select(Expense)
                .where(
                    Expense.status == ExpenseStatus.APPROVED.value,
                    Expense.payment_status == ExpensePaymentStatus.APPROVED_FOR_PAYMENT.value,
                )
                .order_by(Expense.created_at)
            ).scalars()
        )

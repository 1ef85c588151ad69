"""
Module: estate_kernel.models.payables
Responsibility: Vendor expenses (accounts payable) with their approval and
    payment state.

Invariants enforced:
    - expense_amount > 0; service_charge, when present, >= 0.
    - wht_amount and net_payment are computed by WithholdingCalculator at
      approval-for-payment time; the columns are never written from input.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from estate_kernel.db.base import TrackedBase, UUIDString


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ExpensePaymentStatus(str, Enum):
    UNPAID = "unpaid"
    APPROVED_FOR_PAYMENT = "approved_for_payment"
    PAID = "paid"


class Expense(TrackedBase):
    """
    A vendor expense awaiting review, scheduling or payment.

    Lifecycle:
        pending -> approved | rejected
        approved: unpaid -> approved_for_payment -> paid
                  unpaid -> paid
    """

    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("expense_amount > 0", name="ck_expense_amount_positive"),
        CheckConstraint(
            "service_charge IS NULL OR service_charge >= 0",
            name="ck_expense_service_charge_non_negative",
        ),
        Index("idx_expense_vendor", "vendor_id"),
        Index("idx_expense_status", "status", "payment_status"),
    )

    vendor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    account_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("accounts.id"), nullable=False
    )
    expense_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    expense_amount: Mapped[Decimal] = mapped_column(nullable=False)
    service_charge: Mapped[Decimal | None] = mapped_column(nullable=True)

    status: Mapped[ExpenseStatus] = mapped_column(
        String(20), nullable=False, default=ExpenseStatus.PENDING
    )
    payment_status: Mapped[ExpensePaymentStatus] = mapped_column(
        String(30), nullable=False, default=ExpensePaymentStatus.UNPAID
    )

    # Percentage with two decimals, e.g. 5.00 for 5%
    wht_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    wht_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    net_payment: Mapped[Decimal | None] = mapped_column(nullable=True)

    paid_date: Mapped[date | None] = mapped_column(nullable=True)
    paid_from_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("accounts.id"), nullable=True
    )
    paid_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    payment_journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )

    submitted_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    reviewed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def gross_amount(self) -> Decimal:
        """Expense plus service charge, before withholding."""
        return self.expense_amount + (self.service_charge or Decimal("0"))

    def __repr__(self) -> str:
        return f"<Expense {self.id} {self.status}/{self.payment_status}>"

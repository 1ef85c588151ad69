"""
Module: estate_kernel.models.receivables
Responsibility: Resident bills (accounts receivable).

Invariants enforced:
    - 0 <= total_paid <= amount (ck_bill_paid_range).
    - balance and payment_status are derived from amount and total_paid and
      are never stored.
    - invoice_number is unique.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from estate_kernel.db.base import TrackedBase, UUIDString


class BillPaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


def bill_payment_status(amount: Decimal, total_paid: Decimal) -> BillPaymentStatus:
    """Derive a bill's payment status from its amounts."""
    if total_paid <= 0:
        return BillPaymentStatus.UNPAID
    if total_paid >= amount:
        return BillPaymentStatus.PAID
    return BillPaymentStatus.PARTIAL


class Bill(TrackedBase):
    """
    A charge raised against a resident.

    Guarantees:
        - ``balance`` == amount - total_paid, never negative.
        - ``payment_status`` follows ``bill_payment_status``.
        - total_paid only changes through SubsidiaryLedger.
    """

    __tablename__ = "bills"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_bill_invoice_number"),
        CheckConstraint("amount > 0", name="ck_bill_amount_positive"),
        CheckConstraint(
            "total_paid >= 0 AND total_paid <= amount", name="ck_bill_paid_range"
        ),
        Index("idx_bill_resident", "resident_id"),
        Index("idx_bill_due_date", "due_date"),
    )

    resident_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    billing_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="service_charge"
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    total_paid: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    due_date: Mapped[date] = mapped_column(nullable=False)
    period_start: Mapped[date | None] = mapped_column(nullable=True)
    period_end: Mapped[date | None] = mapped_column(nullable=True)
    journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )

    @property
    def balance(self) -> Decimal:
        return self.amount - self.total_paid

    @property
    def payment_status(self) -> BillPaymentStatus:
        return bill_payment_status(self.amount, self.total_paid)

    @property
    def is_open(self) -> bool:
        return self.balance > 0

    def __repr__(self) -> str:
        return f"<Bill {self.invoice_number} {self.total_paid}/{self.amount}>"

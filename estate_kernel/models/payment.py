"""
Module: estate_kernel.models.payment
Responsibility: Payment applications -- the insert-only record of money
    applied to a bill (receipt) or paid out against an expense.

Invariants enforced:
    - Exactly one of bill_id / expense_id is set (ck_payment_target).
    - amount_applied > 0.
    - Rows are never updated or deleted (db/immutability.py).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from estate_kernel.db.base import TrackedBase, UUIDString


class ApplicationType(str, Enum):
    BANK_STATEMENT = "bank_statement"
    MANUAL = "manual"


class PaymentApplication(TrackedBase):
    """Money applied to one bill or one expense, linked to its journal entry."""

    __tablename__ = "payment_applications"

    __table_args__ = (
        CheckConstraint("amount_applied > 0", name="ck_payment_amount_positive"),
        CheckConstraint(
            "(bill_id IS NOT NULL AND expense_id IS NULL) OR "
            "(bill_id IS NULL AND expense_id IS NOT NULL)",
            name="ck_payment_target",
        ),
        Index("idx_payment_bill", "bill_id"),
        Index("idx_payment_expense", "expense_id"),
    )

    bill_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("bills.id"), nullable=True
    )
    expense_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("expenses.id"), nullable=True
    )
    bank_statement_line_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("bank_statement_lines.id"), nullable=True
    )
    amount_applied: Mapped[Decimal] = mapped_column(nullable=False)
    application_type: Mapped[ApplicationType] = mapped_column(String(20), nullable=False)
    bank_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    account_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_date: Mapped[date] = mapped_column(nullable=False)
    applied_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(nullable=False)
    journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        target = f"bill={self.bill_id}" if self.bill_id else f"expense={self.expense_id}"
        return f"<PaymentApplication {target} {self.amount_applied}>"

"""
Module: estate_kernel.models.bank_statement
Responsibility: Uploaded bank statements and their lines, kept as audit
    evidence of what was received and how each line was reconciled.

The statement itself never posts to the ledger; postings happen through
SubsidiaryLedger when a line is applied to a bill.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from estate_kernel.db.base import TrackedBase, UUIDString


class StatementStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"


class StatementLineStatus(str, Enum):
    UNMATCHED = "unmatched"
    RECONCILED = "reconciled"
    PARTIALLY_MATCHED = "partially_matched"


class BankStatement(TrackedBase):
    """Header for one uploaded statement file."""

    __tablename__ = "bank_statements"

    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bank_name: Mapped[str] = mapped_column(String(100), nullable=False)
    account_number: Mapped[str] = mapped_column(String(50), nullable=False)
    statement_date: Mapped[date] = mapped_column(nullable=False)
    uploaded_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    total_entries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    reconciled_entries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reconciled_amount: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )
    status: Mapped[StatementStatus] = mapped_column(
        String(20), nullable=False, default=StatementStatus.PROCESSING
    )

    lines: Mapped[list["BankStatementLine"]] = relationship(
        back_populates="statement",
        lazy="selectin",
        order_by="BankStatementLine.line_number",
    )

    def __repr__(self) -> str:
        return f"<BankStatement {self.bank_name} {self.statement_date}>"


class BankStatementLine(TrackedBase):
    """One credit line of a statement and its reconciliation outcome."""

    __tablename__ = "bank_statement_lines"

    __table_args__ = (
        UniqueConstraint("statement_id", "line_number", name="uq_statement_line_number"),
        Index("idx_statement_line_reference", "reference_number"),
    )

    statement_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("bank_statements.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_date: Mapped[date] = mapped_column(nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    applied_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    remaining_amount: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )
    status: Mapped[StatementLineStatus] = mapped_column(
        String(20), nullable=False, default=StatementLineStatus.UNMATCHED
    )
    matched_bill_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("bills.id"), nullable=True
    )
    # EstateLedgerError.code when the line failed to apply
    error_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    statement: Mapped["BankStatement"] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return f"<BankStatementLine {self.line_number} {self.amount} {self.status}>"

"""
Module: estate_kernel.models.journal
Responsibility: ORM persistence for journal entries and journal lines, the
    single source of financial truth for the estate.
Architecture position: Kernel > Models. May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - entry_number and seq are unique, assigned from the journal_entry
      sequence counter at posting time.
    - reversal_of_id is unique: an entry is reversed at most once.
    - Lines are never updated or deleted; posted entries only move to void
      (ORM listeners in db/immutability.py).
    - Balance (sum debit == sum credit) is checked by LedgerPoster before the
      rows are written; ``is_balanced`` is a read-side convenience.

Audit relevance:
    Void entries keep their lines so the history stays readable; every
    balance query filters on status == posted.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from estate_kernel.db.base import TrackedBase, UUIDString
from estate_kernel.domain.values import Side

if TYPE_CHECKING:
    from estate_kernel.models.account import Account


class JournalEntryStatus(str, Enum):
    """Lifecycle status of a journal entry.

    draft -> posted -> void. Reversal does not change the original's status;
    it is a new posted entry pointing back through reversal_of_id.
    """

    DRAFT = "draft"
    POSTED = "posted"
    VOID = "void"


LineSide = Side


class JournalEntry(TrackedBase):
    """
    Journal entry header.

    Contract:
        Written only by LedgerPoster. Once posted, the only permitted change is
        the transition to void together with its void metadata.

    Guarantees:
        - total_debit == total_credit for every posted entry.
        - entry_number follows the configured format (``JE-00001``).
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("entry_number", name="uq_journal_entry_number"),
        UniqueConstraint("seq", name="uq_journal_seq"),
        UniqueConstraint("reversal_of_id", name="uq_journal_reversal_of"),
        Index("idx_journal_entry_date", "entry_date"),
        Index("idx_journal_status", "status"),
        Index("idx_journal_reference", "reference_type", "reference_id"),
    )

    entry_number: Mapped[str] = mapped_column(String(30), nullable=False)

    seq: Mapped[int] = mapped_column(nullable=False)

    # Accounting date
    entry_date: Mapped[date] = mapped_column(nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    # External reference, e.g. an invoice or statement reference number
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Business record that produced the entry ("bill", "payment", "expense", ...)
    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    reference_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    status: Mapped[JournalEntryStatus] = mapped_column(
        String(10),
        default=JournalEntryStatus.DRAFT,
        nullable=False,
    )

    total_debit: Mapped[Decimal] = mapped_column(nullable=False)

    total_credit: Mapped[Decimal] = mapped_column(nullable=False)

    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    posted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    voided_at: Mapped[datetime | None] = mapped_column(nullable=True)

    voided_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    void_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        lazy="selectin",
        order_by="JournalLine.line_seq",
    )

    reversal_of: Mapped["JournalEntry | None"] = relationship(
        remote_side="JournalEntry.id",
        foreign_keys=[reversal_of_id],
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_number} status={self.status}>"

    @property
    def is_posted(self) -> bool:
        return self.status == JournalEntryStatus.POSTED

    @property
    def is_void(self) -> bool:
        return self.status == JournalEntryStatus.VOID

    @property
    def is_reversal(self) -> bool:
        return self.reversal_of_id is not None

    @property
    def is_balanced(self) -> bool:
        debits = sum((l.amount for l in self.lines if l.side == Side.DEBIT), Decimal("0"))
        credits = sum((l.amount for l in self.lines if l.side == Side.CREDIT), Decimal("0"))
        return debits == credits


class JournalLine(TrackedBase):
    """
    Single debit or credit line of a journal entry.

    Contract:
        amount is strictly positive; the sign lives in ``side``.
        Rows are insert-only.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_journal_line_amount_positive"),
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    side: Mapped[LineSide] = mapped_column(String(6), nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    line_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    account: Mapped["Account"] = relationship(back_populates="journal_lines")

    def __repr__(self) -> str:
        return f"<JournalLine {self.side} {self.amount}>"

    @property
    def is_debit(self) -> bool:
        return self.side == LineSide.DEBIT

    @property
    def signed_amount(self) -> Decimal:
        """Positive for debits, negative for credits."""
        return self.amount if self.is_debit else -self.amount

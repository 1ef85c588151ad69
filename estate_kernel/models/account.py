"""
Module: estate_kernel.models.account
Responsibility: ORM persistence for the estate chart of accounts.
Architecture position: Kernel > Models. May import from db/base.py only.

Invariants enforced:
    - account_number is unique (uq_account_number).
    - normal_balance is a pure function of account_type
      (``normal_balance_for``); AccountRegistry never stores any other value.
    - System accounts are flagged so that deletion can be refused.

Audit relevance:
    Account rows are the anchor of every JournalLine; an account with lines
    is never deleted (see services/account_registry.py).
"""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from estate_kernel.db.base import TrackedBase

if TYPE_CHECKING:
    from estate_kernel.models.journal import JournalLine


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class NormalBalance(str, Enum):
    """Side on which an account's balance normally sits."""

    DEBIT = "debit"
    CREDIT = "credit"


_DEBIT_NORMAL_TYPES = frozenset({AccountType.ASSET, AccountType.EXPENSE})


def normal_balance_for(account_type: AccountType | str) -> NormalBalance:
    """Debit for asset and expense accounts, credit for everything else."""
    if AccountType(account_type) in _DEBIT_NORMAL_TYPES:
        return NormalBalance.DEBIT
    return NormalBalance.CREDIT


class Account(TrackedBase):
    """
    Chart of accounts entry.

    Contract:
        account_number is unique. normal_balance always equals
        ``normal_balance_for(account_type)``.

    Non-goals:
        - Deletion rules live in AccountRegistry, not here.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("account_number", name="uq_account_number"),
        Index("idx_account_type", "account_type"),
        Index("idx_account_active", "is_active"),
    )

    account_number: Mapped[str] = mapped_column(String(20), nullable=False)

    account_name: Mapped[str] = mapped_column(String(255), nullable=False)

    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)

    normal_balance: Mapped[NormalBalance] = mapped_column(String(10), nullable=False)

    # Free-form grouping, e.g. "current_asset", "operating_expense"
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    is_system_account: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    journal_lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="account",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Account {self.account_number}: {self.account_name}>"

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT

"""
Module: estate_kernel.selectors.ledger_selector
Responsibility: Balance aggregation over posted journal lines: account
    balance, trial balance, income statement, balance sheet.
Architecture position: Kernel > Selectors. Read-only.

Invariants enforced:
    - Only lines of entries with status == posted contribute. Void entries
      disappear from every figure; reversals contribute like any other
      posted entry, so original + reversal net to zero.
    - Aggregation happens in SQL on integer minor units, so totals are exact.
    - Trial balance: sum of debit totals == sum of credit totals.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select, type_coerce

from estate_kernel.db.base import MinorUnits
from estate_kernel.exceptions import AccountNotFoundError
from estate_kernel.models.account import Account, AccountType, NormalBalance
from estate_kernel.models.journal import (
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    LineSide,
)
from estate_kernel.selectors.base import BaseSelector

_ZERO = Decimal("0.00")


def _side_sum(side: LineSide, label: str):
    return type_coerce(
        func.coalesce(
            func.sum(case((JournalLine.side == side.value, JournalLine.amount), else_=0)),
            0,
        ),
        MinorUnits(),
    ).label(label)


@dataclass(frozen=True)
class AccountBalance:
    """Debit/credit totals for one account and its balance on its normal side."""

    account_id: UUID
    account_number: str
    account_name: str
    account_type: str
    normal_balance: str
    debit_total: Decimal
    credit_total: Decimal

    @property
    def net_debit(self) -> Decimal:
        return self.debit_total - self.credit_total

    @property
    def balance(self) -> Decimal:
        """Positive when the account sits on its normal side."""
        if self.normal_balance == NormalBalance.DEBIT:
            return self.debit_total - self.credit_total
        return self.credit_total - self.debit_total


@dataclass(frozen=True)
class TrialBalance:
    rows: tuple[AccountBalance, ...]
    total_debits: Decimal
    total_credits: Decimal

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


@dataclass(frozen=True)
class StatementSection:
    rows: tuple[AccountBalance, ...] = field(default_factory=tuple)

    @property
    def total(self) -> Decimal:
        return sum((r.balance for r in self.rows), _ZERO)


@dataclass(frozen=True)
class IncomeStatement:
    start_date: date | None
    end_date: date | None
    revenue: StatementSection
    expenses: StatementSection

    @property
    def net_income(self) -> Decimal:
        return self.revenue.total - self.expenses.total


@dataclass(frozen=True)
class BalanceSheet:
    as_of_date: date | None
    assets: StatementSection
    liabilities: StatementSection
    equity: StatementSection
    # Revenue minus expenses to date, not yet closed to retained earnings
    current_earnings: Decimal

    @property
    def total_liabilities_and_equity(self) -> Decimal:
        return self.liabilities.total + self.equity.total + self.current_earnings

    @property
    def is_balanced(self) -> bool:
        return self.assets.total == self.total_liabilities_and_equity


class LedgerSelector(BaseSelector[JournalLine]):
    """Derived balances; nothing here is stored."""

    def _balances(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        account_types: tuple[AccountType, ...] | None = None,
        account_id: UUID | None = None,
    ) -> list[AccountBalance]:
        query = (
            select(
                Account.id,
                Account.account_number,
                Account.account_name,
                Account.account_type,
                Account.normal_balance,
                _side_sum(LineSide.DEBIT, "debit_total"),
                _side_sum(LineSide.CREDIT, "credit_total"),
            )
            .join(JournalLine, JournalLine.account_id == Account.id)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(JournalEntry.status == JournalEntryStatus.POSTED.value)
            .group_by(
                Account.id,
                Account.account_number,
                Account.account_name,
                Account.account_type,
                Account.normal_balance,
            )
            .order_by(Account.account_number)
        )
        if start_date is not None:
            query = query.where(JournalEntry.entry_date >= start_date)
        if end_date is not None:
            query = query.where(JournalEntry.entry_date <= end_date)
        if account_types is not None:
            query = query.where(Account.account_type.in_([t.value for t in account_types]))
        if account_id is not None:
            query = query.where(Account.id == account_id)

        return [
            AccountBalance(
                account_id=row.id,
                account_number=row.account_number,
                account_name=row.account_name,
                account_type=row.account_type,
                normal_balance=row.normal_balance,
                debit_total=row.debit_total if row.debit_total is not None else _ZERO,
                credit_total=row.credit_total if row.credit_total is not None else _ZERO,
            )
            for row in self.session.execute(query).all()
        ]

    def account_balance(self, account_id: UUID, as_of_date: date | None = None) -> AccountBalance:
        """
        Balance of one account. An account with no posted lines gets zero totals.
        """
        rows = self._balances(end_date=as_of_date, account_id=account_id)
        if rows:
            return rows[0]
        account = self.session.get(Account, account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return AccountBalance(
            account_id=account.id,
            account_number=account.account_number,
            account_name=account.account_name,
            account_type=account.account_type,
            normal_balance=account.normal_balance,
            debit_total=_ZERO,
            credit_total=_ZERO,
        )

    def trial_balance(self, as_of_date: date | None = None) -> TrialBalance:
        rows = tuple(self._balances(end_date=as_of_date))
        return TrialBalance(
            rows=rows,
            total_debits=sum((r.debit_total for r in rows), _ZERO),
            total_credits=sum((r.credit_total for r in rows), _ZERO),
        )

    def income_statement(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> IncomeStatement:
        rows = self._balances(
            start_date=start_date,
            end_date=end_date,
            account_types=(AccountType.REVENUE, AccountType.EXPENSE),
        )
        return IncomeStatement(
            start_date=start_date,
            end_date=end_date,
            revenue=StatementSection(
                tuple(r for r in rows if r.account_type == AccountType.REVENUE)
            ),
            expenses=StatementSection(
                tuple(r for r in rows if r.account_type == AccountType.EXPENSE)
            ),
        )

    def balance_sheet(self, as_of_date: date | None = None) -> BalanceSheet:
        rows = self._balances(end_date=as_of_date)

        def section(account_type: AccountType) -> StatementSection:
            return StatementSection(tuple(r for r in rows if r.account_type == account_type))

        revenue = section(AccountType.REVENUE).total
        expenses = section(AccountType.EXPENSE).total
        return BalanceSheet(
            as_of_date=as_of_date,
            assets=section(AccountType.ASSET),
            liabilities=section(AccountType.LIABILITY),
            equity=section(AccountType.EQUITY),
            current_earnings=revenue - expenses,
        )

    def total_debits_credits(self) -> tuple[Decimal, Decimal]:
        """Grand totals over all posted lines."""
        row = self.session.execute(
            select(
                _side_sum(LineSide.DEBIT, "debit_total"),
                _side_sum(LineSide.CREDIT, "credit_total"),
            )
            .select_from(JournalLine)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(JournalEntry.status == JournalEntryStatus.POSTED.value)
        ).one()
        return (
            row.debit_total if row.debit_total is not None else _ZERO,
            row.credit_total if row.credit_total is not None else _ZERO,
        )

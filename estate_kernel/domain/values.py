"""
Values -- frozen inputs accepted by the ledger poster.

Callers describe a posting as a sequence of ``LineSpec``; the poster
validates them against the chart of accounts and writes the rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID

from estate_kernel.domain.money import to_positive_money


class Side(str, Enum):
    """Side of a journal line."""

    DEBIT = "debit"
    CREDIT = "credit"

    def opposite(self) -> Side:
        return Side.CREDIT if self is Side.DEBIT else Side.DEBIT


@dataclass(frozen=True)
class LineSpec:
    """
    One requested journal line.

    Guarantees:
        - ``amount`` is a two-place Decimal strictly greater than zero.
        - ``side`` is a ``Side`` member (plain strings are coerced).
    """

    account_id: UUID
    side: Side
    amount: Decimal
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "side", Side(self.side))
        object.__setattr__(self, "amount", to_positive_money(self.amount))

    @classmethod
    def debit(cls, account_id: UUID, amount: Decimal, description: str | None = None) -> LineSpec:
        return cls(account_id, Side.DEBIT, amount, description)

    @classmethod
    def credit(cls, account_id: UUID, amount: Decimal, description: str | None = None) -> LineSpec:
        return cls(account_id, Side.CREDIT, amount, description)

"""
Module: estate_kernel.models.template
Responsibility: Transaction templates that map a business action
    ("payment_received", "pay_security", ...) to its debit/credit account
    pair, so subsidiary postings never hard-code account numbers.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from estate_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from estate_kernel.models.account import Account


class TransactionTemplate(TrackedBase):
    """A named Dr/Cr account pair keyed by ``transaction_type``."""

    __tablename__ = "transaction_templates"

    __table_args__ = (
        UniqueConstraint("name", name="uq_template_name"),
        UniqueConstraint("transaction_type", name="uq_template_transaction_type"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    transaction_type: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    debit_account_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("accounts.id"), nullable=False
    )

    credit_account_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("accounts.id"), nullable=False
    )

    is_system_template: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    debit_account: Mapped["Account"] = relationship(foreign_keys=[debit_account_id])

    credit_account: Mapped["Account"] = relationship(foreign_keys=[credit_account_id])

    def __repr__(self) -> str:
        return f"<TransactionTemplate {self.transaction_type}>"

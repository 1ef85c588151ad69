"""
AccountRegistry -- chart of accounts maintenance.

Responsibility:
    Create, update, delete and look up accounts. The normal balance of an
    account is always derived from its type; a value supplied by the caller
    is ignored.

Architecture position:
    Kernel > Services. Flush-only; GeneralLedgerService owns commit.

Invariants enforced:
    - account_number unique (checked before insert and on renumbering).
    - normal_balance == normal_balance_for(account_type), including after a
      type change.
    - System accounts are never deleted; neither is any account referenced by
      a journal line, transaction template or expense.

Failure modes:
    - DuplicateAccountNumberError, ValidationError on bad input.
    - AccountNotFoundError for unknown IDs / numbers.
    - SystemAccountError, AccountReferencedError on delete.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select

from estate_kernel.exceptions import (
    AccountNotFoundError,
    AccountReferencedError,
    DuplicateAccountNumberError,
    SystemAccountError,
    ValidationError,
)
from estate_kernel.logging_config import get_logger
from estate_kernel.models.account import Account, AccountType, normal_balance_for
from estate_kernel.models.journal import JournalLine
from estate_kernel.models.payables import Expense
from estate_kernel.models.template import TransactionTemplate
from estate_kernel.services.base import BaseService

logger = get_logger("services.account_registry")

_UPDATABLE_FIELDS = frozenset({
    "account_number",
    "account_name",
    "account_type",
    "category",
    "description",
    "is_active",
})


def _parse_account_type(value: Any) -> AccountType:
    try:
        return AccountType(value)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid account type: {value!r}", field="account_type"
        ) from exc


def _require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    return value.strip()


class AccountRegistry(BaseService[Account]):
    """
    Chart of accounts CRUD.

    Contract:
        All validation happens before the first mutation, so a rejected call
        leaves the session unchanged.
    """

    def get_account(self, account_id: UUID) -> Account:
        account = self.session.get(Account, account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def get_by_number(self, account_number: str) -> Account:
        account = self.session.execute(
            select(Account).where(Account.account_number == account_number)
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(account_number)
        return account

    def list_accounts(
        self,
        account_type: AccountType | str | None = None,
        active_only: bool = False,
    ) -> list[Account]:
        stmt = select(Account).order_by(Account.account_number)
        if account_type is not None:
            stmt = stmt.where(Account.account_type == _parse_account_type(account_type).value)
        if active_only:
            stmt = stmt.where(Account.is_active.is_(True))
        return list(self.session.execute(stmt).scalars())

    def _number_taken(self, account_number: str, exclude_id: UUID | None = None) -> bool:
        stmt = select(Account.id).where(Account.account_number == account_number)
        if exclude_id is not None:
            stmt = stmt.where(Account.id != exclude_id)
        return self.session.execute(stmt).first() is not None

    def create_account(
        self,
        account_number: str,
        account_name: str,
        account_type: AccountType | str,
        actor_id: UUID,
        category: str | None = None,
        description: str | None = None,
        is_system_account: bool = False,
        is_active: bool = True,
        normal_balance: Any = None,
    ) -> Account:
        """
        Create an account.

        ``normal_balance`` is accepted for interface compatibility and
        ignored; the stored value comes from ``account_type``.
        """
        number = _require_text(account_number, "account_number")
        name = _require_text(account_name, "account_name")
        acct_type = _parse_account_type(account_type)

        if self._number_taken(number):
            raise DuplicateAccountNumberError(number)

        account = Account(
            account_number=number,
            account_name=name,
            account_type=acct_type.value,
            normal_balance=normal_balance_for(acct_type).value,
            category=category,
            description=description,
            is_active=is_active,
            is_system_account=is_system_account,
            created_by_id=actor_id,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_number": number,
                "account_type": acct_type.value,
                "normal_balance": account.normal_balance,
            },
        )
        return account

    def update_account(self, account_id: UUID, actor_id: UUID, **fields: Any) -> Account:
        """
        Update mutable account fields.

        A changed ``account_type`` recomputes ``normal_balance``. A
        ``normal_balance`` key is dropped without effect.
        """
        fields.pop("normal_balance", None)
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Fields cannot be updated: {sorted(unknown)}", field=sorted(unknown)[0]
            )

        account = self.get_account(account_id)

        changes: dict[str, Any] = {}
        if "account_number" in fields:
            number = _require_text(fields["account_number"], "account_number")
            if number != account.account_number and self._number_taken(number, account.id):
                raise DuplicateAccountNumberError(number)
            changes["account_number"] = number
        if "account_name" in fields:
            changes["account_name"] = _require_text(fields["account_name"], "account_name")
        if "account_type" in fields:
            acct_type = _parse_account_type(fields["account_type"])
            changes["account_type"] = acct_type.value
            changes["normal_balance"] = normal_balance_for(acct_type).value
        for key in ("category", "description"):
            if key in fields:
                changes[key] = fields[key]
        if "is_active" in fields:
            changes["is_active"] = bool(fields["is_active"])

        for key, value in changes.items():
            setattr(account, key, value)
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "account_updated",
            extra={"account_id": str(account.id), "fields": sorted(changes)},
        )
        return account

    def _reference_counts(self, account_id: UUID) -> list[tuple[str, int]]:
        line_count = self.session.execute(
            select(func.count(JournalLine.id)).where(JournalLine.account_id == account_id)
        ).scalar_one()
        template_count = self.session.execute(
            select(func.count(TransactionTemplate.id)).where(
                or_(
                    TransactionTemplate.debit_account_id == account_id,
                    TransactionTemplate.credit_account_id == account_id,
                )
            )
        ).scalar_one()
        expense_count = self.session.execute(
            select(func.count(Expense.id)).where(
                or_(
                    Expense.account_id == account_id,
                    Expense.paid_from_account_id == account_id,
                )
            )
        ).scalar_one()
        return [
            ("journal line(s)", line_count),
            ("transaction template(s)", template_count),
            ("expense(s)", expense_count),
        ]

    def delete_account(self, account_id: UUID) -> None:
        """
        Delete an account.

        Raises:
            SystemAccountError: always, for system accounts.
            AccountReferencedError: when anything references the account.
        """
        account = self.get_account(account_id)

        if account.is_system_account:
            logger.warning(
                "account_delete_rejected",
                extra={"account_number": account.account_number, "reason": "system_account"},
            )
            raise SystemAccountError(account.account_number)

        for referenced_by, count in self._reference_counts(account.id):
            if count:
                logger.warning(
                    "account_delete_rejected",
                    extra={
                        "account_number": account.account_number,
                        "reason": "referenced",
                        "referenced_by": referenced_by,
                        "reference_count": count,
                    },
                )
                raise AccountReferencedError(account.account_number, count, referenced_by)

        self.session.delete(account)
        self.session.flush()
        logger.info(
            "account_deleted",
            extra={"account_id": str(account_id), "account_number": account.account_number},
        )

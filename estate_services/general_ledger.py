"""
General Ledger Service (``estate_services.general_ledger``).

Responsibility
--------------
Public entry point for chart-of-accounts maintenance and manual journal
work: create / update / delete accounts, post balanced entries (free-form
or from a transaction template), void and reverse.

Architecture position
---------------------
**Services layer**. Composes the flush-only kernel services
``AccountRegistry`` and ``LedgerPoster`` and owns their transaction.

Invariants enforced
-------------------
* Each public write method owns the transaction boundary (commit on
  success, rollback on any exception) unless constructed with
  ``auto_commit=False``.
* Every post, void and reverse runs under ``ledger_write_lock``.

Usage::

    service = GeneralLedgerService(session, config=get_active_config())
    entry = service.post_entry(
        lines=[
            LineSpec.debit(bank.id, Decimal("50000.00")),
            LineSpec.credit(fund.id, Decimal("50000.00")),
        ],
        entry_date=date(2024, 3, 1),
        description="Service charge collection",
        actor_id=actor_id,
    )
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from estate_config import EstateConfig, get_active_config
from estate_kernel.domain.clock import Clock, SystemClock
from estate_kernel.domain.money import to_positive_money
from estate_kernel.domain.values import LineSpec
from estate_kernel.exceptions import SubledgerEntryError
from estate_kernel.logging_config import LogContext, get_logger
from estate_kernel.models.account import Account, AccountType
from estate_kernel.models.journal import JournalEntry
from estate_kernel.selectors.template_selector import TemplateSelector
from estate_kernel.services.account_registry import AccountRegistry
from estate_kernel.services.ledger_poster import LedgerPoster
from estate_services._unit_of_work import unit_of_work
from estate_services.subsidiary_ledger import SUBLEDGER_REFERENCE_TYPES

logger = get_logger("services.general_ledger")


class GeneralLedgerService:
    """
    Chart of accounts and journal operations with transaction ownership.

    Non-goals
    ---------
    * Does NOT touch bills or expenses; see ``SubsidiaryLedger``. Entries
      posted for bills, payment applications and expense payments cannot be
      posted, voided or reversed here, so the sub-ledger and the GL stay
      in step.
    """

    def __init__(
        self,
        session: Session,
        config: EstateConfig | None = None,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._config = config or get_active_config()
        self._registry = AccountRegistry(session)
        self._poster = LedgerPoster(
            session,
            clock=self._clock,
            entry_number_format=self._config.numbering.journal_entry,
        )
        # Templates reserved for SubsidiaryLedger postings
        self._subledger_templates = frozenset(
            [*self._config.billing_templates.values(), self._config.payment_template]
        )
        self._templates = TemplateSelector(session)

    # =========================================================================
    # Chart of accounts
    # =========================================================================

    def create_account(
        self,
        account_number: str,
        account_name: str,
        account_type: AccountType | str,
        actor_id: UUID,
        **options: Any,
    ) -> Account:
        with unit_of_work(self._session, "create_account", self._auto_commit):
            return self._registry.create_account(
                account_number, account_name, account_type, actor_id, **options
            )

    def update_account(self, account_id: UUID, actor_id: UUID, **fields: Any) -> Account:
        with unit_of_work(self._session, "update_account", self._auto_commit):
            return self._registry.update_account(account_id, actor_id, **fields)

    def delete_account(self, account_id: UUID) -> None:
        with unit_of_work(self._session, "delete_account", self._auto_commit):
            self._registry.delete_account(account_id)

    def get_account(self, account_id: UUID) -> Account:
        return self._registry.get_account(account_id)

    def get_account_by_number(self, account_number: str) -> Account:
        return self._registry.get_by_number(account_number)

    def list_accounts(
        self,
        account_type: AccountType | str | None = None,
        active_only: bool = False,
    ) -> list[Account]:
        return self._registry.list_accounts(account_type, active_only)

    # =========================================================================
    # Journal entries
    # =========================================================================

    def post_entry(
        self,
        lines: Sequence[LineSpec | dict[str, Any]],
        entry_date: date,
        description: str,
        actor_id: UUID,
        reference: str | None = None,
        reference_type: str | None = None,
        reference_id: UUID | None = None,
    ) -> JournalEntry:
        """Post a manual journal entry."""
        if reference_type in SUBLEDGER_REFERENCE_TYPES:
            raise SubledgerEntryError(reference_type, "post")
        with LogContext.bind(actor_id=actor_id):
            with unit_of_work(self._session, "post_entry", self._auto_commit):
                return self._poster.post(
                    lines,
                    entry_date=entry_date,
                    description=description,
                    actor_id=actor_id,
                    reference=reference,
                    reference_type=reference_type,
                    reference_id=reference_id,
                )

    def post_from_template(
        self,
        transaction_type: str,
        amount: Decimal | str | int,
        entry_date: date,
        actor_id: UUID,
        description: str | None = None,
        reference: str | None = None,
    ) -> JournalEntry:
        """
        Post a two-line entry using the Dr/Cr pair of an active template.

        Raises:
            TemplateNotFoundError: no active template for ``transaction_type``.
            SubledgerEntryError: the template belongs to bill or payment postings.
            ValidationError: ``amount`` is not a positive two-place amount.
        """
        if transaction_type in self._subledger_templates:
            raise SubledgerEntryError(transaction_type, "post")
        value = to_positive_money(amount)
        with LogContext.bind(actor_id=actor_id):
            with unit_of_work(self._session, "post_from_template", self._auto_commit):
                template = self._templates.get_active(transaction_type)
                entry = self._poster.post(
                    [
                        LineSpec.debit(template.debit_account_id, value),
                        LineSpec.credit(template.credit_account_id, value),
                    ],
                    entry_date=entry_date,
                    description=description or template.name,
                    actor_id=actor_id,
                    reference=reference,
                    reference_type=transaction_type,
                )
                logger.info(
                    "template_entry_posted",
                    extra={
                        "transaction_type": transaction_type,
                        "entry_number": entry.entry_number,
                        "amount": str(value),
                    },
                )
                return entry

    def void_entry(
        self, entry_id: UUID, actor_id: UUID, reason: str | None = None
    ) -> JournalEntry:
        with unit_of_work(self._session, "void_entry", self._auto_commit):
            self._guard_subledger_entry(entry_id, "void")
            return self._poster.void(entry_id, actor_id, reason)

    def reverse_entry(
        self,
        entry_id: UUID,
        actor_id: UUID,
        reason: str | None = None,
        reversal_date: date | None = None,
    ) -> JournalEntry:
        with unit_of_work(self._session, "reverse_entry", self._auto_commit):
            self._guard_subledger_entry(entry_id, "reverse")
            return self._poster.reverse(entry_id, actor_id, reason, reversal_date)

    def _guard_subledger_entry(self, entry_id: UUID, action: str) -> None:
        entry = self._session.get(JournalEntry, entry_id)
        if entry is not None and entry.reference_type in SUBLEDGER_REFERENCE_TYPES:
            logger.warning(
                "subledger_entry_rejected",
                extra={
                    "entry_id": str(entry_id),
                    "reference_type": entry.reference_type,
                    "action": action,
                },
            )
            raise SubledgerEntryError(entry.reference_type, action, str(entry_id))

"""
estate_services.reconciliation_service -- bank statement reconciliation.

Responsibility:
    Records an uploaded bank statement, matches each credit line against
    open resident bills with ``ReconciliationMatcher`` and applies the
    matched amount through ``SubsidiaryLedger``. Lines the matcher cannot
    place, and money beyond a bill's balance, are reported for manual
    review. ``apply_line_manually`` handles that review.

Architecture position:
    Services -- imperative shell around the pure matcher in
    ``estate_engines.reconciliation``. Every ledger write goes through
    SubsidiaryLedger -> LedgerPoster.

Invariants enforced:
    - Entries are processed in input order, each in its own transaction
      under the ledger write lock. A failure on entry N rolls back only
      entry N; entries before it stay committed.
    - A failed entry is still recorded as a statement line carrying the
      error code.
    - Never more than a bill's balance is applied; the excess is a residual.

Failure modes:
    - Per-entry EstateLedgerError / SQLAlchemyError -> reported in
      ``failures``; processing continues.
    - Errors creating or completing the statement header propagate.

Audit relevance:
    Logs ``reconciliation_started``, ``reconciliation_entry_matched``,
    ``reconciliation_entry_unmatched``, ``reconciliation_entry_failed`` and
    ``reconciliation_completed`` under the statement_id log context.

Usage:
    service = ReconciliationService(session, config=config, clock=clock)
    summary = service.upload_statement(metadata, raw_rows, actor_id=user_id)
    summary.as_dict()["partiallyMatched"]
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from estate_config import EstateConfig, get_active_config
from estate_engines.reconciliation import ReconciliationMatcher
from estate_engines.reconciliation_types import (
    BankStatementEntry,
    LineResult,
    MatchOutcome,
    ReconciliationSummary,
    RejectedRow,
    ResidualAmount,
    StatementMetadata,
)
from estate_ingestion.statement_parser import parse_statement_rows
from estate_kernel.db.engine import ledger_write_lock
from estate_kernel.domain.clock import Clock, SystemClock
from estate_kernel.domain.money import ZERO, to_positive_money
from estate_kernel.exceptions import EstateLedgerError, NotFoundError, ValidationError
from estate_kernel.logging_config import LogContext, get_logger
from estate_kernel.models.bank_statement import (
    BankStatement,
    BankStatementLine,
    StatementLineStatus,
    StatementStatus,
)
from estate_kernel.models.payment import ApplicationType, PaymentApplication
from estate_kernel.selectors.subledger_selector import SubledgerSelector
from estate_services.subsidiary_ledger import PaymentSource, SubsidiaryLedger

logger = get_logger("services.reconciliation")


def _line_status(remaining: Decimal) -> StatementLineStatus:
    if remaining == ZERO:
        return StatementLineStatus.RECONCILED
    return StatementLineStatus.PARTIALLY_MATCHED


class ReconciliationService:
    """
    Bank statement upload and matching.

    Contract:
        Owns its transactions: the statement header, every entry and the
        final header update each commit separately.
    """

    def __init__(
        self,
        session: Session,
        config: EstateConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config or get_active_config()
        self._clock = clock or SystemClock()
        self._subledger = SubsidiaryLedger(
            session, config=self._config, clock=self._clock, auto_commit=False
        )
        self._selector = SubledgerSelector(session)
        self._matcher = ReconciliationMatcher(
            amount_fallback=self._config.reconciliation.amount_fallback_enabled
        )

    # =========================================================================
    # Upload
    # =========================================================================

    def upload_statement(
        self,
        metadata: StatementMetadata,
        raw_rows: Iterable[Mapping[str, Any]],
        actor_id: UUID,
    ) -> ReconciliationSummary:
        """Validate raw rows, then reconcile the accepted entries."""
        parsed = parse_statement_rows(raw_rows)
        return self.reconcile(metadata, parsed.entries, actor_id, rejected=parsed.rejected)

    def reconcile(
        self,
        metadata: StatementMetadata,
        entries: Sequence[BankStatementEntry],
        actor_id: UUID,
        rejected: Sequence[RejectedRow] = (),
    ) -> ReconciliationSummary:
        statement_id = self._create_statement(metadata, entries, actor_id).id

        with LogContext.bind(statement_id=statement_id, actor_id=actor_id):
            logger.info(
                "reconciliation_started",
                extra={
                    "bank_name": metadata.bank_name,
                    "entry_count": len(entries),
                    "rejected_count": len(rejected),
                    "amount_fallback": self._matcher.amount_fallback,
                },
            )

            results: list[LineResult] = []
            residuals: list[ResidualAmount] = []
            for line_number, entry in enumerate(entries, start=1):
                result, residual = self._process_entry(
                    statement_id, line_number, entry, metadata, actor_id
                )
                results.append(result)
                if residual is not None:
                    residuals.append(residual)

            summary = ReconciliationSummary.from_results(
                statement_id, results, residuals, rejected
            )
            self._complete_statement(statement_id, summary)

            logger.info(
                "reconciliation_completed",
                extra={
                    "total_entries": summary.total_entries,
                    "matched": summary.matched,
                    "partially_matched": summary.partially_matched,
                    "unmatched": summary.unmatched,
                    "failed": len(summary.failures),
                    "total_matched": str(summary.total_matched),
                },
            )
            return summary

    # =========================================================================
    # Steps
    # =========================================================================

    def _create_statement(
        self,
        metadata: StatementMetadata,
        entries: Sequence[BankStatementEntry],
        actor_id: UUID,
    ) -> BankStatement:
        if not metadata.bank_name or not metadata.account_number:
            raise ValidationError("bank_name and account_number are required", field="metadata")
        with ledger_write_lock():
            try:
                statement = BankStatement(
                    file_name=metadata.file_name,
                    bank_name=metadata.bank_name,
                    account_number=metadata.account_number,
                    statement_date=metadata.statement_date,
                    uploaded_by_id=actor_id,
                    total_entries=len(entries),
                    total_amount=sum((e.amount for e in entries), ZERO),
                    status=StatementStatus.PROCESSING.value,
                    created_by_id=actor_id,
                )
                self._session.add(statement)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise
        return statement

    def _process_entry(
        self,
        statement_id: UUID,
        line_number: int,
        entry: BankStatementEntry,
        metadata: StatementMetadata,
        actor_id: UUID,
    ) -> tuple[LineResult, ResidualAmount | None]:
        with ledger_write_lock():
            try:
                result, residual = self._apply_entry(
                    statement_id, line_number, entry, metadata, actor_id
                )
                self._session.commit()
                return result, residual
            except (EstateLedgerError, SQLAlchemyError) as exc:
                self._session.rollback()
                code = getattr(exc, "code", "DATABASE_ERROR")
                logger.warning(
                    "reconciliation_entry_failed",
                    extra={
                        "line_number": line_number,
                        "reference_number": entry.reference_number,
                        "amount": str(entry.amount),
                        "error_code": code,
                    },
                    exc_info=True,
                )
                self._record_failed_line(statement_id, line_number, entry, code, str(exc), actor_id)
                return (
                    LineResult(
                        line_number=line_number,
                        reference_number=entry.reference_number,
                        amount=entry.amount,
                        outcome=MatchOutcome.FAILED,
                        error_code=code,
                        error_message=str(exc),
                    ),
                    None,
                )

    def _apply_entry(
        self,
        statement_id: UUID,
        line_number: int,
        entry: BankStatementEntry,
        metadata: StatementMetadata,
        actor_id: UUID,
    ) -> tuple[LineResult, ResidualAmount | None]:
        line = BankStatementLine(
            statement_id=statement_id,
            line_number=line_number,
            transaction_date=entry.transaction_date,
            description=entry.description,
            reference_number=entry.reference_number,
            amount=entry.amount,
            applied_amount=ZERO,
            remaining_amount=entry.amount,
            status=StatementLineStatus.UNMATCHED.value,
            created_by_id=actor_id,
        )
        self._session.add(line)
        self._session.flush()

        decision = self._matcher.select_bill(entry, self._selector.open_bills())
        if not decision.is_match:
            logger.info(
                "reconciliation_entry_unmatched",
                extra={
                    "line_number": line_number,
                    "reference_number": entry.reference_number,
                    "amount": str(entry.amount),
                },
            )
            return (
                LineResult(
                    line_number=line_number,
                    reference_number=entry.reference_number,
                    amount=entry.amount,
                    outcome=MatchOutcome.UNMATCHED,
                ),
                None,
            )

        bill = decision.bill
        allocation = self._matcher.allocate(entry.amount, bill.balance)
        application = self._subledger.record_payment_application(
            bill.bill_id,
            allocation.applied,
            PaymentSource(
                application_type=ApplicationType.BANK_STATEMENT,
                payment_date=entry.transaction_date,
                bank_name=metadata.bank_name,
                account_number=metadata.account_number,
                bank_statement_line_id=line.id,
                notes=f"Auto-reconciled from bank statement: {metadata.file_name or metadata.bank_name}",
            ),
            actor_id=actor_id,
        )

        line.applied_amount = allocation.applied
        line.remaining_amount = allocation.residual
        line.status = _line_status(allocation.residual).value
        line.matched_bill_id = bill.bill_id
        line.updated_by_id = actor_id
        self._session.flush()

        logger.info(
            "reconciliation_entry_matched",
            extra={
                "line_number": line_number,
                "invoice_number": bill.invoice_number,
                "match_rule": decision.rule.value,
                "outcome": allocation.outcome.value,
                "applied_amount": str(allocation.applied),
                "residual_amount": str(allocation.residual),
            },
        )

        residual = None
        if allocation.residual > ZERO:
            residual = ResidualAmount(
                line_number=line_number,
                reference_number=entry.reference_number,
                bill_id=bill.bill_id,
                invoice_number=bill.invoice_number,
                resident_id=bill.resident_id,
                entry_amount=entry.amount,
                applied_amount=allocation.applied,
                residual_amount=allocation.residual,
                description=entry.description,
            )
        return (
            LineResult(
                line_number=line_number,
                reference_number=entry.reference_number,
                amount=entry.amount,
                outcome=allocation.outcome,
                applied_amount=allocation.applied,
                residual_amount=allocation.residual,
                bill_id=bill.bill_id,
                invoice_number=bill.invoice_number,
                match_rule=decision.rule,
                journal_entry_id=application.journal_entry_id,
            ),
            residual,
        )

    def _record_failed_line(
        self,
        statement_id: UUID,
        line_number: int,
        entry: BankStatementEntry,
        error_code: str,
        error_message: str,
        actor_id: UUID,
    ) -> None:
        try:
            self._session.add(
                BankStatementLine(
                    statement_id=statement_id,
                    line_number=line_number,
                    transaction_date=entry.transaction_date,
                    description=entry.description,
                    reference_number=entry.reference_number,
                    amount=entry.amount,
                    applied_amount=ZERO,
                    remaining_amount=entry.amount,
                    status=StatementLineStatus.UNMATCHED.value,
                    error_code=error_code,
                    error_message=error_message[:2000],
                    created_by_id=actor_id,
                )
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

    def _complete_statement(self, statement_id: UUID, summary: ReconciliationSummary) -> None:
        with ledger_write_lock():
            try:
                statement = self._session.get(BankStatement, statement_id)
                statement.reconciled_entries = summary.matched + summary.partially_matched
                statement.reconciled_amount = summary.total_matched
                statement.status = StatementStatus.COMPLETED.value
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

    # =========================================================================
    # Manual review
    # =========================================================================

    def apply_line_manually(
        self,
        line_id: UUID,
        bill_id: UUID,
        amount: Decimal | str | int,
        actor_id: UUID,
    ) -> PaymentApplication:
        """
        Apply part or all of a statement line's remaining amount to a bill.

        Raises:
            NotFoundError: unknown statement line.
            ValidationError: amount larger than the line's remaining amount.
            OverpaymentError: amount larger than the bill's balance.
        """
        value = to_positive_money(amount)
        with ledger_write_lock():
            try:
                line = self._session.execute(
                    select(BankStatementLine)
                    .where(BankStatementLine.id == line_id)
                    .with_for_update()
                ).scalar_one_or_none()
                if line is None:
                    raise NotFoundError(f"Bank statement line not found: {line_id}")
                if value > line.remaining_amount:
                    raise ValidationError(
                        f"Cannot apply {value}: only {line.remaining_amount} remains on the line",
                        field="amount",
                    )
                statement = line.statement
                application = self._subledger.record_payment_application(
                    bill_id,
                    value,
                    PaymentSource(
                        application_type=ApplicationType.BANK_STATEMENT,
                        payment_date=line.transaction_date,
                        bank_name=statement.bank_name,
                        account_number=statement.account_number,
                        bank_statement_line_id=line.id,
                        notes=f"Reconciled from bank statement entry: {line.description or ''}".strip(),
                    ),
                    actor_id=actor_id,
                )
                line.applied_amount = line.applied_amount + value
                line.remaining_amount = line.remaining_amount - value
                line.status = _line_status(line.remaining_amount).value
                line.matched_bill_id = bill_id
                line.error_code = None
                line.error_message = None
                line.updated_by_id = actor_id
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

        logger.info(
            "statement_line_applied_manually",
            extra={
                "line_id": str(line_id),
                "bill_id": str(bill_id),
                "amount": str(value),
                "remaining_amount": str(line.remaining_amount),
            },
        )
        return application

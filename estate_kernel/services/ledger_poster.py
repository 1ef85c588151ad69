"""
LedgerPoster -- the single write path for journal entries.

Responsibility:
    Validates requested lines against the chart of accounts, enforces
    debits == credits exactly, assigns the next entry number and writes the
    posted entry. Also voids and reverses posted entries.

Architecture position:
    Kernel > Services. Flush-only. Callers hold ``ledger_write_lock`` and
    own commit (GeneralLedgerService, SubsidiaryLedger).

Invariants enforced:
    - Every posted entry balances to the cent. Amounts are two-place
      Decimals, so no tolerance is applied.
    - At least two lines, with at least one debit and one credit.
    - Every line references an existing, active account.
    - Entry numbers come from the locked ``journal_entry`` counter.
    - Void: posted -> void only; lines are kept and excluded from balances.
    - Reverse: new entry with sides swapped and reversal_of_id set; the
      original is not modified; at most one reversal per entry.

Failure modes:
    - ValidationError, AccountNotFoundError: bad lines.
    - UnbalancedEntryError: debits != credits.
    - EntryNotFoundError, EntryNotPostedError, EntryAlreadyVoidError,
      EntryAlreadyReversedError: illegal void / reverse.

Audit relevance:
    Logs ``journal_entry_posted``, ``journal_entry_voided`` and
    ``journal_entry_reversed`` with entry number and totals.
"""

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from estate_kernel.domain.clock import Clock, SystemClock
from estate_kernel.domain.values import LineSpec, Side
from estate_kernel.exceptions import (
    AccountNotFoundError,
    EntryAlreadyReversedError,
    EntryAlreadyVoidError,
    EntryNotFoundError,
    EntryNotPostedError,
    UnbalancedEntryError,
    ValidationError,
)
from estate_kernel.logging_config import LogContext, get_logger
from estate_kernel.models.account import Account
from estate_kernel.models.journal import JournalEntry, JournalEntryStatus, JournalLine
from estate_kernel.services.base import BaseService
from estate_kernel.services.sequence_service import SequenceService

logger = get_logger("services.ledger_poster")

DEFAULT_ENTRY_NUMBER_FORMAT = "JE-{seq:05d}"


class LedgerPoster(BaseService[JournalEntry]):
    """
    Posts, voids and reverses journal entries.

    Non-goals:
        - Does NOT commit or take the ledger lock.
        - Does NOT know about bills or expenses; callers pass a
          reference_type / reference_id pair instead.
    """

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        entry_number_format: str = DEFAULT_ENTRY_NUMBER_FORMAT,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._entry_number_format = entry_number_format
        self._sequences = SequenceService(session)

    # ------------------------------------------------------------------
    # Post
    # ------------------------------------------------------------------

    def _validate_lines(self, lines: Sequence[LineSpec]) -> tuple[Decimal, Decimal]:
        if len(lines) < 2:
            raise ValidationError(
                "Journal entry must have at least 2 lines", field="lines"
            )
        sides = {line.side for line in lines}
        if sides != {Side.DEBIT, Side.CREDIT}:
            raise ValidationError(
                "Journal entry needs at least one debit and one credit line",
                field="lines",
            )

        account_ids = {line.account_id for line in lines}
        accounts = {
            a.id: a
            for a in self.session.execute(
                select(Account).where(Account.id.in_(account_ids))
            ).scalars()
        }
        for line in lines:
            account = accounts.get(line.account_id)
            if account is None:
                raise AccountNotFoundError(str(line.account_id))
            if not account.is_active:
                raise ValidationError(
                    f"Account {account.account_number} is inactive",
                    field="account_id",
                )

        debits = sum((l.amount for l in lines if l.side == Side.DEBIT), Decimal("0"))
        credits = sum((l.amount for l in lines if l.side == Side.CREDIT), Decimal("0"))
        if debits != credits:
            logger.warning(
                "unbalanced_entry_rejected",
                extra={"debits": str(debits), "credits": str(credits)},
            )
            raise UnbalancedEntryError(str(debits), str(credits))
        return debits, credits

    def post(
        self,
        lines: Sequence[LineSpec],
        entry_date: date,
        description: str,
        actor_id: UUID,
        reference: str | None = None,
        reference_type: str | None = None,
        reference_id: UUID | None = None,
        reversal_of_id: UUID | None = None,
    ) -> JournalEntry:
        """
        Validate and write a posted journal entry.

        Preconditions:
            - Caller holds the ledger write lock and an open transaction.

        Postconditions:
            - Entry and lines flushed with status=posted.
            - total_debit == total_credit.
        """
        if not isinstance(entry_date, date):
            raise ValidationError("entry_date must be a date", field="entry_date")
        if not description or not description.strip():
            raise ValidationError("description is required", field="description")

        lines = [l if isinstance(l, LineSpec) else LineSpec(**l) for l in lines]
        debits, credits = self._validate_lines(lines)

        seq = self._sequences.next_value(SequenceService.JOURNAL_ENTRY)
        journal_lines = [
            JournalLine(
                account_id=line.account_id,
                side=line.side.value,
                amount=line.amount,
                description=line.description,
                line_seq=i,
                created_by_id=actor_id,
            )
            for i, line in enumerate(lines)
        ]
        entry = JournalEntry(
            entry_number=self._entry_number_format.format(seq=seq, date=entry_date),
            seq=seq,
            entry_date=entry_date,
            description=description.strip(),
            reference=reference,
            reference_type=reference_type,
            reference_id=reference_id,
            status=JournalEntryStatus.POSTED.value,
            total_debit=debits,
            total_credit=credits,
            reversal_of_id=reversal_of_id,
            posted_at=self._clock.now(),
            created_by_id=actor_id,
            lines=journal_lines,
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "journal_entry_posted",
            extra={
                "entry_id": str(entry.id),
                "entry_number": entry.entry_number,
                "seq": seq,
                "line_count": len(lines),
                "total_debit": str(debits),
                "total_credit": str(credits),
                "reference_type": reference_type,
            },
        )
        return entry

    # ------------------------------------------------------------------
    # Void / reverse
    # ------------------------------------------------------------------

    def _load_for_update(self, entry_id: UUID) -> JournalEntry:
        entry = self.session.execute(
            select(JournalEntry)
            .where(JournalEntry.id == entry_id)
            .with_for_update()
        ).scalar_one_or_none()
        if entry is None:
            raise EntryNotFoundError(str(entry_id))
        return entry

    def _existing_reversal(self, entry_id: UUID) -> JournalEntry | None:
        return self.session.execute(
            select(JournalEntry).where(JournalEntry.reversal_of_id == entry_id)
        ).scalar_one_or_none()

    def void(self, entry_id: UUID, actor_id: UUID, reason: str | None = None) -> JournalEntry:
        """
        Mark a posted entry void.

        An entry that has already been reversed cannot also be voided;
        doing both would remove its effect twice.
        """
        entry = self._load_for_update(entry_id)
        if entry.status == JournalEntryStatus.VOID:
            raise EntryAlreadyVoidError(str(entry_id))
        if entry.status != JournalEntryStatus.POSTED:
            raise EntryNotPostedError(str(entry_id), str(entry.status))
        reversal = self._existing_reversal(entry.id)
        if reversal is not None:
            raise EntryAlreadyReversedError(str(entry_id), str(reversal.id))

        entry.status = JournalEntryStatus.VOID.value
        entry.voided_at = self._clock.now()
        entry.voided_by_id = actor_id
        entry.void_reason = reason
        entry.updated_by_id = actor_id
        self.session.flush()

        with LogContext.bind(entry_id=entry.id, actor_id=actor_id):
            logger.info(
                "journal_entry_voided",
                extra={"entry_number": entry.entry_number, "reason": reason},
            )
        return entry

    def reverse(
        self,
        entry_id: UUID,
        actor_id: UUID,
        reason: str | None = None,
        reversal_date: date | None = None,
    ) -> JournalEntry:
        """
        Post the mirror image of a posted entry.

        The reversal is dated ``reversal_date`` or today by the clock, copies
        every line with its side swapped, and points back through
        ``reversal_of_id``.
        """
        original = self._load_for_update(entry_id)
        if original.status != JournalEntryStatus.POSTED:
            raise EntryNotPostedError(str(entry_id), str(original.status))
        existing = self._existing_reversal(original.id)
        if existing is not None:
            raise EntryAlreadyReversedError(str(entry_id), str(existing.id))

        mirrored = [
            LineSpec(
                account_id=line.account_id,
                side=Side(line.side).opposite(),
                amount=line.amount,
                description=line.description,
            )
            for line in original.lines
        ]
        description = f"Reversal of {original.entry_number} - {original.description}"
        if reason:
            description = f"{description} ({reason})"

        reversal = self.post(
            mirrored,
            entry_date=reversal_date or self._clock.today(),
            description=description[:500],
            actor_id=actor_id,
            reference=original.entry_number,
            reference_type="reversal",
            reference_id=original.id,
            reversal_of_id=original.id,
        )

        logger.info(
            "journal_entry_reversed",
            extra={
                "original_entry_id": str(original.id),
                "original_entry_number": original.entry_number,
                "reversal_entry_id": str(reversal.id),
                "reversal_entry_number": reversal.entry_number,
            },
        )
        return reversal

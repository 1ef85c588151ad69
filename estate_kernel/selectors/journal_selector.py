"""
Module: estate_kernel.selectors.journal_selector
Responsibility: Read-only views of journal entries and their lines.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from estate_kernel.models.journal import JournalEntry, JournalEntryStatus, LineSide
from estate_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class JournalLineDTO:
    id: UUID
    account_id: UUID
    side: str
    amount: Decimal
    description: str | None
    line_seq: int


@dataclass(frozen=True)
class JournalEntryDTO:
    id: UUID
    entry_number: str
    entry_date: date
    description: str
    reference: str | None
    reference_type: str | None
    reference_id: UUID | None
    status: str
    total_debit: Decimal
    total_credit: Decimal
    reversal_of_id: UUID | None
    posted_at: datetime | None
    voided_at: datetime | None
    void_reason: str | None
    lines: tuple[JournalLineDTO, ...]

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


class JournalSelector(BaseSelector[JournalEntry]):
    """Journal entry lookups returning frozen DTOs."""

    def _to_dto(self, entry: JournalEntry) -> JournalEntryDTO:
        return JournalEntryDTO(
            id=entry.id,
            entry_number=entry.entry_number,
            entry_date=entry.entry_date,
            description=entry.description,
            reference=entry.reference,
            reference_type=entry.reference_type,
            reference_id=entry.reference_id,
            status=str(JournalEntryStatus(entry.status).value),
            total_debit=entry.total_debit,
            total_credit=entry.total_credit,
            reversal_of_id=entry.reversal_of_id,
            posted_at=entry.posted_at,
            voided_at=entry.voided_at,
            void_reason=entry.void_reason,
            lines=tuple(
                JournalLineDTO(
                    id=line.id,
                    account_id=line.account_id,
                    side=LineSide(line.side).value,
                    amount=line.amount,
                    description=line.description,
                    line_seq=line.line_seq,
                )
                for line in entry.lines
            ),
        )

    def get_entry(self, entry_id: UUID) -> JournalEntryDTO | None:
        entry = self.session.get(JournalEntry, entry_id)
        return self._to_dto(entry) if entry is not None else None

    def get_by_number(self, entry_number: str) -> JournalEntryDTO | None:
        entry = self.session.execute(
            select(JournalEntry).where(JournalEntry.entry_number == entry_number)
        ).scalar_one_or_none()
        return self._to_dto(entry) if entry is not None else None

    def list_entries(
        self,
        status: JournalEntryStatus | str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[JournalEntryDTO]:
        """Entries in sequence order, optionally filtered."""
        stmt = select(JournalEntry).order_by(JournalEntry.seq)
        if status is not None:
            stmt = stmt.where(JournalEntry.status == JournalEntryStatus(status).value)
        if start_date is not None:
            stmt = stmt.where(JournalEntry.entry_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(JournalEntry.entry_date <= end_date)
        return [self._to_dto(e) for e in self.session.execute(stmt).scalars()]

    def entries_for_reference(self, reference_type: str, reference_id: UUID) -> list[JournalEntryDTO]:
        stmt = (
            select(JournalEntry)
            .where(
                JournalEntry.reference_type == reference_type,
                JournalEntry.reference_id == reference_id,
            )
            .order_by(JournalEntry.seq)
        )
        return [self._to_dto(e) for e in self.session.execute(stmt).scalars()]

    def reversal_of(self, entry_id: UUID) -> JournalEntryDTO | None:
        """The entry that reverses ``entry_id``, if any."""
        entry = self.session.execute(
            select(JournalEntry).where(JournalEntry.reversal_of_id == entry_id)
        ).scalar_one_or_none()
        return self._to_dto(entry) if entry is not None else None

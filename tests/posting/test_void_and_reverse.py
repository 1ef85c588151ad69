"""
Tests for voiding and reversing journal entries.

A void entry drops out of every balance. A reversal is a new posted entry
with every line's side swapped, so original and reversal net to zero.
An entry can be neutralised only once.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from estate_kernel.domain.values import LineSpec
from estate_kernel.exceptions import (
    EntryAlreadyReversedError,
    EntryAlreadyVoidError,
    EntryNotFoundError,
    EntryNotPostedError,
)
from estate_kernel.models.journal import JournalEntryStatus


@pytest.fixture
def posted_entry(general_ledger, seeded_chart, test_actor_id):
    return general_ledger.post_entry(
        [
            LineSpec.debit(seeded_chart["1010"].id, Decimal("2500.00")),
            LineSpec.credit(seeded_chart["4010"].id, Decimal("2500.00")),
        ],
        entry_date=date(2024, 1, 10),
        description="Hall rental",
        actor_id=test_actor_id,
    )


class TestVoid:

    def test_void_removes_from_balances(
        self, general_ledger, posted_entry, test_actor_id, seeded_chart, ledger_selector
    ):
        voided = general_ledger.void_entry(posted_entry.id, test_actor_id, "Duplicate")

        assert voided.status == JournalEntryStatus.VOID
        assert voided.void_reason == "Duplicate"
        assert voided.voided_by_id == test_actor_id
        assert ledger_selector.account_balance(seeded_chart["1010"].id).balance == Decimal("0.00")
        assert ledger_selector.total_debits_credits() == (Decimal("0.00"), Decimal("0.00"))

    def test_void_twice(self, general_ledger, posted_entry, test_actor_id):
        general_ledger.void_entry(posted_entry.id, test_actor_id)
        with pytest.raises(EntryAlreadyVoidError):
            general_ledger.void_entry(posted_entry.id, test_actor_id)

    def test_void_reversed_entry_blocked(self, general_ledger, posted_entry, test_actor_id):
        general_ledger.reverse_entry(posted_entry.id, test_actor_id)
        with pytest.raises(EntryAlreadyReversedError):
            general_ledger.void_entry(posted_entry.id, test_actor_id)

    def test_void_unknown(self, general_ledger, test_actor_id):
        with pytest.raises(EntryNotFoundError):
            general_ledger.void_entry(uuid4(), test_actor_id)

    def test_void_logged(self, general_ledger, posted_entry, test_actor_id, captured_logs):
        general_ledger.void_entry(posted_entry.id, test_actor_id, "Typo")
        voided = [r for r in captured_logs() if r["message"] == "journal_entry_voided"]
        assert voided[0]["entry_id"] == str(posted_entry.id)
        assert voided[0]["reason"] == "Typo"


class TestReverse:

    def test_reversal_mirrors_lines(
        self, general_ledger, posted_entry, test_actor_id, deterministic_clock
    ):
        reversal = general_ledger.reverse_entry(posted_entry.id, test_actor_id, "Refund")

        assert reversal.status == JournalEntryStatus.POSTED
        assert reversal.reversal_of_id == posted_entry.id
        assert reversal.entry_date == deterministic_clock.today()
        assert reversal.description.startswith(f"Reversal of {posted_entry.entry_number}")
        assert reversal.description.endswith("(Refund)")
        original = [(l.account_id, l.side, l.amount) for l in posted_entry.lines]
        mirrored = [
            (l.account_id, "credit" if l.side == "debit" else "debit", l.amount)
            for l in reversal.lines
        ]
        assert mirrored == original

    def test_original_stays_posted(self, general_ledger, posted_entry, test_actor_id, journal_selector):
        general_ledger.reverse_entry(posted_entry.id, test_actor_id)
        assert journal_selector.get_entry(posted_entry.id).status == "posted"

    def test_nets_to_zero(
        self, general_ledger, posted_entry, test_actor_id, seeded_chart, ledger_selector
    ):
        general_ledger.reverse_entry(posted_entry.id, test_actor_id)

        bank = ledger_selector.account_balance(seeded_chart["1010"].id)
        assert bank.debit_total == Decimal("2500.00")
        assert bank.credit_total == Decimal("2500.00")
        assert bank.balance == Decimal("0.00")

    def test_explicit_reversal_date(self, general_ledger, posted_entry, test_actor_id):
        reversal = general_ledger.reverse_entry(
            posted_entry.id, test_actor_id, reversal_date=date(2024, 2, 1)
        )
        assert reversal.entry_date == date(2024, 2, 1)

    def test_reverse_twice(self, general_ledger, posted_entry, test_actor_id):
        general_ledger.reverse_entry(posted_entry.id, test_actor_id)
        with pytest.raises(EntryAlreadyReversedError):
            general_ledger.reverse_entry(posted_entry.id, test_actor_id)

    def test_reverse_after_reversal_voided(self, general_ledger, posted_entry, test_actor_id):
        reversal = general_ledger.reverse_entry(posted_entry.id, test_actor_id)
        general_ledger.void_entry(reversal.id, test_actor_id)
        with pytest.raises(EntryAlreadyReversedError):
            general_ledger.reverse_entry(posted_entry.id, test_actor_id)

    def test_reverse_void_entry(self, general_ledger, posted_entry, test_actor_id):
        general_ledger.void_entry(posted_entry.id, test_actor_id)
        with pytest.raises(EntryNotPostedError):
            general_ledger.reverse_entry(posted_entry.id, test_actor_id)

    def test_lookup_by_reversal(self, general_ledger, posted_entry, test_actor_id, journal_selector):
        reversal = general_ledger.reverse_entry(posted_entry.id, test_actor_id)
        found = journal_selector.reversal_of(posted_entry.id)
        assert found.id == reversal.id
        assert found.reference == posted_entry.entry_number
        assert [e.id for e in journal_selector.entries_for_reference("reversal", posted_entry.id)] == [
            reversal.id
        ]

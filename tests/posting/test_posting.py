"""
Tests for journal posting.

Every posted entry balances, has at least two lines on active accounts,
and receives the next entry number.
"""

from datetime import date
from decimal import Decimal

import pytest

from estate_kernel.domain.values import LineSpec
from estate_kernel.exceptions import (
    AccountNotFoundError,
    TemplateNotFoundError,
    UnbalancedEntryError,
    ValidationError,
)
from estate_kernel.models.journal import JournalEntryStatus

ENTRY_DATE = date(2024, 1, 15)


def _pair(chart, debit: str, credit: str, amount: str):
    return [
        LineSpec.debit(chart[debit].id, Decimal(amount)),
        LineSpec.credit(chart[credit].id, Decimal(amount)),
    ]


class TestPostEntry:

    def test_posted_entry(self, general_ledger, seeded_chart, test_actor_id, deterministic_clock):
        entry = general_ledger.post_entry(
            _pair(seeded_chart, "1010", "4010", "1500.00"),
            entry_date=ENTRY_DATE,
            description="  Event hall rental  ",
            actor_id=test_actor_id,
            reference="RCPT-7",
        )

        assert entry.status == JournalEntryStatus.POSTED
        assert entry.entry_number == "JE-00001"
        assert entry.description == "Event hall rental"
        assert entry.total_debit == entry.total_credit == Decimal("1500.00")
        assert entry.posted_at == deterministic_clock.now()
        assert [line.line_seq for line in entry.lines] == [0, 1]
        assert entry.is_balanced

    def test_entry_numbers_increase(self, general_ledger, seeded_chart, test_actor_id):
        numbers = [
            general_ledger.post_entry(
                _pair(seeded_chart, "1010", "4010", "1.00"),
                entry_date=ENTRY_DATE,
                description=f"Entry {i}",
                actor_id=test_actor_id,
            ).entry_number
            for i in range(3)
        ]
        assert numbers == ["JE-00001", "JE-00002", "JE-00003"]

    def test_multi_line(self, general_ledger, seeded_chart, test_actor_id):
        entry = general_ledger.post_entry(
            [
                LineSpec.debit(seeded_chart["5010"].id, "1000.00"),
                LineSpec.debit(seeded_chart["5020"].id, "500.00"),
                LineSpec.credit(seeded_chart["1010"].id, "1500.00"),
            ],
            entry_date=ENTRY_DATE,
            description="Security and cleaning",
            actor_id=test_actor_id,
        )
        assert len(entry.lines) == 3

    def test_dict_lines_accepted(self, general_ledger, seeded_chart, test_actor_id):
        entry = general_ledger.post_entry(
            [
                {"account_id": seeded_chart["1010"].id, "side": "debit", "amount": "10"},
                {"account_id": seeded_chart["3010"].id, "side": "credit", "amount": "10"},
            ],
            entry_date=ENTRY_DATE,
            description="Opening balance",
            actor_id=test_actor_id,
        )
        assert entry.total_debit == Decimal("10.00")

    def test_logged(self, general_ledger, seeded_chart, test_actor_id, captured_logs):
        general_ledger.post_entry(
            _pair(seeded_chart, "1010", "4010", "1.00"),
            entry_date=ENTRY_DATE,
            description="Logged",
            actor_id=test_actor_id,
        )
        posted = [r for r in captured_logs() if r["message"] == "journal_entry_posted"]
        assert posted[-1]["entry_number"] == "JE-00001"
        assert posted[-1]["actor_id"] == str(test_actor_id)


class TestRejectedEntries:

    def test_unbalanced(self, general_ledger, seeded_chart, test_actor_id, journal_selector):
        with pytest.raises(UnbalancedEntryError) as exc_info:
            general_ledger.post_entry(
                [
                    LineSpec.debit(seeded_chart["1010"].id, "100.00"),
                    LineSpec.credit(seeded_chart["4010"].id, "90.00"),
                ],
                entry_date=ENTRY_DATE,
                description="Off by ten",
                actor_id=test_actor_id,
            )
        assert exc_info.value.debits == "100.00"
        assert journal_selector.list_entries() == []

    def test_single_line(self, general_ledger, seeded_chart, test_actor_id):
        with pytest.raises(ValidationError, match="at least 2 lines"):
            general_ledger.post_entry(
                [LineSpec.debit(seeded_chart["1010"].id, "100.00")],
                entry_date=ENTRY_DATE,
                description="Lonely",
                actor_id=test_actor_id,
            )

    def test_one_sided(self, general_ledger, seeded_chart, test_actor_id):
        with pytest.raises(ValidationError, match="debit and one credit"):
            general_ledger.post_entry(
                [
                    LineSpec.debit(seeded_chart["1010"].id, "100.00"),
                    LineSpec.debit(seeded_chart["1030"].id, "100.00"),
                ],
                entry_date=ENTRY_DATE,
                description="Debits only",
                actor_id=test_actor_id,
            )

    def test_unknown_account(self, general_ledger, seeded_chart, test_actor_id):
        from uuid import uuid4

        with pytest.raises(AccountNotFoundError):
            general_ledger.post_entry(
                [
                    LineSpec.debit(uuid4(), "100.00"),
                    LineSpec.credit(seeded_chart["4010"].id, "100.00"),
                ],
                entry_date=ENTRY_DATE,
                description="Ghost",
                actor_id=test_actor_id,
            )

    def test_inactive_account(self, general_ledger, seeded_chart, test_actor_id):
        general_ledger.update_account(seeded_chart["4020"].id, test_actor_id, is_active=False)
        with pytest.raises(ValidationError, match="inactive"):
            general_ledger.post_entry(
                _pair(seeded_chart, "1010", "4020", "5.00"),
                entry_date=ENTRY_DATE,
                description="Closed account",
                actor_id=test_actor_id,
            )

    def test_missing_description(self, general_ledger, seeded_chart, test_actor_id):
        with pytest.raises(ValidationError, match="description"):
            general_ledger.post_entry(
                _pair(seeded_chart, "1010", "4010", "5.00"),
                entry_date=ENTRY_DATE,
                description=" ",
                actor_id=test_actor_id,
            )

    def test_rejection_does_not_consume_number(self, general_ledger, seeded_chart, test_actor_id):
        with pytest.raises(UnbalancedEntryError):
            general_ledger.post_entry(
                [
                    LineSpec.debit(seeded_chart["1010"].id, "2.00"),
                    LineSpec.credit(seeded_chart["4010"].id, "1.00"),
                ],
                entry_date=ENTRY_DATE,
                description="Bad",
                actor_id=test_actor_id,
            )
        entry = general_ledger.post_entry(
            _pair(seeded_chart, "1010", "4010", "1.00"),
            entry_date=ENTRY_DATE,
            description="Good",
            actor_id=test_actor_id,
        )
        assert entry.entry_number == "JE-00001"


class TestPostFromTemplate:

    def test_uses_template_accounts(self, general_ledger, seeded_chart, test_actor_id, ledger_selector):
        entry = general_ledger.post_from_template(
            "pay_diesel", "45000.00", ENTRY_DATE, test_actor_id, reference="DSL-01"
        )

        assert entry.reference_type == "pay_diesel"
        assert entry.description == "Pay Diesel/Generator"
        sides = {(line.account_id, line.side) for line in entry.lines}
        assert sides == {
            (seeded_chart["5040"].id, "debit"),
            (seeded_chart["1010"].id, "credit"),
        }
        assert ledger_selector.account_balance(seeded_chart["5040"].id).balance == Decimal("45000.00")

    def test_unknown_template(self, general_ledger, test_actor_id):
        with pytest.raises(TemplateNotFoundError):
            general_ledger.post_from_template("pay_unicorns", "1.00", ENTRY_DATE, test_actor_id)

    def test_non_positive_amount(self, general_ledger, test_actor_id):
        with pytest.raises(ValidationError):
            general_ledger.post_from_template("pay_diesel", "0", ENTRY_DATE, test_actor_id)

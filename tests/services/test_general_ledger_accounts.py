"""
Tests for chart-of-accounts maintenance through GeneralLedgerService.

Normal balance is derived from the account type; system accounts and
accounts with postings cannot be deleted.
"""

from datetime import date
from decimal import Decimal

import pytest

from estate_kernel.domain.values import LineSpec
from estate_kernel.exceptions import (
    AccountNotFoundError,
    AccountReferencedError,
    DuplicateAccountNumberError,
    SystemAccountError,
    ValidationError,
)
from estate_kernel.models.account import AccountType, NormalBalance


class TestCreateAccount:

    @pytest.mark.parametrize(
        "account_type, normal_balance",
        [
            ("asset", NormalBalance.DEBIT),
            ("expense", NormalBalance.DEBIT),
            ("liability", NormalBalance.CREDIT),
            ("equity", NormalBalance.CREDIT),
            ("revenue", NormalBalance.CREDIT),
        ],
    )
    def test_normal_balance_from_type(self, general_ledger, test_actor_id, account_type, normal_balance):
        account = general_ledger.create_account(
            "9100", "New account", account_type, test_actor_id
        )
        assert account.normal_balance == normal_balance

    def test_supplied_normal_balance_ignored(self, general_ledger, test_actor_id):
        account = general_ledger.create_account(
            "9101", "Petty cash", AccountType.ASSET, test_actor_id, normal_balance="credit"
        )
        assert account.normal_balance == NormalBalance.DEBIT

    def test_duplicate_number(self, general_ledger, test_actor_id):
        with pytest.raises(DuplicateAccountNumberError):
            general_ledger.create_account("1010", "Second bank", "asset", test_actor_id)

    def test_invalid_type(self, general_ledger, test_actor_id):
        with pytest.raises(ValidationError, match="Invalid account type"):
            general_ledger.create_account("9102", "Bad", "cash", test_actor_id)

    def test_blank_name(self, general_ledger, test_actor_id):
        with pytest.raises(ValidationError):
            general_ledger.create_account("9103", "   ", "asset", test_actor_id)

    def test_logged(self, general_ledger, test_actor_id, captured_logs):
        general_ledger.create_account("9104", "Logged", "revenue", test_actor_id)
        created = [r for r in captured_logs() if r["message"] == "account_created"]
        assert created[-1]["account_number"] == "9104"
        assert created[-1]["normal_balance"] == "credit"


class TestUpdateAccount:

    def test_type_change_recomputes_normal_balance(self, general_ledger, test_actor_id):
        account = general_ledger.create_account("9200", "Suspense", "asset", test_actor_id)
        updated = general_ledger.update_account(
            account.id, test_actor_id, account_type="liability", account_name="Suspense liability"
        )
        assert updated.normal_balance == NormalBalance.CREDIT
        assert updated.account_name == "Suspense liability"

    def test_number_collision(self, general_ledger, test_actor_id):
        account = general_ledger.create_account("9201", "Spare", "asset", test_actor_id)
        with pytest.raises(DuplicateAccountNumberError):
            general_ledger.update_account(account.id, test_actor_id, account_number="1010")

    def test_unknown_field(self, general_ledger, test_actor_id, seeded_chart):
        with pytest.raises(ValidationError):
            general_ledger.update_account(seeded_chart["5010"].id, test_actor_id, is_system_account=False)

    def test_deactivate(self, general_ledger, test_actor_id, seeded_chart):
        general_ledger.update_account(seeded_chart["5090"].id, test_actor_id, is_active=False)
        active = {a.account_number for a in general_ledger.list_accounts(active_only=True)}
        assert "5090" not in active


class TestDeleteAccount:

    def test_delete_unused(self, general_ledger, test_actor_id):
        account = general_ledger.create_account("9300", "Temporary", "asset", test_actor_id)
        general_ledger.delete_account(account.id)
        with pytest.raises(AccountNotFoundError):
            general_ledger.get_account(account.id)

    def test_system_account_blocked(self, general_ledger, seeded_chart):
        with pytest.raises(SystemAccountError):
            general_ledger.delete_account(seeded_chart["1010"].id)

    def test_account_with_lines_blocked(self, general_ledger, test_actor_id, seeded_chart):
        account = general_ledger.create_account("9301", "Used", "expense", test_actor_id)
        general_ledger.post_entry(
            [
                LineSpec.debit(account.id, Decimal("10.00")),
                LineSpec.credit(seeded_chart["1030"].id, Decimal("10.00")),
            ],
            entry_date=date(2024, 1, 15),
            description="Petty purchase",
            actor_id=test_actor_id,
        )
        with pytest.raises(AccountReferencedError) as exc_info:
            general_ledger.delete_account(account.id)
        assert exc_info.value.referenced_by == "journal line(s)"
        assert general_ledger.get_account(account.id) is not None

    def test_account_used_by_template_blocked(self, general_ledger, seeded_chart):
        # 5010 Security is the debit side of pay_security
        with pytest.raises(AccountReferencedError) as exc_info:
            general_ledger.delete_account(seeded_chart["5010"].id)
        assert exc_info.value.referenced_by == "transaction template(s)"


class TestLookups:

    def test_get_by_number(self, general_ledger, seeded_chart):
        assert general_ledger.get_account_by_number("2300").id == seeded_chart["2300"].id

    def test_unknown_number(self, general_ledger):
        with pytest.raises(AccountNotFoundError):
            general_ledger.get_account_by_number("0000")

    def test_list_by_type(self, general_ledger, seeded_chart):
        expenses = general_ledger.list_accounts(account_type="expense")
        assert [a.account_number for a in expenses] == [
            "5010", "5020", "5030", "5040", "5050", "5060", "5070", "5080", "5090",
        ]

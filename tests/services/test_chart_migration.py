"""
Tests for the chart-of-accounts migration.

The migration creates the configured accounts and templates exactly once;
a second run is a no-op guarded by the seed marker.
"""

from sqlalchemy import func, select

from estate_kernel.models.account import Account, NormalBalance
from estate_kernel.models.seed_marker import SeedMarker
from estate_kernel.models.template import TransactionTemplate
from estate_kernel.selectors.template_selector import TemplateSelector
from estate_services.chart_migration import CHART_MARKER, ChartMigration
from estate_services.general_ledger import GeneralLedgerService


class TestChartMigration:

    def test_first_run_creates_chart(self, session, config, test_actor_id, captured_logs):
        migration = ChartMigration(session, config)
        assert not migration.is_applied()

        assert migration.apply(test_actor_id) is True

        assert session.execute(select(func.count(Account.id))).scalar_one() == 20
        assert session.execute(select(func.count(TransactionTemplate.id))).scalar_one() == 9
        assert migration.is_applied()

        marker = session.execute(
            select(SeedMarker).where(SeedMarker.name == CHART_MARKER)
        ).scalar_one()
        assert marker.config_checksum == config.checksum
        assert marker.applied_by_id == test_actor_id

        applied = [r for r in captured_logs() if r["message"] == "chart_migration_applied"]
        assert applied[0]["accounts_created"] == 20
        assert applied[0]["templates_created"] == 9

    def test_second_run_is_noop(self, session, config, test_actor_id, captured_logs):
        ChartMigration(session, config).apply(test_actor_id)

        assert ChartMigration(session, config).apply(test_actor_id) is False
        assert session.execute(select(func.count(Account.id))).scalar_one() == 20
        assert any(r["message"] == "chart_migration_skipped" for r in captured_logs())

    def test_system_flags_and_normal_balances(self, session, config, seeded_chart):
        assert seeded_chart["1010"].is_system_account
        assert seeded_chart["3010"].is_system_account
        assert not seeded_chart["5010"].is_system_account
        assert seeded_chart["1010"].normal_balance == NormalBalance.DEBIT
        assert seeded_chart["2300"].normal_balance == NormalBalance.CREDIT
        assert seeded_chart["4010"].normal_balance == NormalBalance.CREDIT
        assert seeded_chart["5010"].normal_balance == NormalBalance.DEBIT

    def test_templates_resolve_to_accounts(self, session, seeded_chart):
        template = TemplateSelector(session).get_active("service_charge_billing")
        assert template.debit_account_id == seeded_chart["1020"].id
        assert template.credit_account_id == seeded_chart["2010"].id
        assert template.is_system_template

    def test_existing_accounts_are_kept(self, session, config, test_actor_id):
        existing = GeneralLedgerService(session).create_account(
            "1010", "Operating Bank", "asset", test_actor_id
        )

        assert ChartMigration(session, config).apply(test_actor_id) is True

        accounts = session.execute(
            select(Account).where(Account.account_number == "1010")
        ).scalars().all()
        assert [a.id for a in accounts] == [existing.id]
        assert accounts[0].account_name == "Operating Bank"

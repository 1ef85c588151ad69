"""
Chart-of-accounts migration.

Creates the configured default accounts and transaction templates exactly
once per database. The run is guarded by a persisted ``SeedMarker`` row
written in the same transaction as the data, so a second run (or a run
racing another process) is a no-op.

Accounts or templates that already exist (matched by account number or
transaction type) are left untouched.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from estate_config import EstateConfig
from estate_kernel.db.engine import ledger_write_lock
from estate_kernel.domain.clock import Clock, SystemClock
from estate_kernel.logging_config import get_logger
from estate_kernel.models.account import Account
from estate_kernel.models.seed_marker import SeedMarker
from estate_kernel.models.template import TransactionTemplate
from estate_kernel.services.account_registry import AccountRegistry

logger = get_logger("services.chart_migration")

CHART_MARKER = "chart_of_accounts_v1"
SYSTEM_ACTOR_ID = UUID(int=0)


class ChartMigration:

    def __init__(self, session: Session, config: EstateConfig, clock: Clock | None = None):
        self._session = session
        self._config = config
        self._clock = clock or SystemClock()
        self._registry = AccountRegistry(session)

    def is_applied(self) -> bool:
        return self._session.execute(
            select(SeedMarker.id).where(SeedMarker.name == CHART_MARKER)
        ).first() is not None

    def apply(self, actor_id: UUID = SYSTEM_ACTOR_ID) -> bool:
        """
        Run the migration if its marker is absent.

        Returns:
            True if accounts and templates were written, False if the
            marker was already present.
        """
        with ledger_write_lock():
            try:
                if self.is_applied():
                    logger.info("chart_migration_skipped", extra={"marker": CHART_MARKER})
                    return False

                accounts_created = self._create_accounts(actor_id)
                templates_created = self._create_templates(actor_id)

                self._session.add(
                    SeedMarker(
                        name=CHART_MARKER,
                        applied_at=self._clock.now(),
                        applied_by_id=actor_id,
                        config_checksum=self._config.checksum,
                    )
                )
                self._session.commit()
            except IntegrityError:
                # Another process committed the marker first.
                self._session.rollback()
                if self.is_applied():
                    logger.info("chart_migration_skipped", extra={"marker": CHART_MARKER})
                    return False
                raise
            except Exception:
                self._session.rollback()
                raise

        logger.info(
            "chart_migration_applied",
            extra={
                "marker": CHART_MARKER,
                "accounts_created": accounts_created,
                "templates_created": templates_created,
                "config_checksum": self._config.checksum,
            },
        )
        return True

    def _create_accounts(self, actor_id: UUID) -> int:
        existing = set(self._session.execute(select(Account.account_number)).scalars())
        created = 0
        for account in self._config.accounts:
            if account.number in existing:
                continue
            self._registry.create_account(
                account_number=account.number,
                account_name=account.name,
                account_type=account.account_type,
                actor_id=actor_id,
                category=account.category,
                description=account.description,
                is_system_account=account.is_system,
            )
            created += 1
        return created

    def _create_templates(self, actor_id: UUID) -> int:
        existing = set(
            self._session.execute(select(TransactionTemplate.transaction_type)).scalars()
        )
        created = 0
        for template in self._config.templates:
            if template.transaction_type in existing:
                continue
            self._session.add(
                TransactionTemplate(
                    name=template.name,
                    transaction_type=template.transaction_type,
                    description=template.description,
                    debit_account_id=self._registry.get_by_number(template.debit_account).id,
                    credit_account_id=self._registry.get_by_number(template.credit_account).id,
                    is_system_template=template.is_system,
                    is_active=True,
                    created_by_id=actor_id,
                )
            )
            created += 1
        self._session.flush()
        return created

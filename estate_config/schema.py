"""
EstateConfig schema.

The human-authored YAML set is parsed into these frozen dataclasses by the
loader. Services receive an ``EstateConfig`` and never read YAML or the
environment themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


# ---------------------------------------------------------------------------
# Chart of accounts and templates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountDef:
    """One account of the default chart."""

    number: str
    name: str
    account_type: str  # asset, liability, equity, revenue, expense
    category: str | None = None
    description: str | None = None
    is_system: bool = False


@dataclass(frozen=True)
class TemplateDef:
    """A named Dr/Cr account pair for a business action."""

    name: str
    transaction_type: str
    debit_account: str
    credit_account: str
    description: str | None = None
    is_system: bool = False


# ---------------------------------------------------------------------------
# Posting behaviour
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PostingRoles:
    """Account numbers the services post to by role."""

    bank: str
    accounts_receivable: str
    billing_income: str
    wht_payable: str


@dataclass(frozen=True)
class NumberingConfig:
    journal_entry: str = "JE-{seq:05d}"
    invoice: str = "INV-{year}-{seq:04d}"


@dataclass(frozen=True)
class ReconciliationConfig:
    amount_fallback_enabled: bool = True


@dataclass(frozen=True)
class WithholdingConfig:
    default_rate: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class RuntimeSettings:
    """Values resolved from the environment rather than the YAML set."""

    database_url: str = "sqlite:///estate_ledger.db"
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EstateConfig:
    """The complete, validated configuration handed to services."""

    config_id: str
    version: int
    currency: str
    posting_roles: PostingRoles
    accounts: tuple[AccountDef, ...]
    templates: tuple[TemplateDef, ...]
    billing_templates: dict[str, str] = field(default_factory=dict)
    payment_template: str = "payment_received"
    numbering: NumberingConfig = field(default_factory=NumberingConfig)
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    withholding: WithholdingConfig = field(default_factory=WithholdingConfig)
    runtime: RuntimeSettings = field(default_factory=RuntimeSettings)
    checksum: str = ""

    def account(self, number: str) -> AccountDef:
        for account in self.accounts:
            if account.number == number:
                return account
        raise KeyError(f"Account {number} is not in the configured chart")

    def template(self, transaction_type: str) -> TemplateDef:
        for template in self.templates:
            if template.transaction_type == transaction_type:
                return template
        raise KeyError(f"No template for transaction type {transaction_type!r}")

    def billing_template_for(self, billing_type: str) -> str:
        try:
            return self.billing_templates[billing_type]
        except KeyError:
            raise KeyError(f"No billing template for billing type {billing_type!r}") from None

"""
Configuration Loader (``estate_config.loader``).

Responsibility
--------------
Loads the YAML set and parses it into typed ``estate_config.schema``
dataclasses. Internal tooling: runtime callers go through
``estate_config.get_active_config()``.

Invariants enforced
-------------------
* Missing required keys raise ``KeyError``; bad values raise ``ValueError``.
  There are no silent defaults for required fields.
* Every account referenced by a template or a posting role exists in the
  chart, and account numbers and template types are unique.
* ``compute_checksum`` is deterministic over the raw YAML data.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from estate_config.schema import (
    AccountDef,
    EstateConfig,
    NumberingConfig,
    PostingRoles,
    ReconciliationConfig,
    RuntimeSettings,
    TemplateDef,
    WithholdingConfig,
)

ACCOUNT_TYPES = frozenset({"asset", "liability", "equity", "revenue", "expense"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, (bool, float)):
        raise ValueError(f"{name} must be quoted in YAML, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{name} is not a decimal: {value!r}") from None


def parse_account(data: dict[str, Any]) -> AccountDef:
    account_type = data["type"]
    if account_type not in ACCOUNT_TYPES:
        raise ValueError(f"Account {data['number']} has unknown type {account_type!r}")
    return AccountDef(
        number=str(data["number"]),
        name=data["name"],
        account_type=account_type,
        category=data.get("category"),
        description=data.get("description"),
        is_system=bool(data.get("system", False)),
    )


def parse_template(data: dict[str, Any]) -> TemplateDef:
    return TemplateDef(
        name=data["name"],
        transaction_type=data["transaction_type"],
        debit_account=str(data["debit"]),
        credit_account=str(data["credit"]),
        description=data.get("description"),
        is_system=bool(data.get("system", False)),
    )


def parse_posting_roles(data: dict[str, Any]) -> PostingRoles:
    return PostingRoles(
        bank=str(data["bank"]),
        accounts_receivable=str(data["accounts_receivable"]),
        billing_income=str(data["billing_income"]),
        wht_payable=str(data["wht_payable"]),
    )


def parse_numbering(data: dict[str, Any]) -> NumberingConfig:
    numbering = NumberingConfig(
        journal_entry=data.get("journal_entry", NumberingConfig.journal_entry),
        invoice=data.get("invoice", NumberingConfig.invoice),
    )
    # Fail at load time rather than on the first posting.
    try:
        numbering.journal_entry.format(seq=1)
        numbering.invoice.format(seq=1, year=2024)
    except (KeyError, IndexError, ValueError) as exc:
        raise ValueError(f"Invalid number format: {exc}") from exc
    return numbering


def parse_withholding(data: dict[str, Any]) -> WithholdingConfig:
    rate = parse_decimal(data.get("default_rate", "0"), "withholding.default_rate")
    if rate < 0 or rate > 100:
        raise ValueError(f"withholding.default_rate must be between 0 and 100, got {rate}")
    return WithholdingConfig(default_rate=rate)


def _check_references(config: EstateConfig) -> None:
    numbers = [a.number for a in config.accounts]
    duplicates = {n for n in numbers if numbers.count(n) > 1}
    if duplicates:
        raise ValueError(f"Duplicate account numbers in chart: {sorted(duplicates)}")

    types = [t.transaction_type for t in config.templates]
    duplicates = {t for t in types if types.count(t) > 1}
    if duplicates:
        raise ValueError(f"Duplicate template transaction types: {sorted(duplicates)}")

    known = set(numbers)
    for template in config.templates:
        for number in (template.debit_account, template.credit_account):
            if number not in known:
                raise ValueError(
                    f"Template {template.transaction_type!r} references "
                    f"unknown account {number}"
                )
    for role, number in vars(config.posting_roles).items():
        if number not in known:
            raise ValueError(f"Posting role {role!r} references unknown account {number}")

    known_types = set(types)
    for billing_type, transaction_type in config.billing_templates.items():
        if transaction_type not in known_types:
            raise ValueError(
                f"Billing type {billing_type!r} uses unknown template {transaction_type!r}"
            )
    if config.payment_template not in known_types:
        raise ValueError(f"Unknown payment template {config.payment_template!r}")


def parse_config(
    data: dict[str, Any],
    runtime: RuntimeSettings | None = None,
) -> EstateConfig:
    """
    Parse a raw YAML mapping into an ``EstateConfig``.

    Raises:
        KeyError: if required keys are missing.
        ValueError: if values are invalid or references dangle.
    """
    config = EstateConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        currency=data["currency"],
        posting_roles=parse_posting_roles(data["posting_roles"]),
        accounts=tuple(parse_account(a) for a in data["chart_of_accounts"]),
        templates=tuple(parse_template(t) for t in data.get("transaction_templates", [])),
        billing_templates=dict(data.get("billing_templates", {})),
        payment_template=data.get("payment_template", "payment_received"),
        numbering=parse_numbering(data.get("numbering", {})),
        reconciliation=ReconciliationConfig(
            amount_fallback_enabled=bool(
                data.get("reconciliation", {}).get("amount_fallback_enabled", True)
            ),
        ),
        withholding=parse_withholding(data.get("withholding", {})),
        runtime=runtime or RuntimeSettings(),
        checksum=compute_checksum(data),
    )
    _check_references(config)
    return config


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()

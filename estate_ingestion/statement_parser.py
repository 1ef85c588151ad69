"""
Bank statement parser.

Turns raw statement rows (CSV text, a CSV file, or already-decoded dicts
from an upload form) into validated ``BankStatementEntry`` values before
any matching happens. A bad row is rejected with its row number and field
errors; it never stops the rest of the batch.

Architecture: estate_ingestion. ZERO database I/O. Imports only from
estate_engines types and estate_kernel/domain.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

from estate_engines.reconciliation_types import BankStatementEntry, RejectedRow
from estate_kernel.domain.money import ZERO, to_money
from estate_kernel.exceptions import ValidationError
from estate_kernel.logging_config import get_logger

logger = get_logger("ingestion.statement_parser")

# Header spellings seen in bank exports and upload payloads
_FIELD_ALIASES: dict[str, str] = {
    "transaction date": "transaction_date",
    "transaction_date": "transaction_date",
    "transactiondate": "transaction_date",
    "date": "transaction_date",
    "value date": "transaction_date",
    "description": "description",
    "narration": "description",
    "details": "description",
    "reference number": "reference_number",
    "reference_number": "reference_number",
    "referencenumber": "reference_number",
    "reference": "reference_number",
    "ref": "reference_number",
    "amount": "amount",
    "credit": "amount",
}

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y")


@dataclass(frozen=True)
class StatementParseResult:
    """Validated entries in input order, plus the rows that failed."""

    entries: tuple[BankStatementEntry, ...]
    rejected: tuple[RejectedRow, ...]

    @property
    def has_rejections(self) -> bool:
        return bool(self.rejected)


def canonical_field(header: str) -> str | None:
    return _FIELD_ALIASES.get(header.strip().lower())


def _canonical_row(row: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in row.items():
        if key is None:
            continue
        name = canonical_field(str(key))
        if name is not None and name not in out:
            out[name] = value
    return out


def read_statement_csv(text: str, delimiter: str = ",") -> list[dict[str, Any]]:
    """Read CSV text with a header row. A leading BOM is ignored."""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")), delimiter=delimiter)
    return [dict(row) for row in reader]


def _cell_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, float):
        # Keep amounts exact: integral floats become int, others their shortest repr
        return int(value) if value == int(value) else repr(value)
    if isinstance(value, str):
        return value.strip()
    return value


def _is_header(cells: list[Any]) -> bool:
    names = {canonical_field(str(c)) for c in cells if isinstance(c, str) and c}
    names.discard(None)
    return len(names) >= 2


def read_statement_xlsx(path: Path, sheet: int | str | None = None) -> list[dict[str, Any]]:
    """
    Read an Excel statement (.xlsx) as one dict per data row.

    The header is the first row, within the first 15, that names at least
    two statement columns; bank exports often put a title block above it.
    Blank rows are skipped.
    """
    try:
        import openpyxl
    except ImportError as e:
        raise ImportError("XLSX support requires openpyxl. Install with: pip install openpyxl") from e

    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        if sheet is None:
            ws = wb.active
        elif isinstance(sheet, int):
            ws = wb.worksheets[sheet]
        else:
            ws = wb[sheet]
        rows = [[_cell_value(v) for v in row] for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()

    if not rows:
        return []
    header_idx = next((i for i, r in enumerate(rows[:15]) if _is_header(r)), 0)
    headers = [str(h) for h in rows[header_idx]]
    out = []
    for row in rows[header_idx + 1 :]:
        if not any(v != "" for v in row):
            continue
        out.append(dict(zip(headers, row)))
    return out


def read_statement_file(path: Path, delimiter: str = ",") -> list[dict[str, Any]]:
    """Read a .csv or .xlsx statement file into raw rows."""
    path = Path(path)
    if path.suffix.lower() == ".xlsx":
        return read_statement_xlsx(path)
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        return [dict(row) for row in csv.DictReader(f, delimiter=delimiter)]


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if "T" in text:
        text = text.split("T", 1)[0]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"transaction_date is not a date: {value!r}")


def _parse_amount(value: Any):
    if isinstance(value, str):
        value = value.replace(",", "").replace("₦", "").strip()
    amount = to_money(value, "amount")
    if amount <= ZERO:
        raise ValidationError("amount must be greater than zero", field="amount")
    return amount


def parse_statement_row(row: Mapping[str, Any]) -> BankStatementEntry:
    """
    Validate one raw row.

    Raises:
        ValueError: with one message per failing field, joined by "; ".
    """
    fields = _canonical_row(row)
    errors: list[str] = []

    transaction_date = None
    try:
        transaction_date = _parse_date(fields.get("transaction_date"))
    except ValueError as exc:
        errors.append(str(exc))

    amount = None
    if fields.get("amount") in (None, ""):
        errors.append("amount is required")
    else:
        try:
            amount = _parse_amount(fields["amount"])
        except ValidationError as exc:
            errors.append(str(exc))

    if errors:
        raise ValueError("; ".join(errors))

    reference = fields.get("reference_number")
    reference = str(reference).strip() if reference is not None else ""
    description = fields.get("description")

    return BankStatementEntry(
        transaction_date=transaction_date,
        description=str(description).strip() if description is not None else "",
        reference_number=reference or None,
        amount=amount,
    )


def parse_statement_rows(rows: Iterable[Mapping[str, Any]]) -> StatementParseResult:
    entries: list[BankStatementEntry] = []
    rejected: list[RejectedRow] = []

    for row_number, row in enumerate(rows, start=1):
        try:
            entries.append(parse_statement_row(row))
        except ValueError as exc:
            rejected.append(
                RejectedRow(
                    row_number=row_number,
                    raw=dict(row),
                    errors=tuple(str(exc).split("; ")),
                )
            )

    if rejected:
        logger.warning(
            "statement_rows_rejected",
            extra={
                "accepted_count": len(entries),
                "rejected_count": len(rejected),
                "rejected_rows": [r.row_number for r in rejected],
            },
        )
    return StatementParseResult(entries=tuple(entries), rejected=tuple(rejected))

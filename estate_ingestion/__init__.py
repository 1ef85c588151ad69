"""Bank statement ingestion: raw rows to validated statement entries."""

from estate_ingestion.statement_parser import (
    StatementParseResult,
    parse_statement_row,
    parse_statement_rows,
    read_statement_csv,
    read_statement_file,
    read_statement_xlsx,
)

__all__ = [
    "StatementParseResult",
    "parse_statement_row",
    "parse_statement_rows",
    "read_statement_csv",
    "read_statement_file",
    "read_statement_xlsx",
]

#!/usr/bin/env python3
"""
Create the estate tables and seed the default chart of accounts.

Safe to run repeatedly: the chart migration is guarded by a seed marker
and does nothing once applied.

Usage:
    python3 scripts/seed_chart.py
    python3 scripts/seed_chart.py --db-url sqlite:///estate.db --config path/to/set.yaml
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Create tables and seed the default chart of accounts")
    p.add_argument(
        "--db-url",
        default=None,
        help="Database URL (default: ESTATE_DATABASE_URL or the configured default)",
    )
    p.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration set (default: ESTATE_CONFIG_FILE or the packaged set)",
    )
    p.add_argument("--echo", action="store_true", help="Echo SQL statements")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from estate_config import get_active_config
    from estate_kernel.db.engine import create_tables, get_session, init_engine_from_url
    from estate_kernel.db.immutability import register_immutability_listeners
    from estate_kernel.logging_config import configure_logging
    from estate_services.chart_migration import ChartMigration

    config = get_active_config(config_file=args.config)
    configure_logging(level=config.runtime.log_level)
    db_url = args.db_url or config.runtime.database_url

    print()
    print(f"  [1/3] Connecting to {db_url.split('@')[-1]} ...")
    try:
        init_engine_from_url(db_url, echo=args.echo)
    except Exception as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    print("  [2/3] Creating tables ...")
    create_tables()
    register_immutability_listeners()

    print("  [3/3] Applying chart of accounts migration ...")
    session = get_session()
    try:
        applied = ChartMigration(session, config).apply()
    finally:
        session.close()

    print()
    if applied:
        print(f"  Done. Seeded {len(config.accounts)} accounts and {len(config.templates)} templates.")
    else:
        print("  Done. Chart of accounts already seeded; nothing to do.")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())

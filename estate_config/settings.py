"""
Environment overrides for the active configuration.

Only this module reads ``os.environ``. Recognised variables:

    ESTATE_DATABASE_URL   SQLAlchemy URL for the ledger database
    ESTATE_LOG_LEVEL      root level for the estate_kernel logger
    ESTATE_CONFIG_FILE    path to an alternative YAML set
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from estate_config.schema import RuntimeSettings

DATABASE_URL_VAR = "ESTATE_DATABASE_URL"
LOG_LEVEL_VAR = "ESTATE_LOG_LEVEL"
CONFIG_FILE_VAR = "ESTATE_CONFIG_FILE"


def runtime_settings(environ: Mapping[str, str] | None = None) -> RuntimeSettings:
    env = os.environ if environ is None else environ
    defaults = RuntimeSettings()

    level = env.get(LOG_LEVEL_VAR, defaults.log_level).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"{LOG_LEVEL_VAR} is not a logging level: {level!r}")

    return RuntimeSettings(
        database_url=env.get(DATABASE_URL_VAR, defaults.database_url),
        log_level=level,
    )


def config_file_override(environ: Mapping[str, str] | None = None) -> Path | None:
    env = os.environ if environ is None else environ
    value = env.get(CONFIG_FILE_VAR)
    return Path(value) if value else None

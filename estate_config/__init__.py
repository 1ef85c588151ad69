"""
estate_config -- single public entrypoint for estate configuration.

Responsibility:
    ``get_active_config()`` is the only way services obtain configuration.
    It loads the packaged YAML set (or the file named by
    ``ESTATE_CONFIG_FILE``), applies environment overrides, validates
    cross-references and returns a frozen ``EstateConfig``.

Architecture position:
    Sits above ``estate_kernel`` and below ``estate_services``. The kernel
    never imports from this package; services translate configuration into
    kernel calls.

Failure modes:
    - ``FileNotFoundError`` -- the YAML set does not exist.
    - ``KeyError`` -- a required key is missing.
    - ``ValueError`` -- a value is invalid or a reference dangles.

Audit relevance:
    Every successful call emits an ``ESTATE_CONFIG_TRACE`` log entry with
    the config id, version and checksum.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from estate_config.loader import compute_checksum, load_yaml_file, parse_config
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
from estate_config.settings import config_file_override, runtime_settings

_logger = logging.getLogger("estate_kernel.config")

DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(
    config_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> EstateConfig:
    """The public configuration entrypoint.

    Args:
        config_file: Explicit YAML set. Takes precedence over
            ``ESTATE_CONFIG_FILE`` and the packaged default.
        environ: Environment mapping; defaults to ``os.environ``.

    Raises:
        FileNotFoundError: If the YAML set does not exist.
        KeyError: If a required key is missing.
        ValueError: If validation fails.
    """
    path = config_file or config_file_override(environ) or DEFAULT_CONFIG_FILE
    data = load_yaml_file(Path(path))
    config = parse_config(data, runtime=runtime_settings(environ))

    _logger.info(
        "ESTATE_CONFIG_TRACE",
        extra={
            "trace_type": "ESTATE_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "config_file": str(path),
            "account_count": len(config.accounts),
            "template_count": len(config.templates),
        },
    )
    return config


__all__ = [
    "AccountDef",
    "DEFAULT_CONFIG_FILE",
    "EstateConfig",
    "NumberingConfig",
    "PostingRoles",
    "ReconciliationConfig",
    "RuntimeSettings",
    "TemplateDef",
    "WithholdingConfig",
    "compute_checksum",
    "get_active_config",
]

"""
charter_config -- single public entrypoint for document configuration.

Responsibility:
    ``get_active_config()`` is the only way services obtain configuration.
    YAML loading is internal; callers receive a frozen ``CharterConfig``.

Architecture position:
    Configuration -- sits above ``charter_kernel`` and below
    ``charter_services``.  The kernel and engines never import from here.

Failure modes:
    - ``ConfigurationError`` -- missing file, malformed YAML or an invalid
      value (the error names the offending key).

Audit relevance:
    Every call emits a ``CHARTER_CONFIG_TRACE`` log entry with the
    config id, version and checksum.
"""

from __future__ import annotations

from pathlib import Path

from charter_config.loader import load_config_file
from charter_config.schema import (
    AccountsConfig,
    CharterConfig,
    NumberFormat,
    NumberingConfig,
    WhtConfig,
)
from charter_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> CharterConfig:
    """Load and validate the configuration at ``path`` (default set if omitted)."""
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = load_config_file(config_path)

    _logger.info(
        "CHARTER_CONFIG_TRACE",
        extra={
            "trace_type": "CHARTER_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "base_currency": config.base_currency,
            "path": str(config_path),
        },
    )
    return config


__all__ = [
    "AccountsConfig",
    "CharterConfig",
    "DEFAULT_CONFIG_PATH",
    "NumberFormat",
    "NumberingConfig",
    "WhtConfig",
    "get_active_config",
]

"""
procurement_config -- single public entrypoint for procurement configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    directly.  Returns a frozen ``ProcurementConfig``; the bridges module
    turns it into engine rule objects.

Architecture position:
    Configuration -- YAML-driven defaults.  This package sits above
    ``procurement_kernel`` and ``procurement_engines``.  The kernel MUST
    NEVER import from ``procurement_config``.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - ``defaults.yaml`` holds exactly the values the engines use as built-in
      defaults, so running without configuration and running with the
      default file behave identically.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``yaml.YAMLError`` / ``KeyError`` / ``ValueError`` -- malformed file.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PROCUREMENT_CONFIG_TRACE`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from procurement_config.loader import load_config
from procurement_config.schema import ProcurementConfig

_logger = logging.getLogger("procurement_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | None = None) -> ProcurementConfig:
    """
    Load the active procurement configuration.

    Args:
        config_path: Override path to a configuration file.  Defaults to
            the packaged ``defaults.yaml``.

    Returns:
        ProcurementConfig -- frozen, with a content checksum.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_config(path)

    _logger.info(
        "PROCUREMENT_CONFIG_TRACE",
        extra={
            "trace_type": "PROCUREMENT_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_path": str(path),
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ProcurementConfig",
    "get_active_config",
]

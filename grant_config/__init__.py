"""
grant_config -- single public entrypoint for Budget BASE configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    directly.  Returns a frozen ``BudgetBaseConfig``.

Architecture position:
    Configuration -- YAML-driven.  Sits above ``grant_kernel`` and
    ``grant_engines`` and below ``grant_modules`` / ``grant_services``.
    The kernel MUST NEVER import from ``grant_config``.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Deterministic identity: the same YAML always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``KeyError`` -- a required key (config_id, version) is absent.
    - ``ValueError`` -- a value is outside its allowed set or range.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``BUDGET_CONFIG_TRACE`` log entry containing the config_id, version,
    checksum and the selected rollup / over-repayment policies.
"""

from __future__ import annotations

from pathlib import Path

from grant_config.loader import compute_checksum, load_config_file, parse_config
from grant_config.schema import (
    BudgetBaseConfig,
    DatabaseConfig,
    LoggingConfig,
    RepaymentConfig,
    RollupConfig,
    RollupStrategy,
    SelectionConfig,
)
from grant_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> BudgetBaseConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: Override path to a configuration YAML file.  Defaults to
            grant_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value fails validation.
    """
    config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH
    config = load_config_file(config_path)

    _logger.info(
        "BUDGET_CONFIG_TRACE",
        extra={
            "trace_type": "BUDGET_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "config_checksum": config.checksum,
            "config_path": str(config_path),
            "rollup_strategy": config.rollup.strategy.value,
            "over_repayment_policy": config.repayment.over_repayment_policy.value,
        },
    )
    return config


__all__ = [
    "get_active_config",
    "BudgetBaseConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "RepaymentConfig",
    "RollupConfig",
    "RollupStrategy",
    "SelectionConfig",
    "compute_checksum",
    "parse_config",
]

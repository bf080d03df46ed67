"""
Configuration Loader (``grant_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen
``grant_config.schema`` dataclasses.  Runtime callers go through
``grant_config.get_active_config()`` instead of calling this directly.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on PyYAML and the
schema only.

Invariants enforced
-------------------
* Missing required keys raise ``KeyError``; invalid values raise
  ``ValueError``.  No silent defaults for identity keys.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  source for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from grant_config.schema import (
    SUPPORTED_CURRENCIES,
    BudgetBaseConfig,
    DatabaseConfig,
    LoggingConfig,
    RepaymentConfig,
    RollupConfig,
    RollupStrategy,
    SelectionConfig,
)
from grant_engines.repayment import OverRepaymentPolicy

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top-level YAML node is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML node must be a mapping")
    return data


def _enum_value(enum_cls, raw: Any, key: str):
    try:
        return enum_cls(str(raw).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValueError(f"{key}: {raw!r} is not one of {allowed}") from None


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    url = data.get("url", DatabaseConfig.url)
    if not url:
        raise ValueError("database.url must not be empty")
    return DatabaseConfig(url=str(url), echo=bool(data.get("echo", False)))


def parse_rollup(data: dict[str, Any]) -> RollupConfig:
    return RollupConfig(
        strategy=_enum_value(RollupStrategy, data.get("strategy", "incremental"), "rollup.strategy"),
    )


def parse_repayment(data: dict[str, Any]) -> RepaymentConfig:
    return RepaymentConfig(
        over_repayment_policy=_enum_value(
            OverRepaymentPolicy,
            data.get("over_repayment_policy", "reject"),
            "repayment.over_repayment_policy",
        ),
    )


def parse_selection(data: dict[str, Any]) -> SelectionConfig:
    defaults = SelectionConfig()
    debounce = float(data.get("debounce_seconds", defaults.debounce_seconds))
    if debounce < 0:
        raise ValueError(f"selection.debounce_seconds must be >= 0, got {debounce}")
    ttl = int(data.get("local_cache_ttl_seconds", defaults.local_cache_ttl_seconds))
    if ttl <= 0:
        raise ValueError(f"selection.local_cache_ttl_seconds must be > 0, got {ttl}")
    settings_key = str(data.get("settings_key", defaults.settings_key)).strip()
    if not settings_key:
        raise ValueError("selection.settings_key must not be empty")
    return SelectionConfig(
        settings_key=settings_key,
        debounce_seconds=debounce,
        local_cache_path=Path(str(data.get("local_cache_path", defaults.local_cache_path))).expanduser(),
        local_cache_ttl_seconds=ttl,
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level: {level!r} is not a logging level")
    return LoggingConfig(level=level)


def parse_config(data: dict[str, Any], checksum: str = "") -> BudgetBaseConfig:
    """Parse a loaded YAML mapping into a ``BudgetBaseConfig``."""
    currency = str(data.get("default_currency", "XOF")).upper()
    if currency not in SUPPORTED_CURRENCIES:
        raise ValueError(
            f"default_currency: {currency!r} is not one of {', '.join(SUPPORTED_CURRENCIES)}"
        )
    return BudgetBaseConfig(
        config_id=str(data["config_id"]),
        version=int(data["version"]),
        default_currency=currency,
        database=parse_database(data.get("database") or {}),
        rollup=parse_rollup(data.get("rollup") or {}),
        repayment=parse_repayment(data.get("repayment") or {}),
        selection=parse_selection(data.get("selection") or {}),
        logging=parse_logging(data.get("logging") or {}),
        checksum=checksum,
    )


def load_config_file(path: Path) -> BudgetBaseConfig:
    data = load_yaml_file(path)
    return parse_config(data, checksum=compute_checksum(data))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def log_level_number(config: BudgetBaseConfig) -> int:
    return logging.getLevelName(config.logging.level)

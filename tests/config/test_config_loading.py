"""
Tests for YAML configuration loading and validation.
"""

import logging
from pathlib import Path

import pytest

from grant_config import RollupStrategy, get_active_config
from grant_config.loader import compute_checksum, log_level_number, parse_config
from grant_engines.repayment import OverRepaymentPolicy


def minimal(**sections) -> dict:
    data = {"config_id": "test", "version": 3}
    data.update(sections)
    return data


class TestDefaultConfigSet:

    def test_default_set_loads(self, captured_logs):
        config = get_active_config()
        assert config.config_id == "budget-base-default"
        assert config.default_currency == "XOF"
        assert config.rollup.strategy is RollupStrategy.INCREMENTAL
        assert config.repayment.over_repayment_policy is OverRepaymentPolicy.REJECT
        assert config.selection.settings_key == "selectedGrantId"
        assert config.selection.debounce_seconds == 0.5
        assert config.selection.local_cache_ttl_seconds == 86400
        assert len(config.checksum) == 64

        traces = [r for r in captured_logs() if r["message"] == "BUDGET_CONFIG_TRACE"]
        assert traces[-1]["config_checksum"] == config.checksum
        assert traces[-1]["rollup_strategy"] == "incremental"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_override_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(
            "config_id: custom\nversion: 2\n"
            "rollup:\n  strategy: recompute\n"
            "repayment:\n  over_repayment_policy: clamp\n"
        )
        config = get_active_config(path)
        assert config.config_id == "custom"
        assert config.rollup.strategy is RollupStrategy.RECOMPUTE
        assert config.repayment.over_repayment_policy is OverRepaymentPolicy.CLAMP


class TestParseConfig:

    def test_defaults_for_missing_sections(self):
        config = parse_config(minimal())
        assert config.version == 3
        assert config.logging.level == "INFO"
        assert config.database.url.startswith("postgresql")

    def test_required_keys(self):
        with pytest.raises(KeyError):
            parse_config({"version": 1})

    @pytest.mark.parametrize("sections", [
        {"default_currency": "GBP"},
        {"rollup": {"strategy": "eventual"}},
        {"repayment": {"over_repayment_policy": "ignore"}},
        {"selection": {"debounce_seconds": -1}},
        {"selection": {"local_cache_ttl_seconds": 0}},
        {"selection": {"settings_key": "  "}},
        {"logging": {"level": "LOUD"}},
        {"database": {"url": ""}},
    ])
    def test_invalid_values_rejected(self, sections):
        with pytest.raises(ValueError):
            parse_config(minimal(**sections))

    def test_cache_path_expanded(self):
        config = parse_config(minimal(selection={"local_cache_path": "~/cache.json"}))
        assert config.selection.local_cache_path == Path("~/cache.json").expanduser()

    def test_log_level_number(self):
        config = parse_config(minimal(logging={"level": "debug"}))
        assert log_level_number(config) == logging.DEBUG


class TestChecksum:

    def test_key_order_independent(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})

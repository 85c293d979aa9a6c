"""Tests for configuration loading and validation."""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path

import pytest

from stocktycoon.config_loader import (
    ConfigLoader,
    interpolate_env_vars,
    load_config,
    load_config_with_overrides,
    process_config_dict,
)
from stocktycoon.constants import LogLevel, Sentiment, StoreMode


class TestEnvVarInterpolation:
    """Tests for environment variable interpolation."""

    def test_no_interpolation_needed(self) -> None:
        """Test that plain strings pass through unchanged."""
        assert interpolate_env_vars("hello") == "hello"
        assert interpolate_env_vars(123) == 123
        assert interpolate_env_vars(None) is None

    def test_simple_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test simple ${VAR} interpolation."""
        monkeypatch.setenv("TEST_VAR", "test_value")
        assert interpolate_env_vars("${TEST_VAR}") == "test_value"

    def test_env_var_with_default(self) -> None:
        """Test ${VAR:default} interpolation with missing var."""
        os.environ.pop("MISSING_VAR", None)
        assert interpolate_env_vars("${MISSING_VAR:default_value}") == "default_value"

    def test_env_var_with_default_when_set(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test ${VAR:default} uses actual value when set."""
        monkeypatch.setenv("SET_VAR", "actual_value")
        assert interpolate_env_vars("${SET_VAR:default_value}") == "actual_value"

    def test_empty_default(self) -> None:
        """Test ${VAR:} with empty default."""
        os.environ.pop("EMPTY_DEFAULT_VAR", None)
        assert interpolate_env_vars("${EMPTY_DEFAULT_VAR:}") == ""

    def test_default_containing_colons(self) -> None:
        """URLs with ports survive as defaults."""
        os.environ.pop("SERVER_URL_UNSET", None)
        result = interpolate_env_vars("${SERVER_URL_UNSET:http://127.0.0.1:5000}")
        assert result == "http://127.0.0.1:5000"


class TestProcessConfigDict:
    """Tests for recursive config dict processing."""

    def test_nested_dict(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NESTED_VAR", "nested_value")
        data = {"level1": {"level2": {"value": "${NESTED_VAR}"}}}
        result = process_config_dict(data)
        assert result["level1"]["level2"]["value"] == "nested_value"

    def test_list_of_dicts(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("INST_NAME", "Samsung")
        data = {"instruments": [{"id": "SAMS", "name": "${INST_NAME}"}, "plain"]}
        result = process_config_dict(data)
        assert result["instruments"] == [{"id": "SAMS", "name": "Samsung"}, "plain"]


class TestConfigLoader:
    """Tests for ConfigLoader class."""

    def test_load_valid_config(self, tmp_path: Path) -> None:
        config_content = """
environment:
  log_level: DEBUG
  store_mode: memory

market:
  min_price: 250
  instruments:
    - {id: AAA, name: Alpha, price: 1000, volatility: 0.02}

game:
  initial_cash: 5000000
"""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(config_content)

        config = ConfigLoader(config_file).load()

        assert config.environment.log_level == LogLevel.DEBUG
        assert config.environment.store_mode == StoreMode.MEMORY
        assert config.market.min_price == Decimal("250")
        assert [i.id for i in config.market.instruments] == ["AAA"]
        assert config.market.instruments[0].price == Decimal("1000")
        assert config.game.initial_cash == Decimal("5000000")

    def test_file_not_found(self) -> None:
        loader = ConfigLoader(Path("/nonexistent/path/config.yaml"))
        with pytest.raises(FileNotFoundError):
            loader.load()

    def test_empty_config_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        config = load_config(config_file)

        assert config.server.port == 5000
        assert config.market.tick_seconds == 1.0
        assert config.market.min_price == Decimal("100")
        assert config.market.recent_history == 60
        assert [i.id for i in config.market.instruments] == ["SAMS", "KAKO", "HYUN", "ECOP", "BTC"]
        assert config.news.every_ticks == 25
        assert config.news.probability == 0.4
        assert config.news.shock_pct == Decimal("0.05")
        assert config.news.log_size == 20
        assert len(config.news.backup_headlines) == 6
        assert config.game.initial_cash == Decimal("10000000")
        assert config.game.reward_cooldown_seconds == 60
        assert config.watcher.retry_cooldown_seconds == 5.0
        assert config.uses_supabase is False

    def test_port_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PORT", "8080")
        config_file = tmp_path / "config.yaml"
        config_file.write_text("server:\n  port: ${PORT:5000}")

        assert load_config(config_file).server.port == 8080

    def test_reload_config(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("news:\n  probability: 0.4")

        loader = ConfigLoader(config_file)
        assert loader.load().news.probability == 0.4

        config_file.write_text("news:\n  probability: 0.9")

        assert loader.reload().news.probability == 0.9

    def test_shipped_config_loads(self) -> None:
        shipped = Path(__file__).resolve().parent.parent / "config" / "config.yaml"
        config = load_config(shipped)
        assert len(config.market.instruments) == 5
        assert config.news.backup_headlines[0].sentiment in (Sentiment.GOOD, Sentiment.BAD)


class TestConfigWithOverrides:
    """Tests for CLI override functionality."""

    def test_port_override(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("server:\n  port: 5000")

        config = load_config_with_overrides(config_file, port=9000)
        assert config.server.port == 9000

    def test_store_mode_override(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("environment:\n  store_mode: memory")

        config = load_config_with_overrides(config_file, store_mode="SUPABASE")
        assert config.environment.store_mode == StoreMode.SUPABASE
        assert config.uses_supabase is True

    def test_no_overrides_returns_loaded(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")

        config = load_config_with_overrides(config_file)
        assert config.server.port == 5000


class TestConfigValidation:
    """Tests for configuration validation."""

    def test_invalid_port(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("server:\n  port: 70000")

        with pytest.raises(ValueError, match="Port must be"):
            load_config(config_file)

    def test_recent_window_larger_than_capacity(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("market:\n  history_capacity: 30\n  recent_history: 60")

        with pytest.raises(ValueError, match="recent_history"):
            load_config(config_file)

    def test_duplicate_instrument_ids(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("""
market:
  instruments:
    - {id: AAA, name: A, price: 100, volatility: 0.01}
    - {id: AAA, name: B, price: 200, volatility: 0.01}
""")

        with pytest.raises(ValueError, match="unique"):
            load_config(config_file)

    def test_volatility_out_of_range(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("""
market:
  instruments:
    - {id: AAA, name: A, price: 100, volatility: 1.5}
""")

        with pytest.raises(ValueError, match="Volatility"):
            load_config(config_file)

    def test_reward_range(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("game:\n  reward_min: 500\n  reward_max: 100")

        with pytest.raises(ValueError, match="reward_min"):
            load_config(config_file)

    def test_probability_out_of_range(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("news:\n  probability: 1.5")

        with pytest.raises(ValueError, match="Probability"):
            load_config(config_file)

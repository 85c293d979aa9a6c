"""Tests for the command line interface."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from stocktycoon.app import StockTycoonApp
from stocktycoon.cli import cli
from stocktycoon.config_loader import AppConfig, load_config_with_overrides
from stocktycoon.db.memory import MemoryStore
from stocktycoon.errors import PersistenceError


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text("environment:\n  log_level: WARNING\n  store_mode: memory\n")
    return path


def test_schema_prints_sql() -> None:
    result = CliRunner().invoke(cli, ["schema"])

    assert result.exit_code == 0
    assert "CREATE TABLE IF NOT EXISTS accounts" in result.output


def test_smoke_test_runs_ticks(config_file: Path) -> None:
    result = CliRunner().invoke(cli, ["smoke-test", "--config", str(config_file), "--ticks", "2"])

    assert result.exit_code == 0, result.output
    assert "Smoke test passed: gameTime=2" in result.output


def test_smoke_test_fails_without_supabase_credentials(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text("environment:\n  store_mode: supabase\n")

    result = CliRunner().invoke(cli, ["smoke-test", "--config", str(path)])

    assert result.exit_code == 1
    assert "Smoke test failed" in result.output


class TestStockTycoonApp:
    def test_memory_store_selected(self, config_file: Path) -> None:
        app = StockTycoonApp(load_config_with_overrides(config_file))
        assert isinstance(app.store, MemoryStore)

    def test_supabase_without_credentials_raises(self, config_file: Path) -> None:
        config = load_config_with_overrides(config_file, store_mode="supabase")
        config = config.model_copy(
            update={"supabase": config.supabase.model_copy(update={"url": "", "key": ""})}
        )
        with pytest.raises(PersistenceError, match="SUPABASE_URL"):
            StockTycoonApp(config)

    def test_feed_wired_to_loop(self) -> None:
        app = StockTycoonApp(AppConfig(), store=MemoryStore())
        assert app.feed.publish in app.loop._update_callbacks

"""Shared fixtures."""

from __future__ import annotations

import pytest

from stocktycoon.config_loader import AppConfig
from stocktycoon.db.memory import MemoryStore
from stocktycoon.market.state import MarketState


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def state(app_config: AppConfig) -> MarketState:
    return MarketState.from_config(app_config.market, app_config.news.log_size)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()

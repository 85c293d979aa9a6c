"""Stock Tycoon Main Application."""

from __future__ import annotations

import logging
import random

import uvicorn

from stocktycoon.ai.news import NewsGenerator
from stocktycoon.api.feed import MarketFeed
from stocktycoon.config_loader import AppConfig
from stocktycoon.constants import LOG_FORMAT
from stocktycoon.db.base import GameStore
from stocktycoon.db.memory import MemoryStore
from stocktycoon.db.supabase_client import SupabaseStore
from stocktycoon.errors import PersistenceError
from stocktycoon.market.loop import MarketLoop
from stocktycoon.market.simulator import PriceSimulator
from stocktycoon.market.state import MarketState
from stocktycoon.trading.accounts import AccountService
from stocktycoon.trading.orders import OrderService
from stocktycoon.trading.rewards import RewardService
from stocktycoon.trading.settlement import SettlementService

logger = logging.getLogger(__name__)


def setup_logging(config: AppConfig) -> None:
    logging.basicConfig(level=config.environment.log_level.value, format=LOG_FORMAT)


class StockTycoonApp:
    """
    Application orchestrator.

    Owns the single MarketState and wires it into the market loop and the
    services used by the HTTP layer.
    """

    def __init__(
        self,
        config: AppConfig,
        store: GameStore | None = None,
        rng: random.Random | None = None,
    ):
        self.config = config
        self.rng = rng or random.Random()

        self.state = MarketState.from_config(config.market, config.news.log_size)
        self.store = store if store is not None else self._build_store()

        self.simulator = PriceSimulator(self.state, config.market.min_price, self.rng)
        self.news = NewsGenerator(self.state, config.news, config.openai, self.rng)
        self.loop = MarketLoop(
            self.state,
            self.simulator,
            self.news,
            self.store,
            interval_sec=config.market.tick_seconds,
        )

        self.feed = MarketFeed()
        self.loop.add_update_callback(self.feed.publish)

        self.accounts = AccountService(self.store, config.game)
        self.settlement = SettlementService(self.state, self.store)
        self.orders = OrderService(self.state, self.store)
        self.rewards = RewardService(self.state, self.store, config.game, self.rng)

    def _build_store(self) -> GameStore:
        if not self.config.uses_supabase:
            logger.info("Using in-memory store")
            return MemoryStore()

        store = SupabaseStore(self.config.supabase)
        if not store.is_available:
            raise PersistenceError("store_mode is 'supabase' but SUPABASE_URL/SUPABASE_KEY are not set")
        logger.info("Using Supabase store")
        return store

    def run_server(self) -> None:
        """Serve the HTTP API; the market loop runs inside the server's event loop."""
        from stocktycoon.api.server import create_app

        api = create_app(self)
        logger.info(f"Serving on {self.config.server.host}:{self.config.server.port}")
        uvicorn.run(
            api,
            host=self.config.server.host,
            port=self.config.server.port,
            log_level=self.config.environment.log_level.value.lower(),
        )

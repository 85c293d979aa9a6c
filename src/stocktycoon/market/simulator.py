"""Random-walk price simulator."""

from __future__ import annotations

import logging
import random
from decimal import Decimal

from stocktycoon.market.models import utc_now
from stocktycoon.market.state import MarketState

logger = logging.getLogger(__name__)


class PriceSimulator:
    """
    Advances the market by one tick.

    Each instrument moves by a uniform draw in [-volatility, +volatility],
    clamped to `min_price`, and the new price is appended to its history.
    """

    def __init__(
        self,
        state: MarketState,
        min_price: Decimal,
        rng: random.Random | None = None,
    ) -> None:
        self.state = state
        self.min_price = min_price
        self.rng = rng or random.Random()

    def step(self) -> int:
        """Apply one tick to every instrument. Returns the new tick count."""
        with self.state.lock:
            tick = self.state.tick
            for inst in self.state.instruments.values():
                perturbation = Decimal(str(self.rng.uniform(-inst.volatility, inst.volatility)))
                new_price = max(self.min_price, inst.price * (1 + perturbation))
                inst.price = new_price
                self.state.history[inst.id].append(tick, new_price)

            self.state.tick = tick + 1
            self.state.last_updated = utc_now()
            logger.debug(f"Tick {self.state.tick} applied to {len(self.state.instruments)} instruments")
            return self.state.tick

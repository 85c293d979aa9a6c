"""Cooldown-gated random cash bonus."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from stocktycoon.config_loader import GameConfig
from stocktycoon.db.base import GameStore
from stocktycoon.errors import BusinessRuleError
from stocktycoon.market.models import utc_now
from stocktycoon.market.state import MarketState
from stocktycoon.trading.models import UserAccount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RewardResult:
    amount: Decimal
    account: UserAccount


class RewardService:
    """
    Grants a bonus in [reward_min, reward_max) at most once per cooldown.

    The grant goes through the same account transaction as settlement, so a
    concurrent trade and bonus cannot overwrite each other.
    """

    def __init__(
        self,
        state: MarketState,
        store: GameStore,
        config: GameConfig,
        rng: random.Random | None = None,
    ) -> None:
        self.state = state
        self.store = store
        self.config = config
        self.rng = rng or random.Random()

    @property
    def cooldown(self) -> timedelta:
        return timedelta(seconds=self.config.reward_cooldown_seconds)

    def seconds_until_available(self, account: UserAccount, now: datetime | None = None) -> int:
        if account.last_reward_at is None:
            return 0
        now = now or utc_now()
        remaining = (account.last_reward_at + self.cooldown) - now
        return max(0, int(remaining.total_seconds() + 0.999))

    def grant(self, uid: str) -> RewardResult:
        """
        Raises:
            NotFoundError: Unknown account.
            BusinessRuleError: Still cooling down.
            PersistenceError: Store failure.
        """
        amount = Decimal(self.rng.randrange(self.config.reward_min, self.config.reward_max))

        def mutate(account: UserAccount) -> None:
            now = utc_now()
            wait = self.seconds_until_available(account, now)
            if wait > 0:
                raise BusinessRuleError(f"reward available again in {wait}s")
            account.cash += amount
            account.last_reward_at = now
            account.total_asset = account.compute_total_asset(self.state.prices())

        account = self.store.transact_account(uid, mutate)
        logger.info(f"Reward of {amount} granted to {uid}")
        return RewardResult(amount=amount, account=account)

"""Account opening and lookup."""

from __future__ import annotations

import logging

from stocktycoon.config_loader import GameConfig
from stocktycoon.db.base import GameStore
from stocktycoon.errors import NotFoundError, ValidationError
from stocktycoon.trading.models import UserAccount

logger = logging.getLogger(__name__)


class AccountService:
    """Opens accounts with the starting cash and reads them back."""

    def __init__(self, store: GameStore, config: GameConfig) -> None:
        self.store = store
        self.config = config

    def open_account(self, uid: str, display_name: str | None = None) -> UserAccount:
        """Create the account if missing; an existing account is returned unchanged."""
        if not uid or not isinstance(uid, str):
            raise ValidationError("uid is required")

        account = UserAccount(
            uid=uid,
            display_name=(display_name or "").strip() or "User",
            cash=self.config.initial_cash,
            total_asset=self.config.initial_cash,
            principal=self.config.initial_cash,
        )
        return self.store.create_account(account)

    def get_account(self, uid: str) -> UserAccount:
        account = self.store.get_account(uid)
        if account is None:
            raise NotFoundError(f"account not found: {uid}")
        return account

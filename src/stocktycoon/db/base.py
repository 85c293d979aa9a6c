"""Base store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from stocktycoon.trading.models import LeaderboardEntry, PendingOrder, UserAccount

AccountMutation = Callable[[UserAccount], None]


class GameStore(ABC):
    """
    Abstract persistence interface.

    `transact_account` is the single entry point for balance mutations: it
    must isolate concurrent calls for the same account and write the account
    and its leaderboard entry together or not at all.
    """

    # -------------------------------------------------------------------------
    # Market document
    # -------------------------------------------------------------------------

    @abstractmethod
    def write_market_state(self, document: dict[str, Any]) -> None:
        """Overwrite the shared market document."""
        pass

    @abstractmethod
    def read_market_state(self) -> dict[str, Any] | None:
        """Read the shared market document, None if never written."""
        pass

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    @abstractmethod
    def get_account(self, uid: str) -> UserAccount | None:
        """Get an account snapshot."""
        pass

    @abstractmethod
    def create_account(self, account: UserAccount) -> UserAccount:
        """Create the account unless it exists. Returns the stored account."""
        pass

    @abstractmethod
    def transact_account(self, uid: str, mutate: AccountMutation) -> UserAccount:
        """
        Atomically read-modify-write one account.

        `mutate` receives a private copy and may raise to abort; nothing is
        written in that case. On success the account (with a bumped version)
        and its leaderboard entry are committed together.

        Raises:
            NotFoundError: No such account.
            PersistenceError: Store unreachable or conflict not resolved.
        """
        pass

    # -------------------------------------------------------------------------
    # Pending orders
    # -------------------------------------------------------------------------

    @abstractmethod
    def add_order(self, order: PendingOrder) -> PendingOrder:
        pass

    @abstractmethod
    def list_orders(self, uid: str) -> list[PendingOrder]:
        """Orders of one user, newest first."""
        pass

    @abstractmethod
    def delete_order(self, uid: str, order_id: str) -> bool:
        """Delete an order. Returns False if it did not exist."""
        pass

    # -------------------------------------------------------------------------
    # Leaderboard
    # -------------------------------------------------------------------------

    @abstractmethod
    def top_leaderboard(self, limit: int) -> list[LeaderboardEntry]:
        """Entries sorted by total asset, highest first."""
        pass

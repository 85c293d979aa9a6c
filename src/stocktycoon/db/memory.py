"""In-process store for local play and tests."""

from __future__ import annotations

import copy
import logging
import threading
from collections import defaultdict
from typing import Any

from stocktycoon.db.base import AccountMutation, GameStore
from stocktycoon.errors import NotFoundError
from stocktycoon.market.models import utc_now
from stocktycoon.trading.models import LeaderboardEntry, PendingOrder, UserAccount

logger = logging.getLogger(__name__)


class MemoryStore(GameStore):
    """
    Dictionary-backed store.

    Records are kept as serialized dicts so callers never share objects with
    the store. Each account has its own lock; a store-wide lock guards the
    tables themselves.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._account_locks: dict[str, threading.Lock] = {}
        self._market: dict[str, Any] | None = None
        self._accounts: dict[str, dict[str, Any]] = {}
        self._leaderboard: dict[str, dict[str, Any]] = {}
        self._orders: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)

    def write_market_state(self, document: dict[str, Any]) -> None:
        with self._lock:
            self._market = copy.deepcopy(document)

    def read_market_state(self) -> dict[str, Any] | None:
        with self._lock:
            return copy.deepcopy(self._market)

    def get_account(self, uid: str) -> UserAccount | None:
        with self._lock:
            record = self._accounts.get(uid)
        return UserAccount.from_record(record) if record else None

    def create_account(self, account: UserAccount) -> UserAccount:
        with self._lock:
            existing = self._accounts.get(account.uid)
            if existing:
                return UserAccount.from_record(existing)
            self._accounts[account.uid] = account.to_record()
            self._leaderboard[account.uid] = LeaderboardEntry.for_account(account).to_record()
        logger.info(f"Account created: {account.uid} ({account.display_name})")
        return UserAccount.from_record(account.to_record())

    def _account_lock(self, uid: str) -> threading.Lock:
        """Lock of an existing account; unknown uids never get one."""
        with self._lock:
            if uid not in self._accounts:
                raise NotFoundError(f"account not found: {uid}")
            return self._account_locks.setdefault(uid, threading.Lock())

    def transact_account(self, uid: str, mutate: AccountMutation) -> UserAccount:
        with self._account_lock(uid):
            with self._lock:
                record = self._accounts[uid]

            account = UserAccount.from_record(record)
            mutate(account)

            account.version += 1
            account.updated_at = utc_now()
            entry = LeaderboardEntry.for_account(account)

            with self._lock:
                self._accounts[uid] = account.to_record()
                self._leaderboard[uid] = entry.to_record()

            return UserAccount.from_record(account.to_record())

    def add_order(self, order: PendingOrder) -> PendingOrder:
        with self._lock:
            self._orders[order.uid][order.id] = order.to_record()
        return order

    def list_orders(self, uid: str) -> list[PendingOrder]:
        with self._lock:
            records = list(self._orders.get(uid, {}).values())
        orders = [PendingOrder.from_record(r) for r in records]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders

    def delete_order(self, uid: str, order_id: str) -> bool:
        with self._lock:
            return self._orders.get(uid, {}).pop(order_id, None) is not None

    def top_leaderboard(self, limit: int) -> list[LeaderboardEntry]:
        with self._lock:
            records = list(self._leaderboard.values())
        entries = [LeaderboardEntry.from_record(r) for r in records]
        entries.sort(key=lambda e: e.total_asset, reverse=True)
        return entries[:limit]

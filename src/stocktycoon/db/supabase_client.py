"""Supabase Client - Singleton database connection and game store.

Per-account isolation uses optimistic concurrency: the account row carries a
`version`, and the `commit_account` SQL function (see `db/schema.py`) writes
the account and its leaderboard row only if the version is unchanged.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from supabase import Client, create_client

from stocktycoon.constants import MARKET_DOCUMENT_ID
from stocktycoon.db.base import AccountMutation, GameStore
from stocktycoon.errors import NotFoundError, PersistenceError
from stocktycoon.market.models import utc_now
from stocktycoon.trading.models import LeaderboardEntry, PendingOrder, UserAccount

if TYPE_CHECKING:
    from stocktycoon.config_loader import SupabaseConfig

logger = logging.getLogger(__name__)

_client: Client | None = None


def get_supabase_client(url: str, key: str) -> Client | None:
    """Get or create Supabase client singleton."""
    global _client

    if _client is not None:
        return _client

    if not url or not key:
        logger.warning("SUPABASE_URL or SUPABASE_KEY not set. Cloud persistence disabled.")
        return None

    try:
        _client = create_client(url, key)
        logger.info("Supabase client initialized")
        return _client
    except Exception as e:
        logger.error(f"Failed to initialize Supabase: {e}")
        return None


class SupabaseStore(GameStore):
    """
    Supabase-backed game store.

    Tables:
    - market_state: single shared market document
    - accounts: per-user cash and portfolio
    - leaderboard: total-asset projection, written with the account
    - pending_orders: standing limit orders
    """

    def __init__(self, config: SupabaseConfig, client: Client | None = None):
        self.config = config
        self.client = client if client is not None else get_supabase_client(config.url, config.key)

    @property
    def is_available(self) -> bool:
        return self.client is not None

    def _require_client(self) -> Client:
        if self.client is None:
            raise PersistenceError("Supabase is not configured")
        return self.client

    # -------------------------------------------------------------------------
    # Market document
    # -------------------------------------------------------------------------

    def write_market_state(self, document: dict[str, Any]) -> None:
        client = self._require_client()
        try:
            client.table(self.config.market_table).upsert(
                {
                    "id": MARKET_DOCUMENT_ID,
                    "document": document,
                    "updated_at": utc_now().isoformat(),
                }
            ).execute()
        except Exception as e:
            raise PersistenceError(f"failed to write market state: {e}") from e

    def read_market_state(self) -> dict[str, Any] | None:
        client = self._require_client()
        try:
            result = (
                client.table(self.config.market_table)
                .select("document")
                .eq("id", MARKET_DOCUMENT_ID)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"failed to read market state: {e}") from e
        return result.data[0]["document"] if result.data else None

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def _fetch_account_record(self, uid: str) -> dict[str, Any] | None:
        client = self._require_client()
        try:
            result = (
                client.table(self.config.accounts_table).select("*").eq("uid", uid).execute()
            )
        except Exception as e:
            raise PersistenceError(f"failed to read account {uid}: {e}") from e
        return result.data[0] if result.data else None

    def get_account(self, uid: str) -> UserAccount | None:
        record = self._fetch_account_record(uid)
        return UserAccount.from_record(record) if record else None

    def create_account(self, account: UserAccount) -> UserAccount:
        client = self._require_client()
        try:
            client.table(self.config.accounts_table).upsert(
                account.to_record(),
                on_conflict="uid",
                ignore_duplicates=True,
            ).execute()
            client.table(self.config.leaderboard_table).upsert(
                LeaderboardEntry.for_account(account).to_record(),
                on_conflict="uid",
                ignore_duplicates=True,
            ).execute()
        except Exception as e:
            raise PersistenceError(f"failed to create account {account.uid}: {e}") from e

        stored = self.get_account(account.uid)
        if stored is None:
            raise PersistenceError(f"account {account.uid} missing after create")
        return stored

    def _commit(self, account: UserAccount, entry: LeaderboardEntry, expected_version: int) -> bool:
        client = self._require_client()
        try:
            result = client.rpc(
                self.config.commit_function,
                {
                    "p_account": account.to_record(),
                    "p_leaderboard": entry.to_record(),
                    "p_expected_version": expected_version,
                },
            ).execute()
        except Exception as e:
            raise PersistenceError(f"failed to commit account {account.uid}: {e}") from e

        data = result.data
        if isinstance(data, list):
            data = data[0] if data else False
        return bool(data)

    def transact_account(self, uid: str, mutate: AccountMutation) -> UserAccount:
        attempts = max(1, self.config.max_retries)
        for attempt in range(1, attempts + 1):
            record = self._fetch_account_record(uid)
            if record is None:
                raise NotFoundError(f"account not found: {uid}")

            account = UserAccount.from_record(record)
            expected_version = account.version
            mutate(account)

            account.version = expected_version + 1
            account.updated_at = utc_now()
            entry = LeaderboardEntry.for_account(account)

            if self._commit(account, entry, expected_version):
                return account

            logger.info(f"Version conflict on account {uid} (attempt {attempt}/{attempts})")

        raise PersistenceError(f"transaction conflict on account {uid} after {attempts} attempts")

    # -------------------------------------------------------------------------
    # Pending orders
    # -------------------------------------------------------------------------

    def add_order(self, order: PendingOrder) -> PendingOrder:
        client = self._require_client()
        try:
            client.table(self.config.orders_table).insert(order.to_record()).execute()
        except Exception as e:
            raise PersistenceError(f"failed to save order: {e}") from e
        return order

    def list_orders(self, uid: str) -> list[PendingOrder]:
        client = self._require_client()
        try:
            result = (
                client.table(self.config.orders_table)
                .select("*")
                .eq("uid", uid)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"failed to list orders for {uid}: {e}") from e
        return [PendingOrder.from_record(r) for r in result.data]

    def delete_order(self, uid: str, order_id: str) -> bool:
        client = self._require_client()
        try:
            result = (
                client.table(self.config.orders_table)
                .delete()
                .eq("uid", uid)
                .eq("id", order_id)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"failed to delete order {order_id}: {e}") from e
        return bool(result.data)

    # -------------------------------------------------------------------------
    # Leaderboard
    # -------------------------------------------------------------------------

    def top_leaderboard(self, limit: int) -> list[LeaderboardEntry]:
        client = self._require_client()
        try:
            result = (
                client.table(self.config.leaderboard_table)
                .select("*")
                .order("total_asset", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"failed to read leaderboard: {e}") from e
        return [LeaderboardEntry.from_record(r) for r in result.data]

"""Tests for the in-memory and Supabase game stores."""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from stocktycoon.config_loader import SupabaseConfig
from stocktycoon.constants import TradeSide
from stocktycoon.db.memory import MemoryStore
from stocktycoon.db.schema import schema_sql
from stocktycoon.db.supabase_client import SupabaseStore, get_supabase_client
from stocktycoon.errors import BusinessRuleError, NotFoundError, PersistenceError
from stocktycoon.trading.models import Holding, PendingOrder, UserAccount


def make_account(uid: str = "u1", cash: str = "1000", version: int = 0) -> UserAccount:
    return UserAccount(uid=uid, cash=Decimal(cash), total_asset=Decimal(cash), version=version)


class TestMemoryStore:
    def test_market_document_copied(self, store: MemoryStore) -> None:
        doc = {"gameTime": 1, "stocks": [{"id": "SAMS"}]}
        store.write_market_state(doc)
        doc["stocks"].append({"id": "KAKO"})

        stored = store.read_market_state()

        assert stored == {"gameTime": 1, "stocks": [{"id": "SAMS"}]}

    def test_read_before_write(self, store: MemoryStore) -> None:
        assert store.read_market_state() is None

    def test_returned_account_is_detached(self, store: MemoryStore) -> None:
        store.create_account(make_account())
        account = store.get_account("u1")
        account.cash = Decimal("0")

        assert store.get_account("u1").cash == Decimal("1000")

    def test_transact_commits_and_bumps_version(self, store: MemoryStore) -> None:
        store.create_account(make_account())

        def mutate(account: UserAccount) -> None:
            account.cash -= Decimal("400")
            account.portfolio["SAMS"] = Holding("SAMS", 2, Decimal("200"))
            account.total_asset = Decimal("1000")

        result = store.transact_account("u1", mutate)

        assert result.version == 1
        stored = store.get_account("u1")
        assert stored.cash == Decimal("600")
        assert stored.portfolio["SAMS"].units_held == 2
        assert store.top_leaderboard(5)[0].total_asset == Decimal("1000")

    def test_failed_mutation_writes_nothing(self, store: MemoryStore) -> None:
        store.create_account(make_account())

        def mutate(account: UserAccount) -> None:
            account.cash = Decimal("0")
            raise BusinessRuleError("insufficient funds")

        with pytest.raises(BusinessRuleError):
            store.transact_account("u1", mutate)

        assert store.get_account("u1").cash == Decimal("1000")
        assert store.get_account("u1").version == 0

    def test_transact_unknown(self, store: MemoryStore) -> None:
        with pytest.raises(NotFoundError):
            store.transact_account("ghost", lambda a: None)

        assert "ghost" not in store._account_locks

    def test_leaderboard_sorted_and_limited(self, store: MemoryStore) -> None:
        for uid, cash in [("a", "10"), ("b", "30"), ("c", "20")]:
            store.create_account(make_account(uid, cash))

        assert [e.uid for e in store.top_leaderboard(2)] == ["b", "c"]

    def test_delete_order(self, store: MemoryStore) -> None:
        order = PendingOrder("u1", "SAMS", TradeSide.BUY, Decimal("100"), 1)
        store.add_order(order)

        assert store.delete_order("u1", order.id) is True
        assert store.delete_order("u1", order.id) is False


def supabase_store(client: MagicMock, max_retries: int = 3) -> SupabaseStore:
    return SupabaseStore(SupabaseConfig(max_retries=max_retries), client=client)


def account_lookup(client: MagicMock, record: dict | None) -> None:
    chain = client.table.return_value.select.return_value.eq.return_value
    chain.execute.return_value = SimpleNamespace(data=[record] if record else [])


class TestSupabaseStore:
    def test_unconfigured_client(self) -> None:
        assert get_supabase_client("", "") is None

    def test_require_client(self) -> None:
        store = SupabaseStore(SupabaseConfig(), client=None)
        store.client = None

        assert store.is_available is False
        with pytest.raises(PersistenceError, match="not configured"):
            store.get_account("u1")

    def test_transact_commits_with_expected_version(self) -> None:
        client = MagicMock()
        account_lookup(client, make_account(version=4).to_record())
        client.rpc.return_value.execute.return_value = SimpleNamespace(data=True)
        store = supabase_store(client)

        result = store.transact_account("u1", lambda a: setattr(a, "cash", Decimal("1")))

        assert result.version == 5
        assert result.cash == Decimal("1")
        name, params = client.rpc.call_args.args
        assert name == "commit_account"
        assert params["p_expected_version"] == 4
        assert params["p_account"]["cash"] == "1"
        assert params["p_leaderboard"]["uid"] == "u1"

    def test_transact_retries_on_conflict(self) -> None:
        client = MagicMock()
        account_lookup(client, make_account().to_record())
        client.rpc.return_value.execute.side_effect = [
            SimpleNamespace(data=False),
            SimpleNamespace(data=[True]),
        ]
        calls = []
        store = supabase_store(client)

        store.transact_account("u1", lambda a: calls.append(a.uid))

        assert calls == ["u1", "u1"]
        assert client.rpc.return_value.execute.call_count == 2

    def test_transact_gives_up_after_retries(self) -> None:
        client = MagicMock()
        account_lookup(client, make_account().to_record())
        client.rpc.return_value.execute.return_value = SimpleNamespace(data=False)
        store = supabase_store(client, max_retries=3)

        with pytest.raises(PersistenceError, match="after 3 attempts"):
            store.transact_account("u1", lambda a: None)

        assert client.rpc.return_value.execute.call_count == 3

    def test_transact_unknown_account(self) -> None:
        client = MagicMock()
        account_lookup(client, None)

        with pytest.raises(NotFoundError):
            supabase_store(client).transact_account("ghost", lambda a: None)
        client.rpc.assert_not_called()

    def test_business_error_skips_commit(self) -> None:
        client = MagicMock()
        account_lookup(client, make_account().to_record())

        def mutate(account: UserAccount) -> None:
            raise BusinessRuleError("insufficient funds")

        with pytest.raises(BusinessRuleError):
            supabase_store(client).transact_account("u1", mutate)
        client.rpc.assert_not_called()

    def test_client_errors_become_persistence_errors(self) -> None:
        client = MagicMock()
        client.table.return_value.upsert.return_value.execute.side_effect = RuntimeError("down")

        with pytest.raises(PersistenceError, match="market state"):
            supabase_store(client).write_market_state({"gameTime": 1})

    def test_list_orders(self) -> None:
        client = MagicMock()
        order = PendingOrder("u1", "SAMS", TradeSide.SELL, Decimal("80000"), 2)
        chain = client.table.return_value.select.return_value.eq.return_value.order.return_value
        chain.execute.return_value = SimpleNamespace(data=[order.to_record()])

        orders = supabase_store(client).list_orders("u1")

        assert orders[0].id == order.id
        assert orders[0].side == TradeSide.SELL
        assert orders[0].target_price == Decimal("80000")


def test_schema_contains_commit_function() -> None:
    sql = schema_sql()
    assert "CREATE OR REPLACE FUNCTION commit_account" in sql
    assert "version = p_expected_version" in sql

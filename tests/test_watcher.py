"""Tests for the client-side limit-order watcher."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from freezegun import freeze_time

from stocktycoon.client.watcher import InFlightTracker, LimitOrderWatcher
from stocktycoon.constants import TradeSide
from stocktycoon.trading.models import PendingOrder


def buy_order(target: str = "50000", order_id: str = "o1") -> PendingOrder:
    return PendingOrder(
        id=order_id,
        uid="u1",
        instrument_id="SAMS",
        side=TradeSide.BUY,
        target_price=Decimal(target),
        amount=3,
    )


def sell_order(target: str = "80000", order_id: str = "o2") -> PendingOrder:
    return PendingOrder(
        id=order_id,
        uid="u1",
        instrument_id="SAMS",
        side=TradeSide.SELL,
        target_price=Decimal(target),
        amount=3,
    )


class TestTriggerRule:
    def test_buy_triggers_at_or_below_target(self) -> None:
        order = buy_order("50000")
        assert order.is_triggered(Decimal("52000")) is False
        assert order.is_triggered(Decimal("50000")) is True
        assert order.is_triggered(Decimal("49000")) is True

    def test_sell_triggers_at_or_above_target(self) -> None:
        order = sell_order("80000")
        assert order.is_triggered(Decimal("79999")) is False
        assert order.is_triggered(Decimal("80000")) is True
        assert order.is_triggered(Decimal("85000")) is True


class TestInFlightTracker:
    def test_acquire_once(self) -> None:
        tracker = InFlightTracker(5.0)
        assert tracker.try_acquire("o1") is True
        assert tracker.try_acquire("o1") is False
        assert tracker.is_in_flight("o1")

    def test_completed_never_reacquired(self) -> None:
        tracker = InFlightTracker(5.0)
        tracker.try_acquire("o1")
        tracker.complete("o1")

        assert tracker.is_in_flight("o1") is False
        assert tracker.try_acquire("o1") is False

    def test_failure_blocks_for_cooldown(self) -> None:
        tracker = InFlightTracker(5.0)
        with freeze_time("2026-01-05 12:00:00") as frozen:
            tracker.try_acquire("o1")
            tracker.fail("o1")

            assert tracker.is_blocked("o1")
            assert tracker.try_acquire("o1") is False

            frozen.tick(timedelta(seconds=4.9))
            assert tracker.try_acquire("o1") is False

            frozen.tick(timedelta(seconds=0.1))
            assert tracker.is_blocked("o1") is False
            assert tracker.try_acquire("o1") is True


class TestLimitOrderWatcher:
    @pytest.mark.asyncio
    async def test_not_triggered_above_target(self) -> None:
        settle, delete = AsyncMock(), AsyncMock()
        watcher = LimitOrderWatcher(settle, delete)

        tasks = watcher.evaluate([buy_order("50000")], {"SAMS": Decimal("52000")})

        assert tasks == []
        settle.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_triggers_exactly_once(self) -> None:
        settle, delete = AsyncMock(), AsyncMock()
        watcher = LimitOrderWatcher(settle, delete)
        order = buy_order("50000")

        first = watcher.evaluate([order], {"SAMS": Decimal("50000")})
        # Order still listed while settlement is in flight.
        second = watcher.evaluate([order], {"SAMS": Decimal("49500")})
        results = await asyncio.gather(*first, *second)
        # Stale listing after completion.
        third = watcher.evaluate([order], {"SAMS": Decimal("49000")})

        assert results == [True]
        assert second == [] and third == []
        settle.assert_awaited_once_with(order)
        delete.assert_awaited_once_with(order)

    @pytest.mark.asyncio
    async def test_unknown_instrument_ignored(self) -> None:
        settle = AsyncMock()
        watcher = LimitOrderWatcher(settle, AsyncMock())

        assert watcher.evaluate([buy_order()], {"KAKO": Decimal("1")}) == []

    @pytest.mark.asyncio
    async def test_failed_settlement_retried_after_cooldown(self) -> None:
        settle = AsyncMock(side_effect=[RuntimeError("insufficient funds"), None])
        delete = AsyncMock()
        watcher = LimitOrderWatcher(settle, delete, retry_cooldown_seconds=5.0)
        order = buy_order()
        prices = {"SAMS": Decimal("40000")}

        with freeze_time("2026-01-05 12:00:00") as frozen:
            results = await asyncio.gather(*watcher.evaluate([order], prices))
            assert results == [False]
            delete.assert_not_awaited()

            frozen.tick(timedelta(seconds=2))
            assert watcher.evaluate([order], prices) == []

            frozen.tick(timedelta(seconds=3))
            results = await asyncio.gather(*watcher.evaluate([order], prices))

        assert results == [True]
        assert settle.await_count == 2
        delete.assert_awaited_once_with(order)

    @pytest.mark.asyncio
    async def test_delete_failure_does_not_resubmit(self) -> None:
        settle = AsyncMock()
        delete = AsyncMock(side_effect=RuntimeError("network"))
        watcher = LimitOrderWatcher(settle, delete)
        order = sell_order()
        prices = {"SAMS": Decimal("90000")}

        results = await asyncio.gather(*watcher.evaluate([order], prices))

        assert results == [True]
        assert watcher.evaluate([order], prices) == []
        settle.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_independent_orders(self) -> None:
        settle = AsyncMock()
        watcher = LimitOrderWatcher(settle, AsyncMock())
        orders = [buy_order("50000", "a"), sell_order("80000", "b"), buy_order("10000", "c")]

        tasks = watcher.evaluate(orders, {"SAMS": Decimal("90000")})
        await asyncio.gather(*tasks)

        assert [call.args[0].id for call in settle.await_args_list] == ["b"]

"""HTTP client for the game server."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

import httpx

from stocktycoon.constants import TradeSide
from stocktycoon.trading.models import PendingOrder

logger = logging.getLogger(__name__)


class TradeRejected(Exception):
    """Server answered a trade with success=false."""


class GameClient:
    """Thin async wrapper over the server's JSON API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GameClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def get_market(self) -> dict[str, Any]:
        response = await self._client.get("/api/market")
        response.raise_for_status()
        return response.json()

    async def get_prices(self) -> dict[str, Decimal]:
        market = await self.get_market()
        return {s["id"]: Decimal(str(s["price"])) for s in market.get("stocks", [])}

    async def list_orders(self, uid: str) -> list[PendingOrder]:
        response = await self._client.get(f"/api/orders/{uid}")
        response.raise_for_status()
        return [
            PendingOrder(
                id=o["id"],
                uid=uid,
                instrument_id=o["stockId"],
                side=TradeSide(o["type"]),
                target_price=Decimal(str(o["price"])),
                amount=int(o["amount"]),
            )
            for o in response.json().get("orders", [])
        ]

    async def trade(self, uid: str, stock_id: str, side: str, amount: int) -> str:
        """Submit a market trade. Returns the server message or raises TradeRejected."""
        response = await self._client.post(
            "/api/trade",
            json={"uid": uid, "stockId": stock_id, "type": side, "amount": amount},
        )
        try:
            body = response.json()
        except ValueError as e:
            raise TradeRejected(f"HTTP {response.status_code}: non-JSON response") from e
        if not body.get("success"):
            raise TradeRejected(body.get("msg") or f"HTTP {response.status_code}")
        return body.get("msg", "")

    async def delete_order(self, uid: str, order_id: str) -> None:
        response = await self._client.delete(f"/api/orders/{uid}/{order_id}")
        if response.status_code != 404:
            response.raise_for_status()

"""FastAPI application exposing the game over HTTP and websocket."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from stocktycoon import __version__
from stocktycoon.constants import DEFAULT_LEADERBOARD_LIMIT
from stocktycoon.errors import GameError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from stocktycoon.app import StockTycoonApp

logger = logging.getLogger(__name__)


# Bodies are loosely typed; the services own validation so every rejection
# carries the same {success, msg} shape.
class TradeBody(BaseModel):
    uid: Any = None
    stockId: Any = None
    type: Any = None
    amount: Any = None


class AccountBody(BaseModel):
    uid: Any = None
    displayName: str | None = None


class RewardBody(BaseModel):
    uid: Any = None


class OrderBody(BaseModel):
    uid: Any = None
    stockId: Any = None
    type: Any = None
    price: Any = None
    amount: Any = None


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "msg": message})


def create_app(game: StockTycoonApp, run_loop: bool = True) -> FastAPI:
    """
    Build the API around an application instance.

    Args:
        game: Wired application (state, store, services).
        run_loop: Start the market loop for the lifetime of the server.
    """

    @contextlib.asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        task: asyncio.Task[None] | None = None
        if run_loop:
            task = asyncio.create_task(game.loop.start())
        try:
            yield
        finally:
            if task is not None:
                game.loop.stop()
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    api = FastAPI(title="Stock Tycoon", version=__version__, lifespan=lifespan)
    api.add_middleware(
        CORSMiddleware,
        allow_origins=game.config.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @api.exception_handler(GameError)
    async def handle_game_error(_: Request, exc: GameError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__}: {exc.message}")
        return _failure(exc.status_code, exc.message)

    @api.exception_handler(RequestValidationError)
    async def handle_request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get("msg", "invalid request") if errors else "invalid request"
        return _failure(400, message)

    @api.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "gameTime": game.state.tick,
            "loopRunning": game.loop.is_running,
        }

    @api.get("/api/market")
    def market() -> dict[str, Any]:
        return game.state.to_document()

    @api.get("/api/history/{stock_id}")
    def history(stock_id: str, scale: str = "1m") -> dict[str, Any]:
        if not game.state.has_instrument(stock_id):
            raise NotFoundError(f"unknown instrument: {stock_id}")
        if scale not in ("1m", "all"):
            raise ValidationError(f"scale must be '1m' or 'all', got: {scale}")
        return {
            "stockId": stock_id,
            "scale": scale,
            "points": game.state.history_for(stock_id, recent_only=scale == "1m"),
        }

    @api.post("/api/trade")
    def trade(body: TradeBody) -> dict[str, Any]:
        try:
            result = game.settlement.execute(body.uid, body.stockId, body.type, body.amount)
        except NotFoundError as e:
            # Trade callers only distinguish accepted (200) from rejected (400).
            raise ValidationError(e.message) from e
        return {
            "success": True,
            "msg": result.message,
            "price": float(result.price),
            "account": result.account.to_public(),
        }

    @api.post("/api/accounts")
    def open_account(body: AccountBody) -> dict[str, Any]:
        account = game.accounts.open_account(body.uid, body.displayName)
        return {"success": True, "account": account.to_public()}

    @api.get("/api/accounts/{uid}")
    def get_account(uid: str) -> dict[str, Any]:
        return {"success": True, "account": game.accounts.get_account(uid).to_public()}

    @api.post("/api/reward")
    def reward(body: RewardBody) -> dict[str, Any]:
        if not body.uid or not isinstance(body.uid, str):
            raise ValidationError("uid is required")
        result = game.rewards.grant(body.uid)
        return {
            "success": True,
            "msg": f"Received a bonus of {result.amount:,}",
            "amount": float(result.amount),
            "account": result.account.to_public(),
        }

    @api.post("/api/orders")
    def place_order(body: OrderBody) -> dict[str, Any]:
        order = game.orders.place(body.uid, body.stockId, body.type, body.price, body.amount)
        return {"success": True, "order": order.to_public()}

    @api.get("/api/orders/{uid}")
    def list_orders(uid: str) -> dict[str, Any]:
        return {"orders": [o.to_public() for o in game.orders.pending(uid)]}

    @api.delete("/api/orders/{uid}/{order_id}")
    def cancel_order(uid: str, order_id: str) -> dict[str, Any]:
        game.orders.cancel(uid, order_id)
        return {"success": True}

    @api.get("/api/leaderboard")
    def leaderboard(
        limit: int = Query(default=DEFAULT_LEADERBOARD_LIMIT, ge=1, le=500),
    ) -> dict[str, Any]:
        entries = game.store.top_leaderboard(limit)
        return {"entries": [e.to_public() for e in entries]}

    @api.websocket("/ws/market")
    async def market_feed(websocket: WebSocket) -> None:
        await websocket.accept()
        queue = game.feed.subscribe()

        async def forward() -> None:
            while True:
                document = await queue.get()
                await websocket.send_json(document)

        sender = asyncio.create_task(forward())
        try:
            await websocket.send_json(game.state.to_document())
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            sender.cancel()
            game.feed.unsubscribe(queue)

    return api

"""Account, holding, order and leaderboard models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from stocktycoon.constants import TradeSide
from stocktycoon.market.models import generate_id, utc_now


def _dec(value: Any, default: str = "0") -> Decimal:
    if value is None:
        return Decimal(default)
    return Decimal(str(value))


def _parse_dt(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass
class Holding:
    """Units of one instrument held by a user. average_cost is 0 iff units_held is 0."""

    instrument_id: str
    units_held: int = 0
    average_cost: Decimal = Decimal("0")

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.instrument_id,
            "held": self.units_held,
            "avgPrice": str(self.average_cost),
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Holding:
        return cls(
            instrument_id=data["id"],
            units_held=int(data.get("held", 0)),
            average_cost=_dec(data.get("avgPrice")),
        )


@dataclass
class UserAccount:
    """Per-user cash and portfolio. Mutated only inside a store transaction."""

    uid: str
    display_name: str = "User"
    cash: Decimal = Decimal("0")
    portfolio: dict[str, Holding] = field(default_factory=dict)
    total_asset: Decimal = Decimal("0")
    principal: Decimal = Decimal("0")
    last_reward_at: datetime | None = None
    updated_at: datetime = field(default_factory=utc_now)
    version: int = 0

    def holding(self, instrument_id: str) -> Holding:
        """Return the holding for an instrument (an empty one if not held)."""
        return self.portfolio.get(instrument_id) or Holding(instrument_id=instrument_id)

    def compute_total_asset(self, prices: dict[str, Decimal]) -> Decimal:
        """cash + sum(live price * units) over the whole portfolio."""
        total = self.cash
        for inst_id, h in self.portfolio.items():
            price = prices.get(inst_id)
            if price is not None:
                total += price * h.units_held
        return total

    def to_record(self) -> dict[str, Any]:
        return {
            "uid": self.uid,
            "display_name": self.display_name,
            "cash": str(self.cash),
            "portfolio": [h.to_record() for h in self.portfolio.values()],
            "total_asset": str(self.total_asset),
            "principal": str(self.principal),
            "last_reward_at": self.last_reward_at.isoformat() if self.last_reward_at else None,
            "updated_at": self.updated_at.isoformat(),
            "version": self.version,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> UserAccount:
        holdings = [Holding.from_record(h) for h in data.get("portfolio") or []]
        return cls(
            uid=data["uid"],
            display_name=data.get("display_name") or "User",
            cash=_dec(data.get("cash")),
            portfolio={h.instrument_id: h for h in holdings if h.units_held > 0},
            total_asset=_dec(data.get("total_asset")),
            principal=_dec(data.get("principal")),
            last_reward_at=_parse_dt(data.get("last_reward_at")),
            updated_at=_parse_dt(data.get("updated_at")) or utc_now(),
            version=int(data.get("version") or 0),
        )

    def to_public(self) -> dict[str, Any]:
        """JSON view for HTTP responses."""
        return {
            "uid": self.uid,
            "userId": self.display_name,
            "cash": float(self.cash),
            "portfolio": [
                {"id": h.instrument_id, "held": h.units_held, "avgPrice": float(h.average_cost)}
                for h in self.portfolio.values()
            ],
            "totalAsset": float(self.total_asset),
            "principal": float(self.principal),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class LeaderboardEntry:
    """Derived projection of an account's total asset."""

    uid: str
    display_name: str
    total_asset: Decimal
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def for_account(cls, account: UserAccount) -> LeaderboardEntry:
        return cls(
            uid=account.uid,
            display_name=account.display_name,
            total_asset=account.total_asset,
            updated_at=account.updated_at,
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "uid": self.uid,
            "display_name": self.display_name,
            "total_asset": str(self.total_asset),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> LeaderboardEntry:
        return cls(
            uid=data["uid"],
            display_name=data.get("display_name") or "User",
            total_asset=_dec(data.get("total_asset")),
            updated_at=_parse_dt(data.get("updated_at")) or utc_now(),
        )

    def to_public(self) -> dict[str, Any]:
        return {
            "uid": self.uid,
            "userId": self.display_name,
            "totalAsset": float(self.total_asset),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class PendingOrder:
    """Standing limit order; destroyed on cancellation or successful settlement."""

    uid: str
    instrument_id: str
    side: TradeSide
    target_price: Decimal
    amount: int
    id: str = field(default_factory=generate_id)
    created_at: datetime = field(default_factory=utc_now)

    def is_triggered(self, live_price: Decimal) -> bool:
        """Buy when price falls to target, sell when it rises to target."""
        if self.side == TradeSide.BUY:
            return live_price <= self.target_price
        return live_price >= self.target_price

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "uid": self.uid,
            "stock_id": self.instrument_id,
            "type": self.side.value,
            "price": str(self.target_price),
            "amount": self.amount,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> PendingOrder:
        return cls(
            id=data["id"],
            uid=data["uid"],
            instrument_id=data["stock_id"],
            side=TradeSide(data["type"]),
            target_price=_dec(data["price"]),
            amount=int(data["amount"]),
            created_at=_parse_dt(data.get("created_at")) or utc_now(),
        )

    def to_public(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "stockId": self.instrument_id,
            "type": self.side.value,
            "price": float(self.target_price),
            "amount": self.amount,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class TradeRequest:
    """Validated settlement input."""

    uid: str
    instrument_id: str
    side: TradeSide
    amount: int


@dataclass(frozen=True)
class TradeResult:
    """Outcome of a committed settlement."""

    request: TradeRequest
    price: Decimal
    account: UserAccount

    @property
    def message(self) -> str:
        verb = "Bought" if self.request.side == TradeSide.BUY else "Sold"
        return f"{verb} {self.request.amount} {self.request.instrument_id} @ {self.price:.2f}"

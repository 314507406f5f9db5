"""Data models for the wallet ledger."""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional


def decimal_from_store(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Convert a JSON number (or numeric string) read from the store to Decimal."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def decimal_to_store(value: Decimal) -> float:
    """Convert a Decimal to the JSON number written to the store."""
    return float(value)


def as_stored(value: Decimal) -> Decimal:
    """The value as it reads back after a write to the store."""
    return decimal_from_store(decimal_to_store(value))


class TradeSide(Enum):
    """Direction of a trade; the value is what the ledger stores in `type`."""
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class Coin:
    """Immutable market snapshot of a coin from the price source.

    Attributes:
        id: Price-source identifier (e.g., "bitcoin")
        symbol: Ticker symbol (e.g., "btc")
        name: Display name
        image: Logo URI
        current_price: Price in USD
        price_change_percentage_24h: 24h change in percent (e.g., -2.5)
        rank: Market-cap rank
    """
    id: str
    symbol: str
    name: str
    current_price: Decimal
    price_change_percentage_24h: Decimal = Decimal("0")
    image: str = ""
    rank: int = 0


@dataclass
class Position:
    """A user's holding of one coin.

    Attributes:
        coin_id: Key of the position under portfolio/{uid}
        quantity: Amount of the coin held, never negative
        invested_amount: Running USD cost basis tracked by the ledger
        name, symbol, image, current_price: Coin snapshot from the last trade
    """
    coin_id: str
    quantity: Decimal
    invested_amount: Decimal
    name: str = ""
    symbol: str = ""
    image: str = ""
    current_price: Decimal = Decimal("0")

    def to_record(self) -> dict:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "image": self.image,
            "currentPrice": decimal_to_store(self.current_price),
            "quantity": decimal_to_store(self.quantity),
            "investedAmount": decimal_to_store(self.invested_amount),
        }

    @classmethod
    def from_record(cls, coin_id: str, data: dict) -> "Position":
        return cls(
            coin_id=coin_id,
            quantity=decimal_from_store(data.get("quantity")),
            invested_amount=decimal_from_store(data.get("investedAmount")),
            name=data.get("name") or "",
            symbol=data.get("symbol") or "",
            image=data.get("image") or "",
            current_price=decimal_from_store(data.get("currentPrice")),
        )


@dataclass
class TransactionRecord:
    """An append-only buy/sell record.

    `timestamp` is assigned by the store (epoch milliseconds). Records built
    right after an append carry None until they are read back.
    """
    coin_name: str
    coin_symbol: str
    quantity: Decimal
    amount: Decimal
    kind: TradeSide
    timestamp: Optional[int] = None
    id: str = ""

    def to_record(self, timestamp: Any) -> dict:
        return {
            "coinName": self.coin_name,
            "coinSymbol": self.coin_symbol,
            "quantity": decimal_to_store(self.quantity),
            "amount": decimal_to_store(self.amount),
            "type": self.kind.value,
            "timestamp": timestamp,
        }

    @classmethod
    def from_record(cls, record_id: str, data: dict) -> Optional["TransactionRecord"]:
        """Parse a stored record; returns None when required fields are missing."""
        try:
            kind = TradeSide(data["type"])
            timestamp = data["timestamp"]
            if not isinstance(timestamp, (int, float)):
                return None
            return cls(
                id=record_id,
                coin_name=str(data["coinName"]),
                coin_symbol=str(data["coinSymbol"]),
                quantity=decimal_from_store(data["quantity"]),
                amount=decimal_from_store(data["amount"]),
                kind=kind,
                timestamp=int(timestamp),
            )
        except (KeyError, ValueError, TypeError):
            return None

    @property
    def price(self) -> Decimal:
        """Effective USD price per unit of this trade."""
        if self.quantity == 0:
            return Decimal("0")
        return self.amount / self.quantity


@dataclass
class UserProfile:
    """Fields stored under users/{uid}."""
    user_id: str
    name: str = ""
    email: str = ""
    balance: Decimal = Decimal("0")
    stripe_customer_id: str = ""

    @classmethod
    def from_record(cls, user_id: str, data: Optional[dict]) -> "UserProfile":
        data = data or {}
        return cls(
            user_id=user_id,
            name=data.get("name") or "",
            email=data.get("email") or "",
            balance=decimal_from_store(data.get("balance")),
            stripe_customer_id=data.get("stripeCustomerId") or "",
        )


@dataclass
class Holding:
    """A position joined with the live coin snapshot."""
    position: Position
    coin: Coin


@dataclass
class PortfolioSummary:
    """Aggregated portfolio valuation.

    Attributes:
        total_current_value: Sum of quantity x current price
        total_invested: Sum of the cost basis implied by 24h price drift
        returns: total_current_value - total_invested
        returns_pct: returns / total_invested x 100, or 0 when nothing is invested
        ledger_invested: Sum of invested amounts tracked by the ledger
    """
    total_current_value: Decimal = Decimal("0")
    total_invested: Decimal = Decimal("0")
    returns: Decimal = Decimal("0")
    returns_pct: Decimal = Decimal("0")
    ledger_invested: Decimal = Decimal("0")
    holdings: list = field(default_factory=list)

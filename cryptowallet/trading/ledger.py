"""Balance, position and transaction-log services over the ledger store.

Every operation takes the user id explicitly. Each method is a separate
store round-trip; reads followed by writes are not transactional.
"""

from __future__ import annotations

import csv
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, List, Optional

from cryptowallet.storage.ledger import SERVER_TIMESTAMP, ILedgerStore, join_path

from .models import (
    Coin,
    Position,
    TradeSide,
    TransactionRecord,
    decimal_from_store,
    decimal_to_store,
    as_stored,
)

logger = logging.getLogger(__name__)


def balance_path(user_id: str) -> str:
    return join_path("users", user_id, "balance")


def portfolio_path(user_id: str, coin_id: Optional[str] = None) -> str:
    return join_path("portfolio", user_id, coin_id or "")


def transactions_path(user_id: str) -> str:
    return join_path("transactions", user_id)


class IBalanceService(ABC):
    """Interface for a user's cash balance."""

    @abstractmethod
    def get_balance(self, user_id: str) -> Decimal:
        """Get the current balance (0 when none is stored)."""
        ...

    @abstractmethod
    def set_balance(self, user_id: str, amount: Decimal) -> None:
        ...

    @abstractmethod
    def adjust_balance(self, user_id: str, delta: Decimal) -> Decimal:
        """Add delta to the balance and return the new value."""
        ...


class BalanceService(IBalanceService):
    def __init__(self, store: ILedgerStore) -> None:
        self._store = store

    def get_balance(self, user_id: str) -> Decimal:
        return decimal_from_store(self._store.get(balance_path(user_id)))

    def set_balance(self, user_id: str, amount: Decimal) -> None:
        self._store.set(balance_path(user_id), decimal_to_store(amount))

    def adjust_balance(self, user_id: str, delta: Decimal) -> Decimal:
        updated = self.get_balance(user_id) + delta
        self.set_balance(user_id, updated)
        logger.info(f"Balance for {user_id} adjusted by {delta} to {updated}")
        return updated


class IPositionService(ABC):
    """Interface for per-coin holdings."""

    @abstractmethod
    def get_position(self, user_id: str, coin_id: str) -> Optional[Position]:
        ...

    @abstractmethod
    def get_positions(self, user_id: str) -> Dict[str, Position]:
        ...

    @abstractmethod
    def apply_buy(self, user_id: str, coin: Coin, quantity: Decimal, amount: Decimal) -> Position:
        """Add quantity and amount to the position, creating it if absent."""
        ...

    @abstractmethod
    def apply_sell(self, user_id: str, coin: Coin, quantity: Decimal, amount: Decimal) -> Optional[Position]:
        """Subtract quantity and amount; delete the position once quantity <= 0.

        Returns:
            The updated position, or None if it was removed
        """
        ...

    @abstractmethod
    def remove_position(self, user_id: str, coin_id: str) -> None:
        ...


class PositionService(IPositionService):
    """Positions stored at portfolio/{uid}/{coinId}."""

    def __init__(self, store: ILedgerStore) -> None:
        self._store = store

    def get_position(self, user_id: str, coin_id: str) -> Optional[Position]:
        data = self._store.get(portfolio_path(user_id, coin_id))
        if not isinstance(data, dict):
            return None
        return Position.from_record(coin_id, data)

    def get_positions(self, user_id: str) -> Dict[str, Position]:
        data = self._store.get(portfolio_path(user_id))
        if not isinstance(data, dict):
            return {}
        return {
            coin_id: Position.from_record(coin_id, record)
            for coin_id, record in data.items()
            if isinstance(record, dict)
        }

    def held_quantity(self, user_id: str, coin_id: str) -> Decimal:
        """Quantity held for a coin, 0 for a missing position."""
        position = self.get_position(user_id, coin_id)
        if position is None:
            return Decimal("0")
        return position.quantity

    def apply_buy(self, user_id: str, coin: Coin, quantity: Decimal, amount: Decimal) -> Position:
        existing = self.get_position(user_id, coin.id)
        current_qty = existing.quantity if existing else Decimal("0")
        invested = existing.invested_amount if existing else Decimal("0")

        position = self._snapshot(coin, as_stored(current_qty + quantity), invested + amount)
        self._store.set(portfolio_path(user_id, coin.id), position.to_record())
        return position

    def apply_sell(self, user_id: str, coin: Coin, quantity: Decimal, amount: Decimal) -> Optional[Position]:
        existing = self.get_position(user_id, coin.id)
        current_qty = existing.quantity if existing else Decimal("0")
        invested = existing.invested_amount if existing else Decimal("0")

        remaining = as_stored(current_qty - as_stored(quantity))
        if remaining <= Decimal("0"):
            self.remove_position(user_id, coin.id)
            return None

        position = self._snapshot(coin, remaining, invested - amount)
        self._store.set(portfolio_path(user_id, coin.id), position.to_record())
        return position

    def remove_position(self, user_id: str, coin_id: str) -> None:
        self._store.delete(portfolio_path(user_id, coin_id))

    @staticmethod
    def _snapshot(coin: Coin, quantity: Decimal, invested: Decimal) -> Position:
        return Position(
            coin_id=coin.id,
            quantity=quantity,
            invested_amount=invested,
            name=coin.name,
            symbol=coin.symbol,
            image=coin.image,
            current_price=coin.current_price,
        )


class ITransactionLog(ABC):
    """Interface for the append-only trade history."""

    @abstractmethod
    def append(self, user_id: str, coin: Coin, quantity: Decimal, amount: Decimal, kind: TradeSide) -> TransactionRecord:
        ...

    @abstractmethod
    def get_transactions(self, user_id: str) -> List[TransactionRecord]:
        """All readable records, most recent first."""
        ...


class TransactionLog(ITransactionLog):
    """Records pushed under transactions/{uid}/{autoId}."""

    def __init__(self, store: ILedgerStore) -> None:
        self._store = store

    def append(self, user_id: str, coin: Coin, quantity: Decimal, amount: Decimal, kind: TradeSide) -> TransactionRecord:
        record = TransactionRecord(
            coin_name=coin.name,
            coin_symbol=coin.symbol,
            quantity=quantity,
            amount=amount,
            kind=kind,
        )
        record.id = self._store.push(transactions_path(user_id), record.to_record(SERVER_TIMESTAMP))
        return record

    def get_transactions(self, user_id: str) -> List[TransactionRecord]:
        data = self._store.get(transactions_path(user_id))
        if not isinstance(data, dict):
            return []

        records = []
        for record_id, raw in data.items():
            record = TransactionRecord.from_record(record_id, raw) if isinstance(raw, dict) else None
            if record is None:
                logger.warning(f"Skipping malformed transaction {record_id} for {user_id}")
                continue
            records.append(record)
        return sort_transactions_by_timestamp(records)


def sort_transactions_by_timestamp(
    transactions: List[TransactionRecord], descending: bool = True
) -> List[TransactionRecord]:
    """Sort by timestamp (most recent first by default), ties broken by id."""
    return sorted(transactions, key=lambda t: (t.timestamp or 0, t.id), reverse=descending)


def export_to_csv(transactions: List[TransactionRecord], filepath: str) -> None:
    """Write transaction history to a CSV file."""
    fieldnames = ["id", "coin_name", "coin_symbol", "type", "quantity", "amount", "price", "timestamp"]

    with open(filepath, "w", newline="", encoding="utf-8") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=fieldnames)
        writer.writeheader()

        for txn in transactions:
            writer.writerow({
                "id": txn.id,
                "coin_name": txn.coin_name,
                "coin_symbol": txn.coin_symbol,
                "type": txn.kind.value,
                "quantity": str(txn.quantity),
                "amount": str(txn.amount),
                "price": str(txn.price),
                "timestamp": "" if txn.timestamp is None else txn.timestamp,
            })

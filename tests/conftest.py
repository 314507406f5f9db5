from __future__ import annotations

from decimal import Decimal

import pytest

from cryptowallet.storage.ledger import InMemoryLedgerStore
from cryptowallet.trading.ledger import BalanceService, PositionService, TransactionLog
from cryptowallet.trading.models import Coin
from cryptowallet.trading.trade import TradeOperation


class FixedClock:
    """Deterministic clock for stores; advances one millisecond per call."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        self.now += 0.001
        return self.now


class FakeResponse:
    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError(f"status {self.status_code}")
        return None

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def make_coin(price="50000", change="0", coin_id="bitcoin", symbol="btc", name="Bitcoin") -> Coin:
    return Coin(
        id=coin_id,
        symbol=symbol,
        name=name,
        current_price=Decimal(str(price)),
        price_change_percentage_24h=Decimal(str(change)),
        image=f"https://img.example/{coin_id}.png",
        rank=1,
    )


def make_trade_stack(balance=None, user_id: str = "user-1"):
    store = InMemoryLedgerStore(clock=FixedClock())
    balances = BalanceService(store)
    positions = PositionService(store)
    transactions = TransactionLog(store)
    if balance is not None:
        balances.set_balance(user_id, Decimal(str(balance)))
    return store, balances, positions, transactions, TradeOperation(balances, positions, transactions)


@pytest.fixture
def store():
    return InMemoryLedgerStore(clock=FixedClock())


@pytest.fixture
def coin():
    return make_coin()

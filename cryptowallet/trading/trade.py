"""Buy/sell trade operation.

This module provides the trade flow used by the buy and sell screens:
- TradeStatus and TradeRejectionReason enums
- TradeResult dataclass for trade outcomes
- TradeOperation, which validates a USD amount against the user's balance or
  holdings and then writes balance, position and transaction log in sequence
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Union

from cryptowallet.errors import StoreError

from .ledger import IBalanceService, ITransactionLog, PositionService
from .models import Coin, TradeSide, TransactionRecord, as_stored

logger = logging.getLogger(__name__)

Amount = Union[str, Decimal, int, float]


class TradeStatus(Enum):
    """Outcome of a trade request."""
    EXECUTED = "executed"
    REJECTED = "rejected"
    FAILED = "failed"


class TradeRejectionReason(Enum):
    """Why a trade was rejected or failed."""
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INSUFFICIENT_HOLDINGS = "insufficient_holdings"
    STORE_ERROR = "store_error"


@dataclass
class TradeResult:
    """Result of a trade request.

    Attributes:
        status: EXECUTED, REJECTED (validation) or FAILED (store error)
        transaction: The appended record if the trade executed
        rejection_reason: Reason when not executed
        message: Human-readable message for inline display
        quantity: Coin quantity computed from the USD amount
    """
    status: TradeStatus
    transaction: Optional[TransactionRecord] = None
    rejection_reason: Optional[TradeRejectionReason] = None
    message: str = ""
    quantity: Decimal = Decimal("0")

    @property
    def ok(self) -> bool:
        return self.status == TradeStatus.EXECUTED


def parse_amount(raw: Amount) -> Optional[Decimal]:
    """Parse a USD amount; returns None unless it is a finite positive number."""
    if isinstance(raw, bool):
        return None
    try:
        value = Decimal(raw.strip()) if isinstance(raw, str) else Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value <= Decimal("0"):
        return None
    return value


class ITradeOperation(ABC):
    """Interface for executing trades."""

    @abstractmethod
    def execute(self, user_id: str, coin: Coin, side: TradeSide, amount: Amount) -> TradeResult:
        """Execute a buy or sell of `amount` USD worth of coin."""
        ...


class TradeOperation(ITradeOperation):
    """Validates and sequences a trade across balance, position and log.

    The three writes are independent store calls with no rollback: if a later
    write fails, earlier ones stay applied and the result reports STORE_ERROR.
    """

    def __init__(
        self,
        balances: IBalanceService,
        positions: PositionService,
        transactions: ITransactionLog,
    ) -> None:
        self._balances = balances
        self._positions = positions
        self._transactions = transactions

    def quote(self, coin: Coin, amount: Amount) -> Decimal:
        """Quantity preview for an amount; 0 for invalid input."""
        value = parse_amount(amount)
        if value is None or coin.current_price <= Decimal("0"):
            return Decimal("0")
        return value / coin.current_price

    def buy(self, user_id: str, coin: Coin, amount: Amount) -> TradeResult:
        return self.execute(user_id, coin, TradeSide.BUY, amount)

    def sell(self, user_id: str, coin: Coin, amount: Amount) -> TradeResult:
        return self.execute(user_id, coin, TradeSide.SELL, amount)

    def execute(self, user_id: str, coin: Coin, side: TradeSide, amount: Amount) -> TradeResult:
        # Validate amount
        value = parse_amount(amount)
        if value is None or coin.current_price <= Decimal("0"):
            return TradeResult(
                status=TradeStatus.REJECTED,
                rejection_reason=TradeRejectionReason.INVALID_AMOUNT,
                message="Please enter a valid amount."
            )

        quantity = value / coin.current_price

        try:
            rejection = self._check(user_id, coin, side, value, quantity)
            if rejection is not None:
                return rejection
            transaction = self._apply(user_id, coin, side, value, quantity)
        except StoreError as e:
            logger.error(f"{side.value} of {coin.id} for {user_id} failed: {e.message}")
            return TradeResult(
                status=TradeStatus.FAILED,
                rejection_reason=TradeRejectionReason.STORE_ERROR,
                message=e.message,
                quantity=quantity,
            )

        verb = "Bought" if side == TradeSide.BUY else "Sold"
        return TradeResult(
            status=TradeStatus.EXECUTED,
            transaction=transaction,
            message=f"{verb} {quantity:.6f} {coin.symbol.upper()} for ${value:.2f}",
            quantity=quantity,
        )

    def _check(
        self, user_id: str, coin: Coin, side: TradeSide, value: Decimal, quantity: Decimal
    ) -> Optional[TradeResult]:
        if side == TradeSide.BUY:
            balance = self._balances.get_balance(user_id)
            if balance < value:
                return TradeResult(
                    status=TradeStatus.REJECTED,
                    rejection_reason=TradeRejectionReason.INSUFFICIENT_FUNDS,
                    message=f"Insufficient funds. You need ${value - balance:.2f} more.",
                    quantity=quantity,
                )
            return None

        held = self._positions.held_quantity(user_id, coin.id)
        # Only the float rounding of a store write is tolerated
        if held <= Decimal("0") or as_stored(quantity) > held:
            return TradeResult(
                status=TradeStatus.REJECTED,
                rejection_reason=TradeRejectionReason.INSUFFICIENT_HOLDINGS,
                message=f"You cannot sell more than {held:.6f} coins.",
                quantity=quantity,
            )
        return None

    def _apply(
        self, user_id: str, coin: Coin, side: TradeSide, value: Decimal, quantity: Decimal
    ) -> TransactionRecord:
        if side == TradeSide.BUY:
            self._balances.adjust_balance(user_id, -value)
            self._positions.apply_buy(user_id, coin, quantity, value)
        else:
            self._balances.adjust_balance(user_id, value)
            self._positions.apply_sell(user_id, coin, quantity, value)

        transaction = self._transactions.append(user_id, coin, quantity, value, side)
        logger.info(f"{side.value} {quantity} {coin.id} for {value} by {user_id} ({transaction.id})")
        return transaction

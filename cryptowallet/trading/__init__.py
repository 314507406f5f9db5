# Trading module
"""Wallet ledger components: balance, positions, trade flow, valuation and wishlist."""

from .models import (
    Coin,
    Holding,
    PortfolioSummary,
    Position,
    TradeSide,
    TransactionRecord,
    UserProfile,
)
from .ledger import (
    IBalanceService,
    BalanceService,
    IPositionService,
    PositionService,
    ITransactionLog,
    TransactionLog,
    export_to_csv,
    sort_transactions_by_timestamp,
)
from .trade import (
    TradeStatus,
    TradeRejectionReason,
    TradeResult,
    ITradeOperation,
    TradeOperation,
    parse_amount,
)
from .valuation import (
    IPortfolioValuation,
    PortfolioValuation,
    join_holdings,
    search_coins,
)
from .wishlist import WishlistService, wishlist_coins

__all__ = [
    "Coin",
    "Holding",
    "PortfolioSummary",
    "Position",
    "TradeSide",
    "TransactionRecord",
    "UserProfile",
    "IBalanceService",
    "BalanceService",
    "IPositionService",
    "PositionService",
    "ITransactionLog",
    "TransactionLog",
    "export_to_csv",
    "sort_transactions_by_timestamp",
    "TradeStatus",
    "TradeRejectionReason",
    "TradeResult",
    "ITradeOperation",
    "TradeOperation",
    "parse_amount",
    "IPortfolioValuation",
    "PortfolioValuation",
    "join_holdings",
    "search_coins",
    "WishlistService",
    "wishlist_coins",
]

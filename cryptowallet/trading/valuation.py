"""Portfolio valuation over live prices."""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Iterable, List

from .models import Coin, Holding, PortfolioSummary, Position


def search_coins(coins: Iterable[Coin], text: str) -> List[Coin]:
    """Filter coins whose name or symbol contains text (case-insensitive)."""
    coins = list(coins)
    query = text.strip().lower()
    if not query:
        return coins
    return [c for c in coins if query in c.name.lower() or query in c.symbol.lower()]


def join_holdings(positions: Dict[str, Position], coins: Iterable[Coin]) -> List[Holding]:
    """Pair each held position with its live coin, in price-source order.

    Positions whose coin is missing from the live list are left out.
    """
    return [Holding(position=positions[c.id], coin=c) for c in coins if c.id in positions]


class IPortfolioValuation(ABC):
    """Interface for valuing positions against live prices."""

    @abstractmethod
    def current_value(self, holding: Holding) -> Decimal:
        ...

    @abstractmethod
    def implied_invested_value(self, holding: Holding) -> Decimal:
        ...

    @abstractmethod
    def summarize(self, holdings: List[Holding]) -> PortfolioSummary:
        ...


class PortfolioValuation(IPortfolioValuation):
    """Values holdings from current prices and 24h change.

    The invested figure is estimated from the 24h price drift, i.e. the value
    the holding had before the last day's move. The ledger's own running
    invested amount is reported separately as `ledger_invested`.
    """

    def current_value(self, holding: Holding) -> Decimal:
        return holding.position.quantity * holding.coin.current_price

    def implied_invested_value(self, holding: Holding) -> Decimal:
        """Value of the holding at the price 24h ago.

        A -100% change has no defined prior price and contributes 0.
        """
        factor = Decimal("1") + holding.coin.price_change_percentage_24h / Decimal("100")
        if factor == Decimal("0"):
            return Decimal("0")
        return self.current_value(holding) / factor

    def summarize(self, holdings: List[Holding]) -> PortfolioSummary:
        total_current = sum((self.current_value(h) for h in holdings), Decimal("0"))
        total_invested = sum((self.implied_invested_value(h) for h in holdings), Decimal("0"))
        ledger_invested = sum((h.position.invested_amount for h in holdings), Decimal("0"))

        returns = total_current - total_invested
        if total_invested != Decimal("0"):
            returns_pct = returns / total_invested * Decimal("100")
        else:
            returns_pct = Decimal("0")

        return PortfolioSummary(
            total_current_value=total_current,
            total_invested=total_invested,
            returns=returns,
            returns_pct=returns_pct,
            ledger_invested=ledger_invested,
            holdings=list(holdings),
        )

"""Wiring of stores, gateways and services into one Wallet object."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from cryptowallet.accounts.auth import AuthSession, FirebaseAuthProvider, IAuthProvider
from cryptowallet.accounts.profile import UserProfileService
from cryptowallet.config import AppConfig
from cryptowallet.data.providers import CoinGeckoProvider
from cryptowallet.payments.customers import BackendClient, CustomerProvisioner
from cryptowallet.payments.funding import CardService, FundingService
from cryptowallet.payments.gateway import IPaymentGateway, StripeGateway
from cryptowallet.storage.firebase import FirebaseLedgerStore
from cryptowallet.storage.ledger import ILedgerStore, InMemoryLedgerStore
from cryptowallet.storage.storage import JsonFileStorage, SessionCache
from cryptowallet.trading.ledger import BalanceService, PositionService, TransactionLog
from cryptowallet.trading.models import Coin, PortfolioSummary
from cryptowallet.trading.trade import TradeOperation
from cryptowallet.trading.valuation import PortfolioValuation, join_holdings
from cryptowallet.trading.wishlist import WishlistService
from cryptowallet.util.http import fix_ssl_env
from cryptowallet.util.log import setup_logging

logger = logging.getLogger(__name__)


@dataclass
class Wallet:
    """All services, each taking the user id explicitly."""
    store: ILedgerStore
    balances: BalanceService
    positions: PositionService
    transactions: TransactionLog
    trades: TradeOperation
    valuation: PortfolioValuation
    wishlist: WishlistService
    profiles: UserProfileService
    auth: Optional[IAuthProvider] = None
    cards: Optional[CardService] = None
    funding: Optional[FundingService] = None
    customers: Optional[CustomerProvisioner] = None
    prices: Optional[CoinGeckoProvider] = None

    def portfolio_summary(self, user_id: str, coins: List[Coin]) -> PortfolioSummary:
        """Value the user's positions against the given live coins."""
        holdings = join_holdings(self.positions.get_positions(user_id), coins)
        return self.valuation.summarize(holdings)

    def sign_up(self, email: str, password: str, confirm_password: str, name: str = "") -> AuthSession:
        """Create the account and its profile record."""
        if self.auth is None:
            raise RuntimeError("No auth provider configured")
        session = self.auth.sign_up(email, password, confirm_password)
        self._use_token(session)
        self.profiles.ensure_profile(session.user_id, session.email, name)
        return session

    def sign_in(self, email: str, password: str) -> AuthSession:
        if self.auth is None:
            raise RuntimeError("No auth provider configured")
        session = self.auth.sign_in(email, password)
        self._use_token(session)
        return session

    def _use_token(self, session: AuthSession) -> None:
        if isinstance(self.store, FirebaseLedgerStore) and session.id_token:
            self.store.set_auth_token(session.id_token)


def build_wallet(
    config: Optional[AppConfig] = None,
    store: Optional[ILedgerStore] = None,
    gateway: Optional[IPaymentGateway] = None,
) -> Wallet:
    """Build a Wallet from config; explicit store/gateway override config."""
    config = config or AppConfig.from_env()
    setup_logging(config.log_level)
    fix_ssl_env()

    if store is None:
        if config.database_url:
            store = FirebaseLedgerStore(config.database_url, config.database_auth or None, config.http_timeout)
        else:
            logger.warning("No database URL configured, using an in-memory ledger")
            store = InMemoryLedgerStore()

    if gateway is None and config.stripe_secret_key:
        gateway = StripeGateway(config.stripe_secret_key, timeout_s=config.http_timeout)

    balances = BalanceService(store)
    positions = PositionService(store)
    transactions = TransactionLog(store)
    profiles = UserProfileService(store)

    auth = None
    if config.firebase_api_key:
        session = SessionCache(JsonFileStorage(config.data_dir))
        auth = FirebaseAuthProvider(config.firebase_api_key, session, timeout_s=config.http_timeout)

    return Wallet(
        store=store,
        balances=balances,
        positions=positions,
        transactions=transactions,
        trades=TradeOperation(balances, positions, transactions),
        valuation=PortfolioValuation(),
        wishlist=WishlistService(store),
        profiles=profiles,
        auth=auth,
        cards=CardService(gateway) if gateway else None,
        funding=FundingService(gateway, balances) if gateway else None,
        customers=CustomerProvisioner(profiles, BackendClient(config.backend_url, config.http_timeout)),
        prices=CoinGeckoProvider(timeout_s=config.http_timeout),
    )

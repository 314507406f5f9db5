"""Per-user wishlist of coin ids stored at wishlist/{uid}."""

from __future__ import annotations

import logging
from typing import Iterable, List

from cryptowallet.storage.ledger import ILedgerStore, join_path

from .models import Coin

logger = logging.getLogger(__name__)


def wishlist_path(user_id: str) -> str:
    return join_path("wishlist", user_id)


class WishlistService:
    """Reads and rewrites the whole wishlist on every change.

    Toggles are read-modify-write of the full list, so two devices toggling
    at the same time can lose one of the changes.
    """

    def __init__(self, store: ILedgerStore) -> None:
        self._store = store

    def get_wishlist(self, user_id: str) -> List[str]:
        data = self._store.get(wishlist_path(user_id))
        if isinstance(data, dict):
            # Sparse arrays come back as index-keyed objects
            data = [data[k] for k in sorted(data, key=lambda k: (0, int(k), "") if k.isdigit() else (1, 0, k))]
        if not isinstance(data, list):
            return []
        return [str(coin_id) for coin_id in data if coin_id]

    def is_wishlisted(self, user_id: str, coin_id: str) -> bool:
        return coin_id in self.get_wishlist(user_id)

    def toggle(self, user_id: str, coin_id: str) -> bool:
        """Flip membership of coin_id.

        Returns:
            True if the coin is wishlisted after the call
        """
        coins = self.get_wishlist(user_id)
        if coin_id in coins:
            coins = [c for c in coins if c != coin_id]
            wishlisted = False
        else:
            coins.append(coin_id)
            wishlisted = True

        self._store.set(wishlist_path(user_id), coins)
        logger.info(f"Wishlist for {user_id}: {coin_id} -> {wishlisted}")
        return wishlisted


def wishlist_coins(coins: Iterable[Coin], coin_ids: Iterable[str]) -> List[Coin]:
    """Live coins whose ids are on the wishlist, in price-source order."""
    wanted = set(coin_ids)
    return [c for c in coins if c.id in wanted]

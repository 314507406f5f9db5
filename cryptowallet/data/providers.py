from __future__ import annotations

import threading
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from cryptowallet.trading.models import Coin, decimal_from_store
from cryptowallet.util.http import make_ssl_context


COINGECKO_BASE = "https://api.coingecko.com/api/v3"


def coin_from_market(item: Dict[str, Any]) -> Optional[Coin]:
    """Map one /coins/markets entry to a Coin, or None if it has no id/price."""
    coin_id = item.get("id")
    price = item.get("current_price")
    if not coin_id or price is None:
        return None
    return Coin(
        id=str(coin_id),
        symbol=str(item.get("symbol") or ""),
        name=str(item.get("name") or coin_id),
        image=str(item.get("image") or ""),
        current_price=decimal_from_store(price),
        price_change_percentage_24h=decimal_from_store(item.get("price_change_percentage_24h")),
        rank=int(item.get("market_cap_rank") or 0),
    )


class CoinGeckoProvider:
    """Price source returning market snapshots ordered by market cap."""

    def __init__(self, timeout_s: float = 5.0, base_url: str = COINGECKO_BASE) -> None:
        self._client = httpx.Client(base_url=base_url, timeout=timeout_s, verify=make_ssl_context())
        self._lock = threading.Lock()

    def fetch_coins(self, per_page: int = 250, page: int = 1) -> List[Coin]:
        params = {
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": int(per_page),
            "page": int(page),
            "sparkline": "false",
            "price_change_percentage": "24h",
        }
        with self._lock:
            r = self._client.get("/coins/markets", params=params)
        r.raise_for_status()

        out: List[Coin] = []
        for item in r.json() or []:
            if not isinstance(item, dict):
                continue
            coin = coin_from_market(item)
            if coin is not None:
                out.append(coin)
        return out

    def fetch_prices(self, coin_ids: List[str]) -> Dict[str, Decimal]:
        """Current USD price for each of the given ids."""
        ids = [i for i in coin_ids if i]
        if not ids:
            return {}
        with self._lock:
            r = self._client.get("/simple/price", params={"ids": ",".join(ids), "vs_currencies": "usd"})
        r.raise_for_status()
        data = r.json() or {}
        return {
            cid: decimal_from_store(obj.get("usd"))
            for cid, obj in data.items()
            if isinstance(obj, dict) and obj.get("usd") is not None
        }

    def close(self) -> None:
        self._client.close()

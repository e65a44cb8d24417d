"""CoinGecko simple-price lookups with a short-lived in-memory cache.

One `PriceCache` is created per application and handed to every stats source,
so tests can build their own instance with a fake clock instead of sharing
module state.
"""
from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional
import logging
import threading
import time

import requests

from verifiedonchain.models import Blockchain, coingecko_id

logger = logging.getLogger(__name__)

COINGECKO_BASE = 'https://api.coingecko.com/api/v3'
PRICE_CACHE_TTL = 60  # seconds


class PriceCache:
    def __init__(self, ttl_seconds: int = PRICE_CACHE_TTL, clock: Callable[[], float] = time.time,
                 base_url: str = COINGECKO_BASE, timeout: int = 10, vs_currency: str = 'usd') -> None:
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.vs_currency = vs_currency
        self._entries: Dict[str, Dict[str, float]] = {}
        self._lock = threading.Lock()

    def _is_fresh(self, coin_id: str, now: float) -> bool:
        entry = self._entries.get(coin_id)
        return entry is not None and (now - entry['fetched_at']) <= self.ttl_seconds

    def fetch_token_prices(self, ids: Iterable[str]) -> Dict[str, float]:
        """Return {coin_id: usd_price} for every requested id.

        Stale or unknown ids are fetched in one batched request. Upstream
        failures are logged and the cached value (or 0.0) is returned instead.
        """
        wanted: List[str] = list(dict.fromkeys(i for i in ids if i))
        now = self.clock()
        with self._lock:
            missing = [i for i in wanted if not self._is_fresh(i, now)]

        if missing:
            fetched = self._request_prices(missing)
            with self._lock:
                for coin_id, price in fetched.items():
                    self._entries[coin_id] = {'price': price, 'fetched_at': now}

        with self._lock:
            return {i: float(self._entries.get(i, {}).get('price', 0.0) or 0.0) for i in wanted}

    def _request_prices(self, ids: List[str]) -> Dict[str, float]:
        try:
            url = f"{self.base_url}/simple/price"
            params = {'ids': ','.join(ids), 'vs_currencies': self.vs_currency}
            r = requests.get(url, params=params, timeout=self.timeout)
            r.raise_for_status()
            jd = r.json()
        except Exception as e:
            logger.warning("CoinGecko price request failed for %s: %s", ids, e)
            return {}

        prices: Dict[str, float] = {}
        if not isinstance(jd, dict):
            return prices
        for coin_id, quote in jd.items():
            if not isinstance(quote, dict):
                continue
            try:
                prices[coin_id] = float(quote.get(self.vs_currency) or 0.0)
            except (TypeError, ValueError):
                continue
        return prices

    def get_price(self, coin_id: str) -> float:
        """Fetch (or reuse) a single coin price."""
        return self.fetch_token_prices([coin_id]).get(coin_id, 0.0)

    def get_exchange_rate(self, chain: Blockchain) -> float:
        """Cached native-coin price for `chain`; never hits the network."""
        with self._lock:
            entry: Optional[Dict[str, float]] = self._entries.get(coingecko_id(chain))
        return float(entry['price']) if entry else 0.0

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

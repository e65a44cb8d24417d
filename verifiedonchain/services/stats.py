"""Route (address, chain) pairs to a stats source and attach a value history.

The history is fabricated: it starts from the real current USD value and
walks backwards with a random daily factor. Every result carries
``is_simulated_history = True`` so callers can disclose that to the user.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple
import concurrent.futures
import logging
import random
import time

from verifiedonchain.models import Blockchain, UserProfile, WalletStats, coingecko_id
from verifiedonchain.services.explorer import ChainStatsSource, build_default_sources
from verifiedonchain.services.prices import PriceCache

logger = logging.getLogger(__name__)

HISTORY_DAYS = 365
DAILY_VOLATILITY = 0.05


def synthesize_history(current_value: float, rng: random.Random, today: datetime,
                       days: int = HISTORY_DAYS) -> List[Dict[str, object]]:
    """Ascending daily series ending at `today` with exactly `current_value`."""
    history: List[Dict[str, object]] = []
    simulated = current_value
    for i in range(days):
        day = (today - timedelta(days=i)).date()
        history.append({'date': day.isoformat(), 'value': max(0.0, simulated)})
        change = 1 + ((rng.random() * 2 * DAILY_VOLATILITY) - DAILY_VOLATILITY)
        simulated = simulated / change
    history.reverse()
    if history:
        history[-1]['value'] = current_value
    return history


class StatsAggregator:
    def __init__(self, price_cache: PriceCache, sources: Optional[Dict[Blockchain, ChainStatsSource]] = None,
                 rng: Optional[random.Random] = None, clock: Callable[[], float] = time.time,
                 settings=None) -> None:
        self.price_cache = price_cache
        self.clock = clock
        self.sources = sources if sources is not None else build_default_sources(price_cache, settings, clock=clock)
        self.rng = rng or random.Random()

    def source_for(self, chain: Blockchain) -> ChainStatsSource:
        try:
            return self.sources[chain]
        except KeyError:
            raise ValueError(f"No stats source configured for {chain}")

    def current_value_usd(self, stats: WalletStats, chain: Blockchain) -> float:
        # Usually served from the cache entry the source just populated
        price = self.price_cache.get_price(coingecko_id(chain))
        return stats.balance * price

    def fetch_wallet_stats(self, address: str, chain: Blockchain) -> WalletStats:
        stats = self.source_for(chain).fetch_stats(address)
        current_value = self.current_value_usd(stats, chain)
        today = datetime.fromtimestamp(self.clock(), tz=timezone.utc)
        stats.history = synthesize_history(current_value, self.rng, today)
        stats.is_simulated_history = True
        return stats

    def fetch_many(self, profiles: Sequence[UserProfile], max_workers: int = 8) -> Dict[str, Optional[WalletStats]]:
        """Stats for many profiles at once, keyed by profile id.

        A row whose fetch blows up gets None; other rows are unaffected.
        """
        results: Dict[str, Optional[WalletStats]] = {}
        if not profiles:
            return results

        with concurrent.futures.ThreadPoolExecutor(max_workers=min(max_workers, max(1, len(profiles)))) as ex:
            future_map: Dict[concurrent.futures.Future, Tuple[str, str]] = {
                ex.submit(self.fetch_wallet_stats, p.address, p.chain): (p.id, p.username) for p in profiles
            }
            for fut in concurrent.futures.as_completed(future_map):
                profile_id, username = future_map[fut]
                try:
                    results[profile_id] = fut.result()
                except Exception:
                    logger.exception("Stats fetch failed for profile %s", username)
                    results[profile_id] = None
        return results

"""Dashboard and profile-page view models.

Pure functions over profiles and their (already fetched) stats, so the routes
stay thin and the sorting/filtering rules can be tested without HTTP.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence
import time

from verifiedonchain.models import Blockchain, SUPPORTED_CHAINS, UserProfile, WalletStats
from verifiedonchain.services.formatting import format_usd, get_explorer_link, mask_address

SORT_OPTIONS = ('newest', 'oldest', 'balance', 'growth')
TIME_RANGES: Dict[str, Optional[int]] = {
    '1D': 1,
    '7D': 7,
    '30D': 30,
    '90D': 90,
    '1Y': 365,
    'ALL': None,  # whole history
}
DAY_MS = 24 * 60 * 60 * 1000

SOCIAL_URLS = {
    'twitter': 'https://x.com/{handle}',
    'instagram': 'https://instagram.com/{handle}',
    'threads': 'https://threads.net/@{handle}',
    'reddit': 'https://reddit.com/user/{handle}',
}


def calculate_growth(stats: Optional[WalletStats], time_range: str = '30D') -> Optional[float]:
    """Percent change between the start of the range and the latest value.

    None when the stats never arrived, so such rows can rank below any real value.
    """
    if stats is None:
        return None
    if not stats.history:
        return 0.0
    history = stats.history
    days = TIME_RANGES.get(time_range, 30)
    if days is None:
        days = len(history)
    start_val = float(history[max(0, len(history) - 1 - days)]['value'])
    end_val = float(history[-1]['value'])
    if start_val > 0:
        return ((end_val - start_val) / start_val) * 100
    return 0.0


def _sort_key(sort_by: str) -> Callable[[Dict[str, Any]], Any]:
    if sort_by == 'oldest':
        return lambda r: r['profile']['created_at']
    if sort_by == 'balance':
        return lambda r: -r['usd_balance']
    if sort_by == 'growth':
        # Missing growth sorts after every real value
        return lambda r: (r['growth'] is None, -(r['growth'] or 0.0))
    return lambda r: -r['profile']['created_at']


def build_dashboard(profiles: Sequence[UserProfile], stats_by_id: Dict[str, Optional[WalletStats]],
                    rates: Dict[Blockchain, float], search: str = '', sort_by: str = 'newest',
                    time_range: str = '30D', chain: Optional[Blockchain] = None) -> Dict[str, Any]:
    if sort_by not in SORT_OPTIONS:
        raise ValueError(f"Unknown sort option: {sort_by}")
    if time_range not in TIME_RANGES:
        raise ValueError(f"Unknown time range: {time_range}")

    rows: List[Dict[str, Any]] = []
    for p in profiles:
        stats = stats_by_id.get(p.id)
        usd_balance = (stats.balance * rates.get(p.chain, 0.0)) if stats else 0.0
        rows.append({
            'profile': p.to_dict(),
            'masked_address': mask_address(p.address),
            'stats': stats.to_dict() if stats else None,
            'loading': stats is None,
            'usd_balance': usd_balance,
            'usd_balance_display': format_usd(usd_balance),
            'growth': calculate_growth(stats, time_range),
        })

    # Totals cover every profile, not just the filtered view
    total_value = sum(r['usd_balance'] for r in rows)

    term = (search or '').strip().lower()
    visible = [
        r for r in rows
        if (term in r['profile']['username'].lower() or term in r['profile']['address'].lower())
        and (chain is None or r['profile']['chain'] == chain.value)
    ]
    visible.sort(key=_sort_key(sort_by))

    return {
        'total_value': total_value,
        'total_value_display': format_usd(total_value),
        'verified_users': len(rows),
        'sort': sort_by,
        'range': time_range,
        'rows': visible,
    }


def days_active(stats: Optional[WalletStats], now_ms: Optional[int] = None) -> int:
    if stats is None or not stats.first_tx_date:
        return 0
    try:
        first = datetime.fromisoformat(stats.first_tx_date.replace('Z', '+00:00'))
    except ValueError:
        return 0
    if first.tzinfo is None:
        first = first.replace(tzinfo=timezone.utc)
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return int((now_ms - first.timestamp() * 1000) // DAY_MS)


def wallet_status(stats: Optional[WalletStats], now_ms: Optional[int] = None) -> str:
    if stats is None or stats.latest_transaction is None:
        return 'Unknown'
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    days_since = (now_ms - stats.latest_transaction.timestamp) // DAY_MS
    if days_since < 7:
        return 'Very Active'
    if days_since < 30:
        return 'Active'
    if days_since < 180:
        return 'Moderate'
    return 'Dormant'


def social_links(profile: UserProfile) -> Dict[str, str]:
    return {
        key: template.format(handle=profile.socials[key])
        for key, template in SOCIAL_URLS.items()
        if profile.socials.get(key)
    }


def build_profile_view(profile: UserProfile, stats: Optional[WalletStats], rate: float,
                       now_ms: Optional[int] = None) -> Dict[str, Any]:
    usd_balance = stats.balance * rate if stats else 0.0
    chain_info = SUPPORTED_CHAINS[profile.chain]
    return {
        'profile': profile.to_dict(),
        'chain_name': chain_info['name'],
        'masked_address': mask_address(profile.address),
        'explorer_link': get_explorer_link(profile.address, profile.chain),
        'data_source': chain_info['data_source'],
        'social_links': social_links(profile),
        'stats': stats.to_dict() if stats else None,
        'usd_balance': usd_balance,
        'usd_balance_display': format_usd(usd_balance),
        'days_active': days_active(stats, now_ms),
        'wallet_status': wallet_status(stats, now_ms),
    }

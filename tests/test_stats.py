import random
from datetime import date, datetime, timedelta, timezone

import pytest

from verifiedonchain.models import Blockchain, UserProfile, WalletStats
from verifiedonchain.services.stats import StatsAggregator, synthesize_history

TODAY = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class StubPrices:
    def get_price(self, coin_id):
        return {'bitcoin': 50000.0, 'ethereum': 2000.0}.get(coin_id, 0.0)


class FixedSource:
    def __init__(self, balance):
        self.balance = balance

    def fetch_stats(self, address):
        return WalletStats(balance=self.balance)


class ExplodingSource:
    def fetch_stats(self, address):
        raise RuntimeError('boom')


def test_history_shape():
    history = synthesize_history(1000.0, random.Random(42), TODAY)
    assert len(history) == 365
    dates = [date.fromisoformat(h['date']) for h in history]
    assert dates[-1] == date(2026, 1, 15)
    assert all(b - a == timedelta(days=1) for a, b in zip(dates, dates[1:]))
    assert history[-1]['value'] == 1000.0
    assert all(h['value'] >= 0 for h in history)


def test_history_is_deterministic_for_a_seed():
    a = synthesize_history(500.0, random.Random(7), TODAY)
    b = synthesize_history(500.0, random.Random(7), TODAY)
    c = synthesize_history(500.0, random.Random(8), TODAY)
    assert a == b
    assert a != c


def test_daily_moves_stay_within_five_percent():
    history = synthesize_history(1000.0, random.Random(1), TODAY)
    for prev, cur in zip(history, history[1:]):
        ratio = cur['value'] / prev['value']
        assert 0.95 <= ratio <= 1.05


def test_zero_value_history_stays_flat():
    history = synthesize_history(0.0, random.Random(3), TODAY)
    assert all(h['value'] == 0 for h in history)


def test_fetch_wallet_stats_anchors_history_to_current_value():
    aggregator = StatsAggregator(
        StubPrices(),
        sources={Blockchain.BTC: FixedSource(2.0)},
        rng=random.Random(42),
        clock=lambda: TODAY.timestamp(),
    )
    stats = aggregator.fetch_wallet_stats('1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa', Blockchain.BTC)
    assert stats.is_simulated_history is True
    assert len(stats.history) == 365
    assert stats.history[-1]['value'] == 100000.0
    assert stats.history[-1]['date'] == '2026-01-15'


def test_unknown_chain_source():
    aggregator = StatsAggregator(StubPrices(), sources={})
    with pytest.raises(ValueError):
        aggregator.fetch_wallet_stats('0x' + 'a' * 40, Blockchain.ETH)


def test_fetch_many_isolates_failures():
    aggregator = StatsAggregator(
        StubPrices(),
        sources={Blockchain.ETH: FixedSource(1.0), Blockchain.BTC: ExplodingSource()},
        rng=random.Random(0),
    )
    profiles = [
        UserProfile(id='p1', username='alice_1', address='0x' + 'a' * 40, chain=Blockchain.ETH, created_at=1),
        UserProfile(id='p2', username='bob_22', address='1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa',
                    chain=Blockchain.BTC, created_at=2),
    ]
    results = aggregator.fetch_many(profiles, max_workers=2)
    assert results['p1'].balance == 1.0
    assert results['p1'].history[-1]['value'] == 2000.0
    assert results['p2'] is None
    assert aggregator.fetch_many([]) == {}

import pytest

from verifiedonchain.models import Blockchain, LatestTransaction, TokenAsset, UserProfile, WalletStats
from verifiedonchain.services.directory import (
    DAY_MS, build_dashboard, build_profile_view, calculate_growth, days_active, social_links, wallet_status,
)

NOW_MS = 1768435200000  # 2026-01-15T00:00:00Z
EVM_ADDR = '0xABCDEF0123456789abcdef0123456789ABCDEF01'
BTC_ADDR = '1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa'


def _history(values):
    return [{'date': f'day-{i}', 'value': v} for i, v in enumerate(values)]


def _profile(pid, username, address, chain, created_at, **kw):
    return UserProfile(id=pid, username=username, address=address, chain=chain, created_at=created_at, **kw)


def _latest(timestamp):
    token = TokenAsset(symbol='ETH', name='Ethereum', balance=0, decimals=18,
                       contract_address='native', chain=Blockchain.ETH)
    return LatestTransaction(hash='0xh', timestamp=timestamp, type='send', token=token,
                             amount=1.0, amount_usd=2000.0)


def test_growth_over_range():
    stats = WalletStats(history=_history([100.0] + [120.0] * 29 + [150.0]))
    assert calculate_growth(stats, '30D') == pytest.approx(50.0)
    assert calculate_growth(stats, '1D') == pytest.approx(25.0)
    assert calculate_growth(stats, 'ALL') == pytest.approx(50.0)


def test_growth_zero_start_or_missing_stats():
    assert calculate_growth(WalletStats(history=_history([0.0, 10.0])), '1D') == 0.0
    assert calculate_growth(None, '30D') is None
    assert calculate_growth(WalletStats(), '30D') == 0.0


@pytest.fixture
def dashboard_input():
    profiles = [
        _profile('p1', 'alice_1', EVM_ADDR, Blockchain.ETH, 1000),
        _profile('p2', 'bob_btc', BTC_ADDR, Blockchain.BTC, 3000),
        _profile('p3', 'carol', '0x' + 'c' * 40, Blockchain.BNB, 2000),
    ]
    stats = {
        'p1': WalletStats(balance=2.0, history=_history([100.0, 200.0])),
        'p2': WalletStats(balance=0.1, history=_history([100.0, 90.0])),
        'p3': None,
    }
    rates = {Blockchain.ETH: 2000.0, Blockchain.BTC: 50000.0}
    return profiles, stats, rates


def test_dashboard_newest_first_and_totals(dashboard_input):
    profiles, stats, rates = dashboard_input
    result = build_dashboard(profiles, stats, rates)

    assert [r['profile']['username'] for r in result['rows']] == ['bob_btc', 'carol', 'alice_1']
    assert result['total_value'] == pytest.approx(9000.0)
    assert result['total_value_display'] == '$9,000'
    assert result['verified_users'] == 3
    carol = result['rows'][1]
    assert carol['loading'] is True
    assert carol['usd_balance'] == 0.0
    assert result['rows'][2]['masked_address'] == '0xABCD...EF01'


def test_dashboard_sort_options(dashboard_input):
    profiles, stats, rates = dashboard_input
    names = lambda res: [r['profile']['username'] for r in res['rows']]

    assert names(build_dashboard(profiles, stats, rates, sort_by='oldest')) == ['alice_1', 'carol', 'bob_btc']
    assert names(build_dashboard(profiles, stats, rates, sort_by='balance')) == ['bob_btc', 'alice_1', 'carol']
    assert names(build_dashboard(profiles, stats, rates, sort_by='growth', time_range='1D'))[0] == 'alice_1'


def test_growth_sort_puts_missing_stats_last(dashboard_input):
    profiles, stats, rates = dashboard_input
    result = build_dashboard(profiles, stats, rates, sort_by='growth', time_range='1D')
    # bob_btc is down 10%, carol has no stats yet
    assert [r['profile']['username'] for r in result['rows']] == ['alice_1', 'bob_btc', 'carol']
    assert result['rows'][2]['growth'] is None


def test_dashboard_filters(dashboard_input):
    profiles, stats, rates = dashboard_input

    by_name = build_dashboard(profiles, stats, rates, search='ALICE')
    assert [r['profile']['username'] for r in by_name['rows']] == ['alice_1']
    # totals are not affected by the search
    assert by_name['verified_users'] == 3

    by_address = build_dashboard(profiles, stats, rates, search='1a1zp1')
    assert [r['profile']['username'] for r in by_address['rows']] == ['bob_btc']

    by_chain = build_dashboard(profiles, stats, rates, chain=Blockchain.BNB)
    assert [r['profile']['username'] for r in by_chain['rows']] == ['carol']


def test_dashboard_rejects_unknown_options(dashboard_input):
    profiles, stats, rates = dashboard_input
    with pytest.raises(ValueError):
        build_dashboard(profiles, stats, rates, sort_by='richest')
    with pytest.raises(ValueError):
        build_dashboard(profiles, stats, rates, time_range='2W')


def test_wallet_status_buckets():
    assert wallet_status(None) == 'Unknown'
    assert wallet_status(WalletStats()) == 'Unknown'
    assert wallet_status(WalletStats(latest_transaction=_latest(NOW_MS - 2 * DAY_MS)), NOW_MS) == 'Very Active'
    assert wallet_status(WalletStats(latest_transaction=_latest(NOW_MS - 10 * DAY_MS)), NOW_MS) == 'Active'
    assert wallet_status(WalletStats(latest_transaction=_latest(NOW_MS - 90 * DAY_MS)), NOW_MS) == 'Moderate'
    assert wallet_status(WalletStats(latest_transaction=_latest(NOW_MS - 400 * DAY_MS)), NOW_MS) == 'Dormant'


def test_days_active():
    stats = WalletStats(first_tx_date='2026-01-05T12:00:00.000Z')
    assert days_active(stats, NOW_MS) == 9
    assert days_active(WalletStats(first_tx_date='garbage'), NOW_MS) == 0
    assert days_active(None, NOW_MS) == 0


def test_social_links():
    profile = _profile('p1', 'alice_1', EVM_ADDR, Blockchain.ETH, 1,
                       socials={'twitter': 'alice', 'threads': 'alice.t'})
    assert social_links(profile) == {
        'twitter': 'https://x.com/alice',
        'threads': 'https://threads.net/@alice.t',
    }


def test_profile_view():
    profile = _profile('p1', 'alice_1', EVM_ADDR, Blockchain.ETH, 1)
    stats = WalletStats(balance=1.5, first_tx_date='2025-01-15T00:00:00.000Z',
                        latest_transaction=_latest(NOW_MS - DAY_MS))
    view = build_profile_view(profile, stats, 2000.0, now_ms=NOW_MS)

    assert view['chain_name'] == 'Ethereum'
    assert view['data_source'] == 'Etherscan'
    assert view['explorer_link'] == f'https://etherscan.io/address/{EVM_ADDR}'
    assert view['usd_balance_display'] == '$3,000'
    assert view['days_active'] == 365
    assert view['wallet_status'] == 'Very Active'
    assert view['stats']['latest_transaction']['from'] is None

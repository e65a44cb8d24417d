import pytest

from verifiedonchain import create_app
from verifiedonchain.db.database import DatabaseConfig, DatabaseManager
from verifiedonchain.db.repository import ProfileStore
from verifiedonchain.models import Blockchain, WalletStats
from verifiedonchain.services import prices

PRICES = {'bitcoin': 50000.0, 'ethereum': 2000.0, 'solana': 100.0, 'binancecoin': 300.0}


class MockResponse:
    def __init__(self, data, status_code=200):
        self._data = data
        self.status_code = status_code

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        return self._data

    def raise_for_status(self):
        if not self.ok:
            raise Exception(f"HTTP {self.status_code}")


class FakeSource:
    def __init__(self, balance=2.0):
        self.balance = balance
        self.calls = []

    def fetch_stats(self, address):
        self.calls.append(address)
        return WalletStats(balance=self.balance, tx_count=3, first_tx_date='2024-01-01T00:00:00.000Z',
                           last_updated=1700000000000)


def fake_coingecko_get(url, params=None, timeout=None, headers=None):
    ids = (params or {}).get('ids', '').split(',')
    return MockResponse({i: {'usd': PRICES[i]} for i in ids if i in PRICES})


@pytest.fixture
def db_config():
    cfg = DatabaseConfig('sqlite://')
    DatabaseManager(cfg).initialize_database()
    yield cfg
    cfg.dispose()


@pytest.fixture
def store(db_config):
    return ProfileStore(db_config)


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setattr(prices.requests, 'get', fake_coingecko_get)
    flask_app = create_app({'DATABASE_URL': 'sqlite://', 'TESTING': True, 'SECRET_KEY': 'test-secret'})
    flask_app.extensions['verifiedonchain']['aggregator'].sources = {c: FakeSource() for c in Blockchain}
    yield flask_app
    flask_app.extensions['verifiedonchain']['db_config'].dispose()


@pytest.fixture
def client(app):
    return app.test_client()

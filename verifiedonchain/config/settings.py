from __future__ import annotations
import os
from typing import Dict, Any, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _build_database_url() -> str:
    db_url = (
        os.getenv('DATABASE_URL') or
        os.getenv('PGURL') or
        os.getenv('POSTGRES_URL')
    )
    if db_url:
        return db_url

    # Build from individual components if not found
    host = os.getenv('DB_HOST', 'localhost')
    port = os.getenv('DB_PORT', '5432')
    database = os.getenv('DB_NAME', 'verifiedonchain')
    username = os.getenv('DB_USER', 'postgres')
    password = os.getenv('DB_PASSWORD', '')
    if password:
        return f"postgresql://{username}:{password}@{host}:{port}/{database}"
    return f"postgresql://{username}@{host}:{port}/{database}"


class Settings:
    """Lightweight settings wrapper that reads from environment variables.

    Keyword overrides win over the environment, which keeps tests from having
    to touch ``os.environ``.
    """

    def __init__(self, **overrides: Any) -> None:
        self.ENV: str = os.getenv('FLASK_ENV', 'development')
        self.DEBUG: bool = os.getenv('FLASK_DEBUG', '0').lower() in ('1', 'true', 'yes')
        self.TESTING: bool = False
        self.SECRET_KEY: Optional[str] = os.getenv('SECRET_KEY', 'dev-not-secret')
        self.DATABASE_URL: str = _build_database_url()
        self.LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO').upper()

        # Upstream services
        self.ETHERSCAN_API_KEY: str = os.getenv('ETHERSCAN_API_KEY', '')
        self.ETHERSCAN_V2_BASE: str = os.getenv('ETHERSCAN_V2_BASE', 'https://api.etherscan.io/v2/api')
        self.MEMPOOL_BASE: str = os.getenv('MEMPOOL_BASE', 'https://mempool.space/api')
        self.SOLANA_RPC_URL: str = os.getenv('SOLANA_RPC_URL', 'https://solana-rpc.publicnode.com')
        self.COINGECKO_BASE: str = os.getenv('COINGECKO_BASE', 'https://api.coingecko.com/api/v3')

        self.PRICE_CACHE_TTL_SECONDS: int = _env_int('PRICE_CACHE_TTL_SECONDS', 60)
        self.REQUEST_TIMEOUT_SECONDS: int = _env_int('REQUEST_TIMEOUT_SECONDS', 10)
        self.DASHBOARD_MAX_WORKERS: int = _env_int('DASHBOARD_MAX_WORKERS', 8)

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise KeyError(f"Unknown setting: {key}")
            setattr(self, key, value)

    @staticmethod
    def from_env() -> 'Settings':
        return Settings()

    def as_dict(self) -> Dict[str, Any]:
        return {
            'ENV': self.ENV,
            'DEBUG': self.DEBUG,
            'TESTING': self.TESTING,
            'SECRET_KEY': self.SECRET_KEY,
            'DATABASE_URL': self.DATABASE_URL,
            'LOG_LEVEL': self.LOG_LEVEL,
            'ETHERSCAN_API_KEY': self.ETHERSCAN_API_KEY,
            'ETHERSCAN_V2_BASE': self.ETHERSCAN_V2_BASE,
            'MEMPOOL_BASE': self.MEMPOOL_BASE,
            'SOLANA_RPC_URL': self.SOLANA_RPC_URL,
            'COINGECKO_BASE': self.COINGECKO_BASE,
            'PRICE_CACHE_TTL_SECONDS': self.PRICE_CACHE_TTL_SECONDS,
            'REQUEST_TIMEOUT_SECONDS': self.REQUEST_TIMEOUT_SECONDS,
            'DASHBOARD_MAX_WORKERS': self.DASHBOARD_MAX_WORKERS,
        }


# Convenience singleton
settings = Settings()

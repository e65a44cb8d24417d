"""Shared record shapes for profiles and wallet analytics.

Everything here is plain data: the services build these, the routes turn them
into JSON with ``to_dict()``.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


class Blockchain(str, Enum):
    BTC = 'BTC'
    ETH = 'ETH'
    SOL = 'SOL'
    BNB = 'BNB'


# Display metadata per chain. `coingecko_id` keys the price cache.
SUPPORTED_CHAINS: Dict[Blockchain, Dict[str, str]] = {
    Blockchain.BTC: {'name': 'Bitcoin', 'symbol': 'BTC', 'coingecko_id': 'bitcoin', 'data_source': 'Mempool.space'},
    Blockchain.ETH: {'name': 'Ethereum', 'symbol': 'ETH', 'coingecko_id': 'ethereum', 'data_source': 'Etherscan'},
    Blockchain.SOL: {'name': 'Solana', 'symbol': 'SOL', 'coingecko_id': 'solana', 'data_source': 'Solana RPC'},
    Blockchain.BNB: {'name': 'BNB Chain', 'symbol': 'BNB', 'coingecko_id': 'binancecoin', 'data_source': 'BscScan'},
}

NATIVE_CONTRACT = 'native'
SOCIAL_KEYS = ('twitter', 'instagram', 'threads', 'reddit')


def coingecko_id(chain: Blockchain) -> str:
    return SUPPORTED_CHAINS.get(chain, SUPPORTED_CHAINS[Blockchain.ETH])['coingecko_id']


@dataclass
class TokenAsset:
    symbol: str
    name: str
    balance: float
    decimals: int
    contract_address: str
    chain: Blockchain
    logo_url: Optional[str] = None
    price_usd: Optional[float] = None
    value_usd: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['chain'] = self.chain.value
        return d


@dataclass
class LatestTransaction:
    hash: str
    timestamp: int  # epoch milliseconds
    type: str  # buy | sell | send | receive
    token: TokenAsset
    amount: float
    amount_usd: float
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    fee: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hash': self.hash,
            'timestamp': self.timestamp,
            'type': self.type,
            'token': self.token.to_dict(),
            'amount': self.amount,
            'amount_usd': self.amount_usd,
            'from': self.from_address,
            'to': self.to_address,
            'fee': self.fee,
        }


@dataclass
class WalletStats:
    balance: float = 0.0
    tx_count: int = 0
    first_tx_date: str = ''
    last_updated: int = 0
    history: List[Dict[str, Any]] = field(default_factory=list)
    tokens: List[TokenAsset] = field(default_factory=list)
    latest_transaction: Optional[LatestTransaction] = None
    is_simulated_history: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'balance': self.balance,
            'tx_count': self.tx_count,
            'first_tx_date': self.first_tx_date,
            'last_updated': self.last_updated,
            'history': [dict(h) for h in self.history],
            'tokens': [t.to_dict() for t in self.tokens],
            'latest_transaction': self.latest_transaction.to_dict() if self.latest_transaction else None,
            'is_simulated_history': self.is_simulated_history,
        }


@dataclass
class UserProfile:
    id: str
    username: str
    address: str
    chain: Blockchain
    created_at: int  # epoch milliseconds
    logo_url: Optional[str] = None
    socials: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'address': self.address,
            'chain': self.chain.value,
            'created_at': self.created_at,
            'logo_url': self.logo_url,
            'socials': dict(self.socials or {}),
        }


@dataclass
class ConnectedWallet:
    address: str
    chain: Blockchain
    provider: str  # metamask | phantom | walletconnect | manual

    def to_dict(self) -> Dict[str, Any]:
        return {'address': self.address, 'chain': self.chain.value, 'provider': self.provider}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConnectedWallet':
        return cls(address=data['address'], chain=Blockchain(data['chain']), provider=data.get('provider', 'manual'))

from __future__ import annotations

"""Per-chain wallet statistics sources.

Each source queries a fixed set of explorer/RPC endpoints and folds the
heterogeneous JSON into one `WalletStats` shape. `fetch_stats` never raises:
an invalid address or any unexpected failure yields default (zeroed) stats,
while a non-2xx answer on a single call only skips that part.

Known approximations, kept on purpose:
- BTC first-transaction date is the oldest entry of the first txs page.
- EVM transaction count is `nonce + 1` of the latest transaction.
- Solana transaction count and first-transaction date are left at defaults,
  and the latest activity carries placeholder amount/fee/direction.
"""
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime, timezone
import logging
import time

import requests

from verifiedonchain.models import (
    Blockchain, LatestTransaction, NATIVE_CONTRACT, SUPPORTED_CHAINS, TokenAsset, WalletStats, coingecko_id,
)
from verifiedonchain.services.formatting import is_valid_address
from verifiedonchain.services.prices import PriceCache

logger = logging.getLogger(__name__)

SATOSHI = 10 ** 8
WEI = 10 ** 18
LAMPORTS = 10 ** 9

EVM_CHAIN_IDS = {Blockchain.ETH: 1, Blockchain.BNB: 56}
SPL_TOKEN_PROGRAM = 'TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA'
SOLANA_PLACEHOLDER_FEE = 0.000005
MIN_TOKEN_BALANCE = 0.01
MAX_TOKENS = 10
TOKENTX_PAGE_SIZE = 100


def iso_from_timestamp(ts: float) -> str:
    """Epoch seconds -> ISO-8601 UTC string with a trailing 'Z'."""
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class ChainStatsSource:
    """Base class: one implementation per chain family."""

    chain: Blockchain = Blockchain.ETH

    def __init__(self, price_cache: PriceCache, timeout: int = 10,
                 clock: Callable[[], float] = time.time) -> None:
        self.price_cache = price_cache
        self.timeout = timeout
        self.clock = clock

    def default_stats(self) -> WalletStats:
        now = self.clock()
        return WalletStats(first_tx_date=iso_from_timestamp(now), last_updated=int(now * 1000))

    def fetch_stats(self, address: str) -> WalletStats:
        if not is_valid_address(address, self.chain):
            logger.debug("[%s] skipping invalid address %s", self.chain.value, address)
            return self.default_stats()
        try:
            return self._collect(address, self.default_stats())
        except Exception as e:
            logger.error("[%s] stats fetch failed for %s: %s", self.chain.value, address, e)
            return self.default_stats()

    def _collect(self, address: str, stats: WalletStats) -> WalletStats:
        raise NotImplementedError

    def _native_token(self, decimals: int, price: float, symbol: Optional[str] = None) -> TokenAsset:
        meta = SUPPORTED_CHAINS[self.chain]
        return TokenAsset(
            symbol=symbol or meta['symbol'],
            name=meta['name'],
            balance=0,
            decimals=decimals,
            contract_address=NATIVE_CONTRACT,
            chain=self.chain,
            price_usd=price,
        )

    def _native_price(self) -> float:
        return self.price_cache.get_price(coingecko_id(self.chain))


class BtcStatsSource(ChainStatsSource):
    """Bitcoin via the mempool.space REST API."""

    chain = Blockchain.BTC

    def __init__(self, price_cache: PriceCache, base_url: str = 'https://mempool.space/api', **kwargs: Any) -> None:
        super().__init__(price_cache, **kwargs)
        self.base_url = base_url.rstrip('/')

    def _collect(self, address: str, stats: WalletStats) -> WalletStats:
        r = requests.get(f"{self.base_url}/address/{address}", timeout=self.timeout)
        if not r.ok:
            logger.warning("[BTC] address summary returned %s for %s", r.status_code, address)
            return stats
        data = r.json() or {}
        chain_stats = data.get('chain_stats') or {}
        mempool_stats = data.get('mempool_stats') or {}

        funded = int(chain_stats.get('funded_txo_sum') or 0) + int(mempool_stats.get('funded_txo_sum') or 0)
        spent = int(chain_stats.get('spent_txo_sum') or 0) + int(mempool_stats.get('spent_txo_sum') or 0)
        stats.balance = (funded - spent) / SATOSHI
        stats.tx_count = int(chain_stats.get('tx_count') or 0) + int(mempool_stats.get('tx_count') or 0)

        r2 = requests.get(f"{self.base_url}/address/{address}/txs", timeout=self.timeout)
        if not r2.ok:
            return stats
        txs = r2.json()
        if not isinstance(txs, list) or not txs:
            return stats

        stats.latest_transaction = self._latest_transaction(address, txs[0])
        # Single page only: for busy addresses this is the oldest *loaded* tx
        oldest_time = self._block_time(txs[-1])
        stats.first_tx_date = iso_from_timestamp(oldest_time)
        return stats

    def _block_time(self, tx: Dict[str, Any]) -> float:
        block_time = (tx.get('status') or {}).get('block_time')
        # Unconfirmed transactions have no block time yet
        return float(block_time) if block_time else self.clock()

    def _latest_transaction(self, address: str, tx: Dict[str, Any]) -> LatestTransaction:
        vout = tx.get('vout') or []
        vin = tx.get('vin') or []
        is_receive = any(out.get('scriptpubkey_address') == address for out in vout)

        if is_receive:
            amount_sats = sum(int(out.get('value') or 0) for out in vout if out.get('scriptpubkey_address') == address)
            first_prevout = (vin[0].get('prevout') or {}) if vin else {}
            from_addr = first_prevout.get('scriptpubkey_address') or 'Unknown'
            to_addr = address
        else:
            amount_sats = sum(
                int((inp.get('prevout') or {}).get('value') or 0)
                for inp in vin
                if (inp.get('prevout') or {}).get('scriptpubkey_address') == address
            )
            from_addr = address
            recipient = next((out for out in vout if out.get('scriptpubkey_address') != address), None)
            to_addr = (recipient or {}).get('scriptpubkey_address') or 'Multiple/Unknown'

        fee = (int(tx.get('fee') or 0) / SATOSHI) if tx.get('fee') else 0.0
        price = self._native_price()
        amount = amount_sats / SATOSHI
        return LatestTransaction(
            hash=tx.get('txid') or '',
            timestamp=int(self._block_time(tx) * 1000),
            type='receive' if is_receive else 'send',
            token=self._native_token(8, price),
            amount=amount,
            amount_usd=amount * price,
            from_address=from_addr,
            to_address=to_addr,
            fee=fee,
        )


class EvmStatsSource(ChainStatsSource):
    """Ethereum / BNB Chain via the Etherscan V2 multichain API."""

    def __init__(self, chain: Blockchain, price_cache: PriceCache, api_key: str = '',
                 base_url: str = 'https://api.etherscan.io/v2/api', **kwargs: Any) -> None:
        if chain not in EVM_CHAIN_IDS:
            raise ValueError(f"Not an EVM chain: {chain}")
        super().__init__(price_cache, **kwargs)
        self.chain = chain
        self.chain_id = EVM_CHAIN_IDS[chain]
        self.api_key = api_key
        self.base_url = base_url

    def _call(self, **params: Any) -> Optional[Dict[str, Any]]:
        params = {'chainid': self.chain_id, 'module': 'account', **params, 'apikey': self.api_key}
        r = requests.get(self.base_url, params=params, timeout=self.timeout)
        if not r.ok:
            logger.warning("[%s] explorer %s returned %s", self.chain.value, params.get('action'), r.status_code)
            return None
        d = r.json()
        return d if isinstance(d, dict) else None

    def _txlist(self, address: str, sort: str) -> Optional[Dict[str, Any]]:
        d = self._call(action='txlist', address=address, startblock=0, endblock=99999999,
                       page=1, offset=1, sort=sort)
        if d and d.get('status') == '1' and isinstance(d.get('result'), list) and d['result']:
            return d['result'][0]
        return None

    def _collect(self, address: str, stats: WalletStats) -> WalletStats:
        bal = self._call(action='balance', address=address, tag='latest')
        if bal and bal.get('status') == '1':
            stats.balance = int(bal.get('result') or 0) / WEI

        price = self._native_price()

        tx = self._txlist(address, 'desc')
        if tx:
            # Sender nonce of the latest tx, not a true count
            stats.tx_count = int(tx.get('nonce') or 0) + 1
            fee = (int(tx.get('gasUsed') or 0) * int(tx.get('gasPrice') or 0)) / WEI
            amount = int(tx.get('value') or 0) / WEI
            to_addr = tx.get('to') or ''
            stats.latest_transaction = LatestTransaction(
                hash=tx.get('hash') or '',
                timestamp=int(tx.get('timeStamp') or 0) * 1000,
                type='receive' if to_addr.lower() == address.lower() else 'send',
                token=self._native_token(18, price, symbol=self.chain.value),
                amount=amount,
                amount_usd=amount * price,
                from_address=tx.get('from'),
                to_address=to_addr,
                fee=fee,
            )

        first = self._txlist(address, 'asc')
        if first:
            stats.first_tx_date = iso_from_timestamp(int(first.get('timeStamp') or 0))

        stats.tokens = self._token_holdings(address)
        return stats

    def _token_holdings(self, address: str) -> List[TokenAsset]:
        """Net ERC-20/BEP-20 quantities from one page of token transfers."""
        d = self._call(action='tokentx', address=address, startblock=0, endblock=99999999,
                       page=1, offset=TOKENTX_PAGE_SIZE, sort='desc')
        if not d or not isinstance(d.get('result'), list):
            return []

        wallet_lower = address.lower()
        tokens: Dict[str, Dict[str, Any]] = {}
        for t in d['result']:
            if not isinstance(t, dict):
                continue
            contract = (t.get('contractAddress') or '').lower()
            if not contract:
                continue
            try:
                decimals = int(t.get('tokenDecimal') or 0)
            except (TypeError, ValueError):
                decimals = 0
            try:
                raw_value = int(t.get('value') or 0)
            except (TypeError, ValueError):
                raw_value = 0
            qty = (raw_value / (10 ** decimals)) if decimals > 0 else float(raw_value)

            if (t.get('to') or '').lower() == wallet_lower:
                sign = 1
            elif (t.get('from') or '').lower() == wallet_lower:
                sign = -1
            else:
                continue

            info = tokens.setdefault(contract, {
                'symbol': t.get('tokenSymbol') or '',
                'name': t.get('tokenName') or '',
                'decimals': decimals,
                'quantity': 0.0,
            })
            info['quantity'] += sign * qty

        held = [(c, v) for c, v in tokens.items() if v['quantity'] >= MIN_TOKEN_BALANCE]
        held.sort(key=lambda item: item[1]['quantity'], reverse=True)
        return [
            TokenAsset(
                symbol=v['symbol'],
                name=v['name'],
                balance=v['quantity'],
                decimals=v['decimals'],
                contract_address=c,
                chain=self.chain,
            )
            for c, v in held[:MAX_TOKENS]
        ]


class SolanaStatsSource(ChainStatsSource):
    """Solana via a public JSON-RPC node."""

    chain = Blockchain.SOL

    def __init__(self, price_cache: PriceCache, rpc_url: str = 'https://solana-rpc.publicnode.com', **kwargs: Any) -> None:
        super().__init__(price_cache, **kwargs)
        self.rpc_url = rpc_url

    def _rpc(self, method: str, params: List[Any]) -> Optional[Dict[str, Any]]:
        payload = {'jsonrpc': '2.0', 'id': 1, 'method': method, 'params': params}
        r = requests.post(self.rpc_url, json=payload, timeout=self.timeout,
                          headers={'Content-Type': 'application/json'})
        if not r.ok:
            logger.warning("[SOL] rpc %s returned %s", method, r.status_code)
            return None
        jd = r.json()
        if isinstance(jd, dict) and jd.get('error'):
            logger.warning("[SOL] rpc %s error: %s", method, jd.get('error'))
        return jd if isinstance(jd, dict) else None

    def _collect(self, address: str, stats: WalletStats) -> WalletStats:
        bal = self._rpc('getBalance', [address])
        if bal:
            stats.balance = int((bal.get('result') or {}).get('value') or 0) / LAMPORTS

        price = self._native_price()

        sigs = self._rpc('getSignaturesForAddress', [address, {'limit': 1}])
        result = (sigs or {}).get('result')
        if isinstance(result, list) and result:
            sig = result[0]
            block_time = sig.get('blockTime')
            # Direction, amount and fee would need the full parsed transaction
            stats.latest_transaction = LatestTransaction(
                hash=sig.get('signature') or '',
                timestamp=int(block_time) * 1000 if block_time else int(self.clock() * 1000),
                type='send',
                token=self._native_token(9, price),
                amount=0.0,
                amount_usd=0.0,
                from_address=address,
                to_address='Solana Program/Wallet',
                fee=SOLANA_PLACEHOLDER_FEE,
            )

        stats.tokens = self._spl_tokens(address)
        return stats

    def _spl_tokens(self, address: str) -> List[TokenAsset]:
        jd = self._rpc('getTokenAccountsByOwner', [
            address,
            {'programId': SPL_TOKEN_PROGRAM},
            {'encoding': 'jsonParsed'},
        ])
        accounts = ((jd or {}).get('result') or {}).get('value')
        if not isinstance(accounts, list):
            return []

        tokens: List[TokenAsset] = []
        for acct in accounts:
            info = (((acct.get('account') or {}).get('data') or {}).get('parsed') or {}).get('info') or {}
            amount_info = info.get('tokenAmount') or {}
            amount = amount_info.get('uiAmount')
            if amount is None or amount < MIN_TOKEN_BALANCE:
                continue
            tokens.append(TokenAsset(
                symbol='SPL',
                name='Solana Token',
                balance=float(amount),
                decimals=int(amount_info.get('decimals') or 0),
                contract_address=info.get('mint') or '',
                chain=Blockchain.SOL,
            ))
            if len(tokens) >= MAX_TOKENS:
                break
        return tokens


def build_default_sources(price_cache: PriceCache, settings: Any = None,
                          clock: Callable[[], float] = time.time) -> Dict[Blockchain, ChainStatsSource]:
    """Chain tag -> source, configured from a Settings object when given."""
    timeout = getattr(settings, 'REQUEST_TIMEOUT_SECONDS', 10)
    common = {'timeout': timeout, 'clock': clock}
    etherscan_base = getattr(settings, 'ETHERSCAN_V2_BASE', 'https://api.etherscan.io/v2/api')
    etherscan_key = getattr(settings, 'ETHERSCAN_API_KEY', '')
    return {
        Blockchain.BTC: BtcStatsSource(price_cache, base_url=getattr(settings, 'MEMPOOL_BASE', 'https://mempool.space/api'), **common),
        Blockchain.ETH: EvmStatsSource(Blockchain.ETH, price_cache, api_key=etherscan_key, base_url=etherscan_base, **common),
        Blockchain.BNB: EvmStatsSource(Blockchain.BNB, price_cache, api_key=etherscan_key, base_url=etherscan_base, **common),
        Blockchain.SOL: SolanaStatsSource(price_cache, rpc_url=getattr(settings, 'SOLANA_RPC_URL', 'https://solana-rpc.publicnode.com'), **common),
    }

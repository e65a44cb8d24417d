"""Helpers for validating wallet addresses and formatting values for display."""

from __future__ import annotations

import re
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

from verifiedonchain.models import Blockchain

_BTC_ADDRESS_RE = re.compile(r"^(1|3|bc1)[a-zA-Z0-9]{25,59}$")
_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_SOL_ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]{3,20}$")

_EXPLORER_TEMPLATES = {
    Blockchain.BTC: "https://mempool.space/address/{address}",
    Blockchain.ETH: "https://etherscan.io/address/{address}",
    Blockchain.SOL: "https://solscan.io/account/{address}",
    Blockchain.BNB: "https://bscscan.com/address/{address}",
}


def parse_chain(value: Union[str, Blockchain, None]) -> Blockchain:
    """Turn a user-supplied chain tag into a Blockchain, case-insensitively."""
    if isinstance(value, Blockchain):
        return value
    try:
        return Blockchain((value or '').strip().upper())
    except ValueError:
        raise ValueError(f"Unsupported chain: {value}")


def is_valid_address(address: str, chain: Blockchain) -> bool:
    """Syntax-only check; no checksum validation is attempted."""
    if not address:
        return False
    if chain == Blockchain.BTC:
        return bool(_BTC_ADDRESS_RE.fullmatch(address))
    if chain in (Blockchain.ETH, Blockchain.BNB):
        return bool(_EVM_ADDRESS_RE.fullmatch(address))
    if chain == Blockchain.SOL:
        return bool(_SOL_ADDRESS_RE.fullmatch(address))
    return False


def is_valid_username(username: str) -> bool:
    return bool(username) and bool(_USERNAME_RE.fullmatch(username))


def mask_address(address: str) -> str:
    if len(address) < 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def format_usd(amount: Union[int, float, Decimal, None]) -> str:
    """en-US currency string with no decimals: 1234.9 -> '$1,235'."""
    try:
        value = Decimal(str(amount or 0)).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        value = Decimal(0)
    whole = int(value)
    if whole < 0:
        return f"-${-whole:,}"
    return f"${whole:,}"


def get_explorer_link(address: str, chain: Blockchain) -> str:
    return _EXPLORER_TEMPLATES[chain].format(address=address)


__all__ = [
    "parse_chain",
    "is_valid_address",
    "is_valid_username",
    "mask_address",
    "format_usd",
    "get_explorer_link",
]

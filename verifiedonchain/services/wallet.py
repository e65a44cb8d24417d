"""Wallet connection and ownership proof.

Wallet providers are injected capability objects instead of ambient browser
globals. In the browser the wallet extension does the work; the web routes
wrap what the browser reported in `ClientEvmProvider` / `ClientSolanaProvider`
so the same bridge logic runs server-side.

Solana ownership is *not* cryptographically checked: a truthy signature from
the provider is accepted as proof. EVM signatures are recovered and compared
against the expected address.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Union
import logging
import random

from eth_account import Account
from eth_account.messages import encode_defunct

from verifiedonchain.models import Blockchain, ConnectedWallet

logger = logging.getLogger(__name__)

BNB_CHAIN_ID = 56


class WalletError(RuntimeError):
    """User-facing wallet interaction failure."""


class EvmProvider(Protocol):
    def request_accounts(self) -> List[str]: ...

    def chain_id(self) -> int: ...

    def signer_address(self) -> str: ...

    def sign_message(self, message: str) -> str: ...


class SolanaProvider(Protocol):
    def connect(self) -> str: ...

    def sign_message(self, message: bytes) -> Dict[str, Any]: ...


def recover_evm_signer(message: str, signature: Union[str, bytes]) -> Optional[str]:
    """Address that produced an EIP-191 personal_sign signature, or None."""
    try:
        return Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as e:
        logger.warning("Could not recover signer from signature: %s", e)
        return None


def create_verification_message(address: str, now: Optional[datetime] = None,
                                rng: Optional[random.Random] = None) -> str:
    timestamp = (now or datetime.now(timezone.utc)).isoformat(timespec='milliseconds').replace('+00:00', 'Z')
    nonce = (rng or random).randrange(1000000)
    return (
        f"Sign this message to verify ownership of wallet {address} for VerifiedOnChain.\n\n"
        f"Timestamp: {timestamp}\nNonce: {nonce}"
    )


class WalletBridge:
    def __init__(self, evm: Optional[EvmProvider] = None, solana: Optional[SolanaProvider] = None):
        self.evm = evm
        self.solana = solana

    def check_installed(self) -> Dict[str, bool]:
        return {'evm': self.evm is not None, 'solana': self.solana is not None}

    def create_verification_message(self, address: str) -> str:
        return create_verification_message(address)

    def connect_evm(self) -> ConnectedWallet:
        if self.evm is None:
            raise WalletError("No EVM wallet detected. Please install MetaMask, Rabby, or Trust Wallet.")
        try:
            accounts = self.evm.request_accounts()
        except Exception as e:
            logger.info("EVM connection request failed: %s", e)
            raise WalletError("User rejected connection.") from e
        if not accounts:
            raise WalletError("User rejected connection.")

        chain = Blockchain.BNB if int(self.evm.chain_id()) == BNB_CHAIN_ID else Blockchain.ETH
        return ConnectedWallet(address=accounts[0], chain=chain, provider='metamask')

    def connect_solana(self) -> ConnectedWallet:
        if self.solana is None:
            raise WalletError("Solana wallet not detected. Please install Phantom or Backpack.")
        try:
            address = str(self.solana.connect())
        except Exception as e:
            logger.info("Solana connection request failed: %s", e)
            raise WalletError("User rejected Solana connection.") from e
        return ConnectedWallet(address=address, chain=Blockchain.SOL, provider='phantom')

    def sign_evm(self, address: str, message: str) -> bool:
        """Ask the provider to sign and check the recovered signer.

        Returns False when the signature recovers to another address.
        """
        if self.evm is None:
            raise WalletError("Wallet disconnected.")

        try:
            signer = self.evm.signer_address()
        except Exception as e:
            raise WalletError("Signature rejected or failed.") from e
        if (signer or '').lower() != address.lower():
            raise WalletError("Wallet mismatch. Please switch to the correct account in your wallet.")

        try:
            signature = self.evm.sign_message(message)
        except Exception as e:
            logger.info("EVM signature request failed: %s", e)
            raise WalletError("Signature rejected or failed.") from e

        recovered = recover_evm_signer(message, signature)
        return recovered is not None and recovered.lower() == address.lower()

    def sign_solana(self, address: str, message: str) -> bool:
        if self.solana is None:
            raise WalletError("Wallet disconnected.")
        try:
            signed = self.solana.sign_message(message.encode('utf-8'))
        except Exception as e:
            logger.info("Solana signature request failed: %s", e)
            raise WalletError("Signature rejected.") from e
        # Presence of a signature is accepted without verifying it against the key
        return bool((signed or {}).get('signature'))


class ClientEvmProvider:
    """What a browser EVM wallet reported, replayed for the bridge."""

    def __init__(self, address: str, chain_id: int = 1, signature: Optional[str] = None):
        self.address = address
        self._chain_id = chain_id
        self.signature = signature

    def request_accounts(self) -> List[str]:
        return [self.address] if self.address else []

    def chain_id(self) -> int:
        return self._chain_id

    def signer_address(self) -> str:
        return self.address

    def sign_message(self, message: str) -> str:
        if not self.signature:
            raise WalletError("No signature supplied.")
        return self.signature


class ClientSolanaProvider:
    """What a browser Solana wallet reported, replayed for the bridge."""

    def __init__(self, public_key: str, signature: Optional[str] = None):
        self.public_key = public_key
        self.signature = signature

    def connect(self) -> str:
        if not self.public_key:
            raise WalletError("No public key supplied.")
        return self.public_key

    def sign_message(self, message: bytes) -> Dict[str, Any]:
        if not self.signature:
            raise WalletError("No signature supplied.")
        return {'signature': self.signature, 'publicKey': self.public_key}


class LocalAccountProvider:
    """EVM provider backed by a local private key (scripts and tests)."""

    def __init__(self, private_key: str, chain_id: int = 1):
        self.account = Account.from_key(private_key)
        self._chain_id = chain_id

    def request_accounts(self) -> List[str]:
        return [self.account.address]

    def chain_id(self) -> int:
        return self._chain_id

    def signer_address(self) -> str:
        return self.account.address

    def sign_message(self, message: str) -> str:
        signed = self.account.sign_message(encode_defunct(text=message))
        sig = signed.signature.hex()
        return sig if sig.startswith('0x') else '0x' + sig

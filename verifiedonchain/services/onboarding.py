"""Profile submission wizard: connect -> verify -> profile.

Wallet mode proves ownership with a signed challenge. Manual mode only checks
the address syntax and jumps straight to the profile step. Every failure is
recorded in ``error`` and leaves the current step untouched so the user can
retry or switch modes.
"""
from __future__ import annotations

from typing import Any, Dict, Optional
import base64
import logging

from verifiedonchain.db.repository import ProfileStore, ProfileStoreError
from verifiedonchain.models import Blockchain, ConnectedWallet, SOCIAL_KEYS, UserProfile
from verifiedonchain.services.formatting import is_valid_address, is_valid_username, parse_chain
from verifiedonchain.services.wallet import WalletBridge, WalletError

logger = logging.getLogger(__name__)

STEPS = ('connect', 'verify', 'profile')
MODES = ('wallet', 'manual')
MAX_LOGO_BYTES = 200 * 1024
# base64 of MAX_LOGO_BYTES plus room for the "data:<mime>;base64," prefix
MAX_LOGO_URL_CHARS = 4 * ((MAX_LOGO_BYTES + 2) // 3) + 64

ONBOARDING_STEPS = [
    {
        'title': 'Welcome to VerifiedOnChain',
        'description': 'The definitive source for verified blockchain identities. '
                       'Explore public wallets with rich, real-time analytics.',
    },
    {
        'title': 'Verify Your Wallet',
        'description': "Claim your username by linking a BTC, ETH, SOL, or BNB wallet. "
                       "It's read-only, secure, and establishes your on-chain reputation.",
    },
    {
        'title': 'Analyze & Track',
        'description': 'Use our advanced dashboard to filter by wealth, activity, or growth. '
                       'View detailed historical charts for any verified profile.',
    },
]

TOUR_STEPS = [
    {'target': 'dashboard-search', 'title': 'Welcome to VerifiedOnChain',
     'content': 'Search verified profiles by username or wallet address.'},
    {'target': 'submit-button', 'title': 'Get Verified',
     'content': 'Link your own wallet and claim a username in three steps.'},
    {'target': 'dashboard-sort-dropdown', 'title': 'Smart Filtering',
     'content': 'Sort the directory by newest, oldest, balance or growth over a chosen range.'},
]


class SubmissionWizard:
    def __init__(self) -> None:
        self.step = 'connect'
        self.mode = 'wallet'
        self.error: Optional[str] = None
        self.username = ''
        self.address = ''
        self.chain = Blockchain.ETH
        self.logo_url = ''
        self.socials: Dict[str, str] = {}
        self.connected_wallet: Optional[ConnectedWallet] = None
        self.challenge: Optional[str] = None

    # -- persistence -------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            'step': self.step,
            'mode': self.mode,
            'error': self.error,
            'username': self.username,
            'address': self.address,
            'chain': self.chain.value,
            'logo_url': self.logo_url,
            'socials': dict(self.socials),
            'connected_wallet': self.connected_wallet.to_dict() if self.connected_wallet else None,
            'challenge': self.challenge,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'SubmissionWizard':
        wizard = cls()
        if not data:
            return wizard
        wizard.step = data.get('step') if data.get('step') in STEPS else 'connect'
        wizard.mode = data.get('mode') if data.get('mode') in MODES else 'wallet'
        wizard.error = data.get('error')
        wizard.username = data.get('username') or ''
        wizard.address = data.get('address') or ''
        wizard.chain = Blockchain(data.get('chain') or Blockchain.ETH.value)
        wizard.logo_url = data.get('logo_url') or ''
        wizard.socials = dict(data.get('socials') or {})
        cw = data.get('connected_wallet')
        wizard.connected_wallet = ConnectedWallet.from_dict(cw) if cw else None
        wizard.challenge = data.get('challenge')
        return wizard

    def reset(self) -> None:
        self.__init__()

    # -- step 1: connect ---------------------------------------------------

    def set_mode(self, mode: str) -> None:
        if mode not in MODES:
            raise ValueError(f"Unknown mode: {mode}")
        self.mode = mode
        self.error = None

    def connect(self, bridge: WalletBridge, provider_type: str) -> bool:
        """Connect a wallet and issue the challenge to sign."""
        self.error = None
        try:
            if provider_type == 'evm':
                wallet = bridge.connect_evm()
            elif provider_type == 'solana':
                wallet = bridge.connect_solana()
            else:
                raise WalletError(f"Unknown wallet type: {provider_type}")
        except WalletError as e:
            self.error = str(e) or "Connection failed."
            return False

        self.mode = 'wallet'
        self.connected_wallet = wallet
        self.address = wallet.address
        self.chain = wallet.chain
        self.challenge = bridge.create_verification_message(wallet.address)
        self.step = 'verify'
        return True

    def manual_next(self, address: str, chain: Any) -> bool:
        self.error = None
        self.mode = 'manual'
        try:
            chain = parse_chain(chain)
        except ValueError as e:
            self.error = str(e)
            return False
        address = (address or '').strip()
        if not is_valid_address(address, chain):
            self.error = f"Invalid {chain.value} address."
            return False

        self.address = address
        self.chain = chain
        # Manual entry never links a wallet and skips the signature step
        self.connected_wallet = None
        self.challenge = None
        self.step = 'profile'
        return True

    # -- step 2: verify ----------------------------------------------------

    def verify_ownership(self, bridge: WalletBridge) -> bool:
        if self.connected_wallet is None or self.step != 'verify':
            self.error = "Connect a wallet first."
            return False
        self.error = None
        message = self.challenge or bridge.create_verification_message(self.connected_wallet.address)
        try:
            if self.connected_wallet.chain == Blockchain.SOL:
                valid = bridge.sign_solana(self.connected_wallet.address, message)
            else:
                valid = bridge.sign_evm(self.connected_wallet.address, message)
        except WalletError as e:
            self.error = str(e) or "Verification failed."
            return False

        if not valid:
            self.error = "Signature verification failed."
            return False
        self.step = 'profile'
        return True

    # -- step 3: profile ---------------------------------------------------

    def attach_logo(self, data: bytes, content_type: str = 'image/png') -> bool:
        if not (content_type or '').lower().startswith('image/'):
            self.error = "Logo must be an image file."
            return False
        if len(data) > MAX_LOGO_BYTES:
            self.error = "Image too large. Max 200KB."
            return False
        self.logo_url = f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"
        self.error = None
        return True

    def submit(self, store: ProfileStore, username: str, logo_url: Optional[str] = None,
               socials: Optional[Dict[str, Any]] = None) -> Optional[UserProfile]:
        self.error = None
        if self.step != 'profile':
            self.error = "Complete the previous steps first."
            return None

        username = (username or '').strip()
        self.username = username
        if logo_url:
            if not logo_url.lower().startswith('data:image/'):
                self.error = "Logo must be an image file."
                return None
            if len(logo_url) > MAX_LOGO_URL_CHARS:
                self.error = "Image too large. Max 200KB."
                return None
            self.logo_url = logo_url
        self.socials = {k: str(v).strip() for k, v in (socials or {}).items() if k in SOCIAL_KEYS and v}

        if not is_valid_username(username):
            self.error = "Username must be 3-20 alphanumeric characters."
            return None
        # Re-check in case the state was tampered with between steps
        if not is_valid_address(self.address, self.chain):
            self.error = f"Invalid {self.chain.value} address."
            return None

        try:
            profile = store.create_profile(
                username=username,
                address=self.address,
                chain=self.chain,
                logo_url=self.logo_url or None,
                socials=self.socials,
            )
        except ProfileStoreError as e:
            self.error = str(e) or "An error occurred"
            return None

        logger.info("Profile submitted for %s (%s mode)", profile.username, self.mode)
        return profile

from verifiedonchain.models import Blockchain
from verifiedonchain.services.onboarding import (
    MAX_LOGO_BYTES, ONBOARDING_STEPS, TOUR_STEPS, SubmissionWizard,
)
from verifiedonchain.services.wallet import LocalAccountProvider, WalletBridge

KEY_A = '0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318'
KEY_B = '0x' + '11' * 32
BTC_ADDR = '1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa'


class ImpostorProvider(LocalAccountProvider):
    """Claims another account while signing with its own key."""

    def __init__(self, private_key, claimed_address):
        super().__init__(private_key)
        self.claimed_address = claimed_address

    def request_accounts(self):
        return [self.claimed_address]

    def signer_address(self):
        return self.claimed_address


def test_manual_invalid_address_blocks():
    wizard = SubmissionWizard()
    assert wizard.manual_next('not-an-address', 'BTC') is False
    assert 'BTC' in wizard.error
    assert wizard.error == 'Invalid BTC address.'
    assert wizard.step == 'connect'


def test_manual_valid_address_skips_signature():
    wizard = SubmissionWizard()
    assert wizard.manual_next(BTC_ADDR, 'BTC') is True
    assert wizard.step == 'profile'
    assert wizard.mode == 'manual'
    assert wizard.connected_wallet is None
    assert wizard.chain == Blockchain.BTC
    assert wizard.error is None


def test_manual_unknown_chain():
    wizard = SubmissionWizard()
    assert wizard.manual_next(BTC_ADDR, 'DOGE') is False
    assert 'DOGE' in wizard.error


def test_wallet_flow_reaches_profile_step():
    bridge = WalletBridge(evm=LocalAccountProvider(KEY_A))
    wizard = SubmissionWizard()
    assert wizard.connect(bridge, 'evm') is True
    assert wizard.step == 'verify'
    assert wizard.connected_wallet.address in wizard.challenge

    assert wizard.verify_ownership(bridge) is True
    assert wizard.step == 'profile'
    assert wizard.error is None


def test_failed_signature_stays_on_verify():
    claimed = LocalAccountProvider(KEY_A).account.address
    bridge = WalletBridge(evm=ImpostorProvider(KEY_B, claimed))
    wizard = SubmissionWizard()
    wizard.connect(bridge, 'evm')

    assert wizard.verify_ownership(bridge) is False
    assert wizard.error == 'Signature verification failed.'
    assert wizard.step == 'verify'


def test_connect_without_wallet_reports_error():
    wizard = SubmissionWizard()
    assert wizard.connect(WalletBridge(), 'solana') is False
    assert 'Phantom' in wizard.error
    assert wizard.step == 'connect'


def test_verify_requires_connection():
    wizard = SubmissionWizard()
    assert wizard.verify_ownership(WalletBridge()) is False
    assert wizard.step == 'connect'


def test_logo_limits():
    wizard = SubmissionWizard()
    assert wizard.attach_logo(b'x' * (MAX_LOGO_BYTES + 1)) is False
    assert wizard.error == 'Image too large. Max 200KB.'
    assert wizard.logo_url == ''

    assert wizard.attach_logo(b'\x89PNG', 'image/png') is True
    assert wizard.logo_url == 'data:image/png;base64,iVBORw=='
    assert wizard.error is None


def test_submit_creates_profile(store):
    wizard = SubmissionWizard()
    wizard.manual_next(BTC_ADDR, 'BTC')
    profile = wizard.submit(store, 'satoshi_fan', socials={'twitter': 'sfan', 'unknown': 'x'})

    assert profile is not None
    assert profile.username == 'satoshi_fan'
    assert profile.chain == Blockchain.BTC
    assert profile.socials == {'twitter': 'sfan'}
    assert store.get_profile_by_username('SATOSHI_FAN') is not None


def test_submit_validation_errors(store):
    wizard = SubmissionWizard()
    assert wizard.submit(store, 'satoshi_fan') is None
    assert wizard.error == 'Complete the previous steps first.'

    wizard.manual_next(BTC_ADDR, 'BTC')
    assert wizard.submit(store, 'x!') is None
    assert wizard.error == 'Username must be 3-20 alphanumeric characters.'

    store.create_profile('taken_name', BTC_ADDR, Blockchain.BTC)
    assert wizard.submit(store, 'Taken_Name') is None
    assert wizard.error == 'Username is already taken.'
    assert wizard.step == 'profile'


def test_state_survives_session_storage():
    wizard = SubmissionWizard()
    wizard.connect(WalletBridge(evm=LocalAccountProvider(KEY_A, chain_id=56)), 'evm')
    restored = SubmissionWizard.from_dict(wizard.to_dict())

    assert restored.step == 'verify'
    assert restored.chain == Blockchain.BNB
    assert restored.connected_wallet == wizard.connected_wallet
    assert restored.challenge == wizard.challenge
    assert SubmissionWizard.from_dict(None).step == 'connect'


def test_onboarding_content():
    assert [s['title'] for s in ONBOARDING_STEPS] == [
        'Welcome to VerifiedOnChain', 'Verify Your Wallet', 'Analyze & Track',
    ]
    assert [s['title'] for s in TOUR_STEPS] == [
        'Welcome to VerifiedOnChain', 'Get Verified', 'Smart Filtering',
    ]


def test_storage_error_shown_to_user(db_config, store):
    from verifiedonchain.db.database import Base
    Base.metadata.drop_all(bind=db_config.initialize_engine())
    wizard = SubmissionWizard()
    wizard.manual_next(BTC_ADDR, 'BTC')

    assert wizard.submit(store, 'satoshi_fan') is None
    assert 'no such table' in wizard.error
    assert wizard.step == 'profile'


def test_logo_must_be_an_image(store):
    wizard = SubmissionWizard()
    assert wizard.attach_logo(b'<script>alert(1)</script>', 'text/html') is False
    assert wizard.error == 'Logo must be an image file.'
    assert wizard.logo_url == ''

    wizard.manual_next(BTC_ADDR, 'BTC')
    assert wizard.submit(store, 'satoshi_fan', logo_url='data:text/html;base64,PHNjcmlwdD4=') is None
    assert wizard.error == 'Logo must be an image file.'
    assert store.get_profile_by_username('satoshi_fan') is None

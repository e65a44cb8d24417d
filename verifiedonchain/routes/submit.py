"""Submission wizard endpoints.

The wizard state lives in the Flask session. The browser talks to the wallet
extension itself and posts back what it reported (address, chain id,
signature); those values are replayed through the wallet bridge here.
"""
from flask import Blueprint, current_app, jsonify, request, session

from verifiedonchain.models import Blockchain
from verifiedonchain.services.onboarding import SubmissionWizard
from verifiedonchain.services.wallet import ClientEvmProvider, ClientSolanaProvider, WalletBridge

bp = Blueprint("submit", __name__, url_prefix="/submit")

SESSION_KEY = 'submission'


def _store():
    return current_app.extensions['verifiedonchain']['store']


def _load() -> SubmissionWizard:
    return SubmissionWizard.from_dict(session.get(SESSION_KEY))


def _save(wizard: SubmissionWizard) -> dict:
    state = wizard.to_dict()
    # Logos do not fit in a cookie session; the client sends them back on submit
    session[SESSION_KEY] = dict(state, logo_url='')
    return state


def _respond(wizard: SubmissionWizard, ok: bool, status: int = 200):
    state = _save(wizard)
    if not ok:
        return jsonify({'error': wizard.error, 'wizard': state}), 400
    return jsonify({'wizard': state}), status


@bp.route("", methods=["GET"])
def wizard_state():
    return jsonify({'wizard': _save(_load())})


@bp.route("/reset", methods=["POST"])
def reset():
    payload = request.get_json(silent=True) or {}
    wizard = _load()
    wizard.reset()
    try:
        wizard.set_mode(payload.get('mode', 'wallet'))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    return _respond(wizard, True)


@bp.route("/manual", methods=["POST"])
def manual():
    payload = request.get_json(silent=True) or {}
    wizard = _load()
    ok = wizard.manual_next(payload.get('address', ''), payload.get('chain', 'ETH'))
    return _respond(wizard, ok)


@bp.route("/connect", methods=["POST"])
def connect():
    payload = request.get_json(silent=True) or {}
    provider_type = payload.get('provider', 'evm')
    address = payload.get('address')
    if provider_type == 'solana':
        bridge = WalletBridge(solana=ClientSolanaProvider(address) if address else None)
    else:
        try:
            # eth_chainId reports hex strings such as "0x38"
            chain_id = int(str(payload.get('chain_id', 1)), 0)
        except (TypeError, ValueError):
            return jsonify({'error': 'Invalid chain id'}), 400
        bridge = WalletBridge(evm=ClientEvmProvider(address, chain_id=chain_id) if address else None)

    wizard = _load()
    ok = wizard.connect(bridge, provider_type)
    return _respond(wizard, ok)


@bp.route("/verify", methods=["POST"])
def verify():
    payload = request.get_json(silent=True) or {}
    wizard = _load()
    wallet = wizard.connected_wallet
    signature = payload.get('signature')

    bridge = WalletBridge()
    if wallet is not None and wallet.chain == Blockchain.SOL:
        bridge = WalletBridge(solana=ClientSolanaProvider(wallet.address, signature=signature))
    elif wallet is not None:
        # The active account may have changed since connect
        signer = payload.get('signer') or wallet.address
        bridge = WalletBridge(evm=ClientEvmProvider(signer, signature=signature))

    ok = wizard.verify_ownership(bridge)
    return _respond(wizard, ok)


@bp.route("/logo", methods=["POST"])
def upload_logo():
    upload = request.files.get('logo')
    if upload is None:
        return jsonify({'error': 'No file uploaded'}), 400
    wizard = _load()
    ok = wizard.attach_logo(upload.read(), upload.mimetype or 'image/png')
    if not ok:
        return _respond(wizard, ok)
    logo_url = wizard.logo_url
    state = _save(wizard)
    return jsonify({'logo_url': logo_url, 'wizard': state})


@bp.route("/profile", methods=["POST"])
def submit_profile():
    payload = request.get_json(silent=True) or {}
    wizard = _load()
    try:
        profile = wizard.submit(
            _store(),
            payload.get('username', ''),
            logo_url=payload.get('logo_url'),
            socials=payload.get('socials'),
        )
    except Exception as e:
        current_app.logger.exception("Profile submission failed: %s", e)
        return jsonify({'error': 'An error occurred'}), 500

    if profile is None:
        return _respond(wizard, False)
    session.pop(SESSION_KEY, None)
    return jsonify({'profile': profile.to_dict(), 'url': f"/u/{profile.username}"}), 201

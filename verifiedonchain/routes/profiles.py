from flask import Blueprint, current_app, jsonify

from verifiedonchain.models import coingecko_id
from verifiedonchain.services.directory import build_profile_view
from verifiedonchain.services.formatting import is_valid_address, parse_chain

bp = Blueprint("profiles", __name__, url_prefix="/")


def _services():
    return current_app.extensions['verifiedonchain']


@bp.route("/u/<username>", methods=["GET"])
def profile_page(username):
    svc = _services()
    profile = svc['store'].get_profile_by_username(username)
    if profile is None:
        return jsonify({'error': 'Profile Not Found'}), 404
    try:
        stats = svc['aggregator'].fetch_wallet_stats(profile.address, profile.chain)
        rate = svc['price_cache'].get_price(coingecko_id(profile.chain))
        return jsonify(build_profile_view(profile, stats, rate))
    except Exception as e:
        current_app.logger.exception("Failed to load profile %s: %s", username, e)
        return jsonify({'error': 'Failed to load wallet stats'}), 500


@bp.route("/api/stats/<chain>/<address>", methods=["GET"])
def wallet_stats(chain, address):
    try:
        chain = parse_chain(chain)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    if not is_valid_address(address, chain):
        return jsonify({'error': f'Invalid {chain.value} address.'}), 400
    try:
        stats = _services()['aggregator'].fetch_wallet_stats(address, chain)
        return jsonify(stats.to_dict())
    except Exception as e:
        current_app.logger.exception("Failed to get wallet stats: %s", e)
        return jsonify({'error': str(e)}), 500

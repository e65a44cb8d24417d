from flask import Blueprint, current_app, jsonify, request

from verifiedonchain.models import SUPPORTED_CHAINS, coingecko_id
from verifiedonchain.services.directory import SORT_OPTIONS, TIME_RANGES, build_dashboard
from verifiedonchain.services.formatting import parse_chain
from verifiedonchain.services.onboarding import ONBOARDING_STEPS, TOUR_STEPS

bp = Blueprint("directory", __name__, url_prefix="/")


def _services():
    return current_app.extensions['verifiedonchain']


@bp.route("/", methods=["GET"])
@bp.route("/api/profiles", methods=["GET"])
def dashboard():
    search = request.args.get('q', '')
    sort_by = request.args.get('sort', 'newest')
    time_range = request.args.get('range', '30D').upper()
    chain = None
    if request.args.get('chain'):
        try:
            chain = parse_chain(request.args.get('chain'))
        except ValueError as e:
            return jsonify({'error': str(e)}), 400
    if sort_by not in SORT_OPTIONS:
        return jsonify({'error': f'Invalid sort: {sort_by}'}), 400
    if time_range not in TIME_RANGES:
        return jsonify({'error': f'Invalid range: {time_range}'}), 400

    try:
        svc = _services()
        profiles = svc['store'].get_all_profiles()
        stats_by_id = svc['aggregator'].fetch_many(profiles, max_workers=svc['settings'].DASHBOARD_MAX_WORKERS)
        prices = svc['price_cache'].fetch_token_prices(coingecko_id(c) for c in SUPPORTED_CHAINS)
        rates = {c: prices.get(coingecko_id(c), 0.0) for c in SUPPORTED_CHAINS}
        return jsonify(build_dashboard(profiles, stats_by_id, rates, search, sort_by, time_range, chain))
    except Exception as e:
        current_app.logger.exception("Failed to build dashboard: %s", e)
        return jsonify({'error': 'Failed to load profiles'}), 500


@bp.route("/api/onboarding", methods=["GET"])
def onboarding():
    return jsonify({'onboarding': ONBOARDING_STEPS, 'tour': TOUR_STEPS})

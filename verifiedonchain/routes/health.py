import time

from flask import Blueprint, current_app, jsonify

bp = Blueprint("health", __name__, url_prefix="/")


@bp.route("/health", methods=["GET"])
def health():
    return jsonify({'status': 'ok', 'timestamp': int(time.time())})


@bp.route("/db/health", methods=["GET"])
def db_health():
    status = current_app.extensions['verifiedonchain']['db_manager'].get_health_status()
    code = 200 if status.get('status') == 'healthy' else 503
    return jsonify(status), code

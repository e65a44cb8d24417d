"""VerifiedOnChain: a directory of public wallets linked to claimed usernames."""
from __future__ import annotations

import logging

from flask import Flask, request

from .config.settings import Settings
from .db.database import DatabaseConfig, DatabaseManager
from .db.repository import ProfileStore
from .services.prices import PriceCache
from .services.stats import StatsAggregator

EXTENSION_KEY = 'verifiedonchain'


def _configure_logging(level_name: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s | %(levelname)s | %(name)s | %(message)s'
    )


def create_app(config: Settings | dict | None = None) -> Flask:
    """App factory.

    Accepts a ready Settings object, a dict of overrides applied on top of the
    environment, or None to read everything from the environment.
    """
    if isinstance(config, dict):
        cfg = Settings(**config)
    elif isinstance(config, Settings):
        cfg = config
    else:
        cfg = Settings.from_env()

    _configure_logging(cfg.LOG_LEVEL)

    flask_app = Flask(__name__)
    flask_app.config.from_mapping(cfg.as_dict())
    flask_app.logger.setLevel(getattr(logging, cfg.LOG_LEVEL, logging.INFO))

    db_config = DatabaseConfig(cfg.DATABASE_URL)
    db_manager = DatabaseManager(db_config)
    if not db_manager.initialize_database():
        flask_app.logger.warning("Database not initialized; profile reads will come back empty")

    price_cache = PriceCache(
        ttl_seconds=cfg.PRICE_CACHE_TTL_SECONDS,
        base_url=cfg.COINGECKO_BASE,
        timeout=cfg.REQUEST_TIMEOUT_SECONDS,
    )
    flask_app.extensions[EXTENSION_KEY] = {
        'settings': cfg,
        'db_config': db_config,
        'db_manager': db_manager,
        'store': ProfileStore(db_config),
        'price_cache': price_cache,
        'aggregator': StatsAggregator(price_cache, settings=cfg),
    }

    @flask_app.before_request
    def log_request_info():
        flask_app.logger.info(
            "Request %s %s | args=%s",
            request.method,
            request.path,
            dict(request.args) if request.args else {},
        )

    @flask_app.after_request
    def log_response_info(response):
        flask_app.logger.info(
            "Response %s %s | status=%s | length=%s",
            request.method,
            request.path,
            response.status,
            response.content_length,
        )
        return response

    from .routes.directory import bp as directory_bp
    from .routes.health import bp as health_bp
    from .routes.profiles import bp as profiles_bp
    from .routes.submit import bp as submit_bp

    flask_app.register_blueprint(directory_bp)
    flask_app.register_blueprint(profiles_bp)
    flask_app.register_blueprint(submit_bp)
    flask_app.register_blueprint(health_bp)

    return flask_app


__all__ = ['create_app', 'EXTENSION_KEY']

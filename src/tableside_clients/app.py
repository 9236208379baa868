"""
Factory for the customer-facing Flask application.

Guests reach it through the table's QR link; the device keeps an opaque
customer token and sends its complete cart on every change.
"""

from __future__ import annotations

import os

from flask import Flask
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from tableside_clients.routes.api import api_bp
from tableside_clients.routes.web import web_bp
from tableside_shared.config import AppConfig, load_config, validate_required_env_vars
from tableside_shared.db import init_db, init_engine
from tableside_shared.error_handlers import register_error_handlers
from tableside_shared.logging_config import configure_logging
from tableside_shared.models import Base
from tableside_shared.services.concurrency import configure_retry_policy


def create_app(config: AppConfig | None = None) -> Flask:
    """
    Build and configure the Flask app for clients.
    """
    if config is None:
        # Validate all required environment variables (fail-fast)
        validate_required_env_vars(skip_in_debug=True)
        config = load_config("tableside-clients")

    app = Flask(__name__)

    configure_logging(config.app_name, config.log_level)

    init_engine(config)
    init_db(Base.metadata)
    configure_retry_policy(config)

    app.config["SECRET_KEY"] = config.secret_key
    app.config["APP_NAME"] = config.app_name
    app.config["RESTAURANT_NAME"] = config.restaurant_name
    app.config["RESTAURANT_SLUG"] = config.restaurant_slug
    app.config["PUBLIC_BASE_URL"] = config.public_base_url
    app.config["MAX_CART_LINES"] = config.max_cart_lines
    app.config["DEBUG_MODE"] = config.debug_mode
    app.config["DEBUG"] = config.flask_debug

    register_error_handlers(app)

    num_proxies = int(os.getenv("NUM_PROXIES", "0"))
    if num_proxies > 0:
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=num_proxies,
            x_proto=num_proxies,
            x_host=num_proxies,
            x_port=num_proxies,
        )

    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(web_bp)

    allowed_origins = config.allowed_origins
    if config.debug_mode or not allowed_origins:
        allowed_origins = [
            "http://localhost:6080",
            "http://127.0.0.1:6080",
        ]
    CORS(
        app,
        resources={r"/api/*": {"origins": allowed_origins, "supports_credentials": True}},
    )

    app.logger.info(f"{config.app_name} ready for {config.restaurant_name}")
    return app

# backend/refurbshop/__init__.py
from flask import Flask, request

from .config import Config, PAYMENT_MODE_STRIPE
from .extensions import db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Refuse to start with an inconsistent payment setup
    from .services.payment_gateway import validate_payment_config
    validate_payment_config(app.config)
    if app.config["PAYMENT_MODE"] != PAYMENT_MODE_STRIPE:
        app.logger.warning("PAYMENT_MODE=%s: orders are marked paid without a processor", app.config["PAYMENT_MODE"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.shop import shop_bp
    from .routes.payments import payments_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(shop_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(admin_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

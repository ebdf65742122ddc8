import logging
import os

import click
from flask import Flask
from sqlalchemy.exc import SQLAlchemyError

from .config import CONFIGS
from .extensions import db, migrate, jwt, ma, cors, limiter, bcrypt


def create_app(config_name=None, test_config=None):
    app = Flask(__name__, instance_relative_config=False)
    env = config_name or os.getenv("FLASK_ENV", "development")
    app.config.from_object(CONFIGS.get(env, CONFIGS["development"]))
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # models must be imported before create_all / migrations see the metadata
    from spendify.models import user, transaction, card, refresh_token, blacklisted_token  # noqa: F401
    # registers the flask-jwt-extended callbacks
    from spendify.utils import auth_utils  # noqa: F401
    from spendify.utils.encryption import init_encryption
    from spendify.utils.sanitize import init_sanitizer
    from spendify.utils.csrf import init_csrf
    from spendify.utils.rate_limits import rate_limit_exceeded

    # initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",")]
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": origins}},
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization", "X-XSRF-TOKEN", "X-CSRF-TOKEN"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )
    bcrypt.init_app(app)
    init_encryption(app)

    # request pipeline: sanitize -> csrf -> rate limit (limiter hooks in last)
    init_sanitizer(app)
    init_csrf(app)
    limiter.init_app(app)

    # register blueprints
    from spendify.routes.auth_routes import bp as auth_bp
    from spendify.routes.transaction_routes import bp as transaction_bp
    from spendify.routes.card_routes import bp as card_bp
    from spendify.routes.transfer_routes import bp as transfer_bp
    from spendify.routes.analytics_routes import bp as analytics_bp
    from spendify.routes.csrf_routes import bp as csrf_bp
    from spendify.routes.system_routes import bp as system_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(transaction_bp)
    app.register_blueprint(card_bp)
    app.register_blueprint(transfer_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(csrf_bp)
    app.register_blueprint(system_bp)

    # error handlers to match required error format
    from spendify.utils.exceptions import ServiceError
    from spendify.utils.response_formatter import error_response, service_error_response

    @app.errorhandler(ServiceError)
    def service_error(e):
        return service_error_response(e)

    @app.errorhandler(400)
    def bad_request(e):
        return error_response("BAD_REQUEST", "Invalid request", status=400)

    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", status=404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return error_response("METHOD_NOT_ALLOWED", "Method not allowed", status=405)

    app.register_error_handler(429, rate_limit_exceeded)

    @app.errorhandler(SQLAlchemyError)
    def database_error(e):
        db.session.rollback()
        app.logger.exception("Database error")
        return error_response("SERVER_ERROR", "Internal server error", status=500)

    @app.errorhandler(500)
    def server_error(e):
        return error_response("SERVER_ERROR", "Internal server error", status=500)

    register_commands(app)
    return app


def register_commands(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables without migrations."""
        db.create_all()
        click.echo("Database tables created")

    @app.cli.command("purge-tokens")
    def purge_tokens():
        """Delete expired refresh tokens and blacklist entries."""
        from spendify.services.token_service import purge_expired_tokens

        blacklisted, refresh = purge_expired_tokens()
        click.echo(f"Purged {blacklisted} blacklisted and {refresh} refresh tokens")

import logging
import os

from flask import Flask, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
csrf = CSRFProtect()


def get_real_ip():
    """
    Get the real client IP address, accounting for reverse proxies.
    Checks X-Forwarded-For, X-Real-IP, and falls back to remote_addr.
    """
    # X-Forwarded-For: client, proxy1, proxy2, ...
    if request.headers.get("X-Forwarded-For"):
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    return get_remote_address()


limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["10000 per day", "1000 per hour"],
)


def create_app(config_name=None, clock=None, start_scheduler=True):
    """Build the application.

    Args:
        config_name: key into ``config.config``; defaults to ``FLASK_CONFIG``
        clock: zero-argument callable returning an aware UTC datetime; every
            time-dependent service reads "now" from it
        start_scheduler: run the background sweep (off for one-shot CLI use)
    """
    app = Flask(__name__)

    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    # Missing required settings raise ConfigurationError here
    app.config.from_object(config[config_name]())

    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SECURE"] = (
        False
        if app.config.get("DEBUG")
        else app.config.get("FLASK_ENV") == "production"
    )
    app.config["PERMANENT_SESSION_LIFETIME"] = 86400  # 24 hours
    app.config["WTF_CSRF_TIME_LIMIT"] = None

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    limiter.init_app(app)

    # Setup logging
    from firstgoal.utils.logging_config import setup_logging

    setup_logging(app)

    # Wire the cache and services, shared by every request in this process
    from firstgoal.services import init_services

    init_services(app, clock=clock)

    # Import and register blueprints
    from firstgoal.routes.auth import bp as auth_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")

    from firstgoal.routes.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    from firstgoal.routes.admin import bp as admin_bp

    app.register_blueprint(admin_bp, url_prefix="/admin")

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    register_error_handlers(app)

    with app.app_context():
        db.create_all()

    # Initialize and start background scheduler
    if start_scheduler and not app.config.get("TESTING", False):
        from firstgoal.services.scheduler_service import scheduler_service

        scheduler_service.init_app(app)

    logger.info(f"First-Goal Pick'em started with '{config_name}' configuration")
    return app


def register_error_handlers(app):
    """Register global error handlers"""
    from flask_wtf.csrf import CSRFError

    from firstgoal.errors import FirstGoalError, UpstreamFailure

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    @app.errorhandler(FirstGoalError)
    def handle_app_error(error):
        if isinstance(error, UpstreamFailure):
            app.logger.error(f"Upstream failure: {error.message} (cause: {error.cause!r})")
        else:
            app.logger.info(
                f"{type(error).__name__}: {error.message} - Path: {request.path}"
            )
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        app.logger.warning(
            f"CSRF Error: {error.description} - Path: {request.path}"
        )
        return jsonify({"error": "Security token expired or invalid"}), 400

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
        )
        return jsonify({"error": "Bad request"}), 400

    @app.errorhandler(401)
    def unauthorized_error(error):
        return jsonify({"error": "Authentication required"}), 401

    @app.errorhandler(403)
    def forbidden_error(error):
        return jsonify({"error": "Access forbidden"}), 403

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(429)
    def too_many_requests_error(error):
        return jsonify({"error": "Too many requests"}), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500


from firstgoal import models  # noqa: F401, E402 - imported for model registration

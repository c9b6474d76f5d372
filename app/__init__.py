"""
SLF/PBG Certification Workflow
Flask Application Factory.

Usage:
    from app import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_migrate import Migrate

from app.config import config
from app.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDenied,
    TransitionError,
    ValidationError,
)
from app.middleware.actor_context import init_actor_context
from app.middleware.diagnostics import run_startup_diagnostics
from app.middleware.logging_config import configure_logging
from app.middleware.rate_limiter import init_rate_limits, rate_limit_key
from app.middleware.security_headers import init_security_headers
from app.middleware.timing import init_request_timing
from app.models import db
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=rate_limit_key,
    default_limits=[],                     # no global limit, applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def _register_error_handlers(app):
    """Map service-layer exceptions and HTTP errors to JSON bodies.

    Every service-exception handler rolls back the session first, so a
    request that failed half-way never leaves flushed rows behind.
    """

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        db.session.rollback()
        return api_error(E.NOT_FOUND, str(error))

    @app.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        db.session.rollback()
        return api_error(E.VALIDATION_RULE, str(error), details=error.details or None)

    @app.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        db.session.rollback()
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @app.errorhandler(TransitionError)
    def _handle_transition(error: TransitionError):
        db.session.rollback()
        logger.info("Rejected transition: %s", error)
        return api_error(E.CONFLICT_STATE, str(error), details=error.details)

    @app.errorhandler(PermissionDenied)
    def _handle_forbidden(error: PermissionDenied):
        db.session.rollback()
        return api_error(E.FORBIDDEN, str(error))

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": E.NOT_FOUND, "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(415)
    def unsupported_media(e):
        return {"error": "Content-Type must be application/json"}, 415

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        db.session.rollback()
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": E.INTERNAL}, 500


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Security headers, timing, acting profile ─────────────────────────
    init_security_headers(app)
    init_request_timing(app)
    init_actor_context(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    app.config.setdefault("MAX_CONTENT_LENGTH", 2 * 1024 * 1024)  # 2 MB

    @app.before_request
    def _guard_request():
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            abort(413, description="Request body too large")
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic can detect them ─────────────────────
    from app.models import audit as _audit_models                # noqa: F401
    from app.models import document as _document_models          # noqa: F401
    from app.models import inspection as _inspection_models      # noqa: F401
    from app.models import notification as _notification_models  # noqa: F401
    from app.models import payment as _payment_models            # noqa: F401
    from app.models import profile as _profile_models            # noqa: F401
    from app.models import project as _project_models            # noqa: F401
    from app.models import schedule as _schedule_models          # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if app.config.get("AUTO_CREATE_TABLES", True):
        with app.app_context():
            try:
                db.create_all()
                app.logger.info("db.create_all() completed successfully")
            except Exception as e:
                app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from app.blueprints import register_blueprints
    register_blueprints(app)

    _register_error_handlers(app)

    # ── Startup diagnostics ──────────────────────────────────────────────
    run_startup_diagnostics(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app

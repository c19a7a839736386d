"""
EOMS Compliance Portal
Flask Application Factory.

Usage:
    from eoms_portal import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from sqlalchemy.exc import SQLAlchemyError

from eoms_portal.config import config
from eoms_portal.middleware.logging_config import configure_logging
from eoms_portal.middleware.rate_limiter import init_rate_limits
from eoms_portal.middleware.timing import init_request_timing
from eoms_portal.middleware.viewer_context import init_viewer_context
from eoms_portal.models import db
from eoms_portal.services.report_catalog import get_catalog
from eoms_portal.services.risk_rating import RatingThresholds
from eoms_portal.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit — apply per-blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def _check_engine_config(app):
    """Fail at startup, not on first request, when engine config is malformed."""
    get_catalog(app.config.get("REPORT_CATALOG_VERSION"))
    RatingThresholds.from_config(app.config["RISK_RATING_THRESHOLDS"])


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
    _check_engine_config(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Viewer context middleware (sets g.viewer from gateway headers) ───
    init_viewer_context(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from eoms_portal.models import organization as _organization_models  # noqa: F401
    from eoms_portal.models import submission as _submission_models      # noqa: F401
    from eoms_portal.models import risk as _risk_models                  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except SQLAlchemyError as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from eoms_portal.blueprints.compliance_bp import compliance_bp
    from eoms_portal.blueprints.health_bp import health_bp
    from eoms_portal.blueprints.organization_bp import organization_bp
    from eoms_portal.blueprints.public_bp import public_bp
    from eoms_portal.blueprints.risk_bp import risk_bp
    from eoms_portal.blueprints.submission_bp import submission_bp

    app.register_blueprint(submission_bp)
    app.register_blueprint(compliance_bp)
    app.register_blueprint(public_bp)
    app.register_blueprint(risk_bp)
    app.register_blueprint(organization_bp)
    app.register_blueprint(health_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify({"error": "Too many requests", "retry_after": e.description}), 429

    @app.errorhandler(SQLAlchemyError)
    def database_error(e):
        db.session.rollback()
        logger.exception("Unhandled database error on %s %s", request.method, request.path)
        return api_error(E.DATABASE, "Database error")

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app

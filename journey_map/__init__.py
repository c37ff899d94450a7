"""
JTBD Journey Map
Flask Application Factory.

Usage:
    from journey_map import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from journey_map.config import config
from journey_map.core.exceptions import EditorStateError, NotFoundError, ValidationError
from journey_map.models import db
from journey_map.middleware.logging_config import configure_logging
from journey_map.middleware.rate_limiter import init_rate_limits
from journey_map.middleware.timing import init_request_timing
from journey_map.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
# ON DELETE CASCADE on journeys → micro_jobs → links/connections only fires
# with foreign keys switched on.
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
# Storage and enablement come from RATELIMIT_* config; limits are per blueprint
limiter = Limiter(key_func=get_remote_address, default_limits=[])

# Paths that accept a raw text/csv body in addition to JSON / multipart
_RAW_CSV_PATHS = ("/api/v1/import/",)


def _accepts_raw_csv(path: str) -> bool:
    return path.startswith(_RAW_CSV_PATHS) or path.endswith("/import")


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
    cfg = config[config_name]
    # ProductionConfig validates required env vars on instantiation
    app.config.from_object(cfg() if config_name == "production" else cfg)

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

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Request guards (Content-Type) ────────────────────────────────────
    @app.before_request
    def _guard_request():
        from flask import abort
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            if _accepts_raw_csv(request.path):
                return None
            ct = request.content_type or ""
            if request.data and "json" not in ct and "multipart/form-data" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic can detect them ─────────────────────
    from journey_map.models import journey as _journey_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if db_uri.startswith("sqlite:///") and ":memory:" not in db_uri:
        db_dir = os.path.dirname(db_uri[len("sqlite:///"):])
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from journey_map.blueprints.import_bp import import_bp
    from journey_map.blueprints.workspace_bp import workspace_bp
    from journey_map.blueprints.journey_bp import journey_bp
    from journey_map.blueprints.health_bp import health_bp

    app.register_blueprint(import_bp)
    app.register_blueprint(workspace_bp)
    app.register_blueprint(journey_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    _register_cli(app)

    @app.route("/")
    def index():
        return {
            "app": "JTBD Journey Map",
            "api": "/api/v1",
            "health": "/api/v1/health/live",
        }

    # ── Health check (short form — detailed version at /health/live) ────
    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": "JTBD Journey Map"}

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(NotFoundError)
    def handle_not_found_error(e):
        return api_error(E.NOT_FOUND, str(e))

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return api_error(E.UNPROCESSABLE, str(e), details=e.details)

    @app.errorhandler(EditorStateError)
    def handle_editor_state_error(e):
        return api_error(E.CONFLICT_STATE, str(e))

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Uploaded file is too large"}, 413

    @app.errorhandler(415)
    def unsupported_media_type(e):
        return {"error": e.description}, 415

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app


def _register_cli(app):

    @app.cli.command("import-csv")
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    @click.option("--name", default=None, help="Journey name (defaults to the file name).")
    @click.option("--description", default="", help="Journey description.")
    @click.option("--no-connect", is_flag=True, help="Skip sequential edge generation.")
    def import_csv_cmd(path, name, description, no_connect):
        """Import a journey CSV file and save it as a new journey."""
        from journey_map.services.csv_import_service import (
            CsvImportError,
            build_sequential_connections,
            import_journey_csv,
        )
        from journey_map.services.journey_service import save_journey

        with open(path, "rb") as fh:
            content = fh.read()
        try:
            result = import_journey_csv(content, filename=os.path.basename(path))
        except CsvImportError as exc:
            raise click.ClickException(exc.message) from exc

        connections = [] if no_connect else build_sequential_connections(result.micro_jobs)
        journey_name = name or os.path.splitext(os.path.basename(path))[0]
        saved = save_journey(
            journey_name, description, result.micro_jobs, result.job_performers, connections,
        )
        if not saved["success"]:
            raise click.ClickException(saved["error"])
        logger.info(
            "Imported %s as journey %s (%d micro jobs, %d performers, %d connections).",
            path, saved["journey_id"], len(result.micro_jobs),
            len(result.job_performers), len(connections),
        )
        click.echo(saved["journey_id"])

    @app.cli.command("seed-sample-journey")
    def seed_sample_journey_cmd():
        """Save the built-in three-step sample journey."""
        from journey_map.services import sample_journey
        from journey_map.services.journey_service import save_journey

        saved = save_journey(
            sample_journey.SAMPLE_NAME,
            sample_journey.SAMPLE_DESCRIPTION,
            sample_journey.sample_micro_jobs(),
            sample_journey.sample_job_performers(),
            sample_journey.sample_connections(),
        )
        if not saved["success"]:
            raise click.ClickException(saved["error"])
        logger.info("Seeded sample journey %s.", saved["journey_id"])
        click.echo(saved["journey_id"])

"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready  — 200 whenever the process is serving
    GET /api/v1/health/live   — store round trip, journey schema, open workspaces

Only the database check can degrade the overall status (503); the schema
and workspace checks are informational.
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import inspect

from journey_map.models import db
from journey_map.services import workspace_service

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")

JOURNEY_TABLES = ("journeys", "job_performers", "micro_jobs", "microjob_performers", "connections")


def _check_database() -> dict:
    started = time.perf_counter()
    db.session.execute(db.text("SELECT 1"))
    return {"status": "ok", "latency_ms": round((time.perf_counter() - started) * 1000, 1)}


def _check_schema() -> dict:
    present = set(inspect(db.engine).get_table_names())
    missing = [t for t in JOURNEY_TABLES if t not in present]
    if missing:
        return {"status": "incomplete", "missing": missing}
    return {"status": "ok"}


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    checks = {}
    healthy = True

    try:
        checks["database"] = _check_database()
        checks["schema"] = _check_schema()
    except Exception as exc:
        db.session.rollback()
        checks["database"] = {"status": "error", "detail": str(exc)}
        healthy = False
        logger.error("Health check — database unreachable: %s", exc)

    checks["workspaces"] = {"status": "ok", "open": workspace_service.workspace_count()}
    checks["app"] = {
        "name": "JTBD Journey Map",
        "debug": current_app.debug,
        "testing": current_app.testing,
        "atomic_save": bool(current_app.config.get("JOURNEY_SAVE_ATOMIC")),
    }

    return jsonify({
        "status": "healthy" if healthy else "degraded",
        "checks": checks,
    }), 200 if healthy else 503

"""
Workspace Blueprint — the live diagram session.

Every workspace request holds that workspace's lock for its whole duration,
so one workspace only ever has one writer at a time.

Endpoints:
  POST   /api/v1/workspaces                                   — New empty workspace
  GET    /api/v1/workspaces/<ws>                              — Diagram payload
  DELETE /api/v1/workspaces/<ws>                              — Drop workspace

  POST   /api/v1/workspaces/<ws>/import                       — Import CSV (replaces all)

  PUT    /api/v1/workspaces/<ws>/filters                      — Set filter selection
  DELETE /api/v1/workspaces/<ws>/filters                      — Clear filters
  GET    /api/v1/workspaces/<ws>/filters/options              — Sidebar values
  GET    /api/v1/workspaces/<ws>/performers/search?q=         — Performer search

  PATCH  /api/v1/workspaces/<ws>/nodes/<job_id>/position      — Node drag

  POST   /api/v1/workspaces/<ws>/connections                  — User-drawn edge
  POST   /api/v1/workspaces/<ws>/connections/<edge_id>/edit   — Open edge editor
  PATCH  /api/v1/workspaces/<ws>/editor                       — Edit draft label/type
  POST   /api/v1/workspaces/<ws>/editor/save                  — Save draft
  POST   /api/v1/workspaces/<ws>/editor/cancel                — Discard draft
  POST   /api/v1/workspaces/<ws>/editor/delete                — Delete edited edge

  POST   /api/v1/workspaces/<ws>/journey/save                 — Persist as journey
  POST   /api/v1/workspaces/<ws>/journey/<journey_id>/load    — Load stored journey
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from journey_map.services.csv_import_service import CsvImportError
from journey_map.services.filter_service import FilterState
from journey_map.services.workspace_service import (
    create_workspace,
    delete_workspace,
    get_workspace,
)
from journey_map.utils.errors import E, api_error
from journey_map.utils.helpers import (
    extract_csv_upload,
    journey_result_error,
    json_body,
    parse_bool,
    string_field_errors,
)

logger = logging.getLogger(__name__)

workspace_bp = Blueprint("workspace_bp", __name__, url_prefix="/api/v1/workspaces")


# ═══════════════════════════════════════════════════════════════
# Error Handler
# ═══════════════════════════════════════════════════════════════
@workspace_bp.errorhandler(CsvImportError)
def handle_csv_import_error(e):
    return api_error(E.IMPORT_INVALID, e.message, status=e.status_code, details=e.details)


# ═══════════════════════════════════════════════════════════════
# Workspace lifecycle
# ═══════════════════════════════════════════════════════════════
@workspace_bp.route("", methods=["POST"])
def create():
    ws = create_workspace(current_app.config.get("WORKSPACE_IDLE_TTL_SECONDS"))
    return jsonify(ws.diagram()), 201


@workspace_bp.route("/<workspace_id>", methods=["GET"])
def diagram(workspace_id):
    ws = get_workspace(workspace_id)
    with ws.lock:
        return jsonify(ws.diagram()), 200


@workspace_bp.route("/<workspace_id>", methods=["DELETE"])
def delete(workspace_id):
    delete_workspace(workspace_id)
    return jsonify({"message": "Workspace deleted"}), 200


# ═══════════════════════════════════════════════════════════════
# Import
# ═══════════════════════════════════════════════════════════════
@workspace_bp.route("/<workspace_id>/import", methods=["POST"])
def import_csv(workspace_id):
    """Upload a CSV and replace the workspace contents.

    ``auto_connect`` (query string or form field, default true) chains the
    imported jobs with sequential edges.
    """
    ws = get_workspace(workspace_id)
    upload = extract_csv_upload()
    if upload is None:
        return api_error(E.VALIDATION_REQUIRED, "CSV file is required (file upload or raw body)")

    flag = request.args.get("auto_connect", request.form.get("auto_connect"))
    flag = json_body().get("auto_connect", flag)
    auto_connect = parse_bool(flag, default=True)

    with ws.lock:
        result = ws.apply_import(
            upload.content,
            filename=upload.filename,
            mimetype=upload.mimetype,
            auto_connect=auto_connect,
        )
        return jsonify({
            "imported": {
                "micro_jobs": len(result.micro_jobs),
                "job_performers": len(result.job_performers),
                "connections": len(ws.connections),
            },
            "diagram": ws.diagram(),
        }), 200


# ═══════════════════════════════════════════════════════════════
# Filters
# ═══════════════════════════════════════════════════════════════
@workspace_bp.route("/<workspace_id>/filters", methods=["PUT"])
def set_filters(workspace_id):
    ws = get_workspace(workspace_id)
    filters = FilterState.from_dict(json_body())
    with ws.lock:
        ws.set_filters(filters)
        return jsonify(ws.diagram()), 200


@workspace_bp.route("/<workspace_id>/filters", methods=["DELETE"])
def clear_filters(workspace_id):
    ws = get_workspace(workspace_id)
    with ws.lock:
        ws.clear_filters()
        return jsonify(ws.diagram()), 200


@workspace_bp.route("/<workspace_id>/filters/options", methods=["GET"])
def filter_options(workspace_id):
    ws = get_workspace(workspace_id)
    with ws.lock:
        return jsonify(ws.filter_options()), 200


@workspace_bp.route("/<workspace_id>/performers/search", methods=["GET"])
def search_performers(workspace_id):
    ws = get_workspace(workspace_id)
    query = request.args.get("q", "")
    with ws.lock:
        matches = ws.search_performers(query)
    return jsonify({"query": query, "items": [p.to_dict() for p in matches], "total": len(matches)}), 200


# ═══════════════════════════════════════════════════════════════
# Node drag
# ═══════════════════════════════════════════════════════════════
@workspace_bp.route("/<workspace_id>/nodes/<job_id>/position", methods=["PATCH"])
def move_node(workspace_id, job_id):
    ws = get_workspace(workspace_id)
    data = json_body()
    errors = {}
    coords = {}
    for axis in ("x", "y"):
        value = data.get(axis)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            errors[axis] = "Must be a number."
        else:
            coords[axis] = value
    if errors:
        return api_error(E.VALIDATION_INVALID, "Invalid position", details=errors)

    with ws.lock:
        job = ws.move_node(job_id, coords["x"], coords["y"])
    return jsonify(job.to_dict()), 200


# ═══════════════════════════════════════════════════════════════
# Connections + edge editor
# ═══════════════════════════════════════════════════════════════
@workspace_bp.route("/<workspace_id>/connections", methods=["POST"])
def add_connection(workspace_id):
    ws = get_workspace(workspace_id)
    data = json_body()
    source = data.get("source")
    target = data.get("target")
    if not source or not target:
        return api_error(E.VALIDATION_REQUIRED, "source and target are required")

    with ws.lock:
        conn = ws.add_connection(
            str(source), str(target),
            label=data.get("label") or "",
            conn_type=data.get("type") or "normal",
        )
    return jsonify(conn.to_dict()), 201


@workspace_bp.route("/<workspace_id>/connections/<edge_id>/edit", methods=["POST"])
def open_editor(workspace_id, edge_id):
    ws = get_workspace(workspace_id)
    with ws.lock:
        draft = ws.open_edge(edge_id)
    return jsonify({"editor": draft.to_dict(), "choice": draft.choice}), 200


@workspace_bp.route("/<workspace_id>/editor", methods=["PATCH"])
def update_editor(workspace_id):
    ws = get_workspace(workspace_id)
    data = json_body()
    with ws.lock:
        draft = ws.update_edge_draft(label=data.get("label"), choice=data.get("type"))
    return jsonify({"editor": draft.to_dict(), "choice": draft.choice}), 200


@workspace_bp.route("/<workspace_id>/editor/save", methods=["POST"])
def save_editor(workspace_id):
    ws = get_workspace(workspace_id)
    with ws.lock:
        saved = ws.save_edge()
        return jsonify({"connection": saved.to_dict(), "diagram": ws.diagram()}), 200


@workspace_bp.route("/<workspace_id>/editor/cancel", methods=["POST"])
def cancel_editor(workspace_id):
    ws = get_workspace(workspace_id)
    with ws.lock:
        ws.cancel_edge()
    return jsonify({"editor": None}), 200


@workspace_bp.route("/<workspace_id>/editor/delete", methods=["POST"])
def delete_edge(workspace_id):
    ws = get_workspace(workspace_id)
    with ws.lock:
        edge_id = ws.delete_edge()
        return jsonify({"deleted": edge_id, "diagram": ws.diagram()}), 200


# ═══════════════════════════════════════════════════════════════
# Persistence
# ═══════════════════════════════════════════════════════════════
@workspace_bp.route("/<workspace_id>/journey/save", methods=["POST"])
def save_journey(workspace_id):
    """Save the workspace as a journey (updates the loaded one unless ``as_new``)."""
    ws = get_workspace(workspace_id)
    data = json_body()
    errors = string_field_errors(data, "name", "description")
    if errors:
        return api_error(E.VALIDATION_INVALID, "Invalid journey metadata", details=errors)

    with ws.lock:
        result = ws.save_journey(
            data.get("name") or "",
            data.get("description") or "",
            as_new=parse_bool(data.get("as_new")),
        )
    if not result["success"]:
        return journey_result_error(result)
    return jsonify({"journey_id": result["journey_id"]}), 201


@workspace_bp.route("/<workspace_id>/journey/<journey_id>/load", methods=["POST"])
def load_journey(workspace_id, journey_id):
    ws = get_workspace(workspace_id)
    with ws.lock:
        result = ws.load_journey(journey_id)
        if not result["success"]:
            return journey_result_error(result)
        return jsonify(ws.diagram()), 200

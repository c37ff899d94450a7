"""
Journey Blueprint — stored journeys, independent of any workspace.

Endpoints:
  GET    /api/v1/journeys                — List (newest update first)
  GET    /api/v1/journeys/<journey_id>   — Full stored snapshot
  PUT    /api/v1/journeys/<journey_id>   — Update name / description
  DELETE /api/v1/journeys/<journey_id>   — Delete (cascades)
"""

import logging

from flask import Blueprint, jsonify

from journey_map.services import journey_service
from journey_map.utils.errors import E, api_error
from journey_map.utils.helpers import journey_result_error, json_body, string_field_errors

logger = logging.getLogger(__name__)

journey_bp = Blueprint("journey_bp", __name__, url_prefix="/api/v1/journeys")


@journey_bp.route("", methods=["GET"])
def list_journeys():
    result = journey_service.list_journeys()
    if not result["success"]:
        return journey_result_error(result)
    return jsonify({"items": result["journeys"], "total": len(result["journeys"])}), 200


@journey_bp.route("/<journey_id>", methods=["GET"])
def get_journey(journey_id):
    result = journey_service.load_journey(journey_id)
    if not result["success"]:
        return journey_result_error(result)
    data = result["data"]
    return jsonify({
        "journey": data["journey"],
        "microJobs": [j.to_dict() for j in data["micro_jobs"]],
        "jobPerformers": [p.to_dict() for p in data["job_performers"]],
        "connections": [c.to_dict() for c in data["connections"]],
    }), 200


@journey_bp.route("/<journey_id>", methods=["PUT"])
def update_journey(journey_id):
    data = json_body()
    errors = string_field_errors(data, "name", "description")
    if errors:
        return api_error(E.VALIDATION_INVALID, "Invalid journey metadata", details=errors)

    name = (data.get("name") or "").strip()
    if not name:
        return api_error(E.VALIDATION_REQUIRED, "Journey name is required")

    result = journey_service.update_journey_metadata(
        journey_id, name, data.get("description") or "",
    )
    if not result["success"]:
        return journey_result_error(result)
    return jsonify(result["journey"]), 200


@journey_bp.route("/<journey_id>", methods=["DELETE"])
def delete_journey(journey_id):
    result = journey_service.delete_journey(journey_id)
    if not result["success"]:
        return journey_result_error(result)
    return jsonify({"message": "Journey deleted"}), 200

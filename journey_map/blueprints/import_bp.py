"""
CSV Import Blueprint.

Endpoints that work on a CSV file without touching any workspace.

Endpoints:
  GET  /api/v1/import/template   — Download CSV template
  POST /api/v1/import/validate   — Parse + validate without importing (dry run)
"""

import logging

from flask import Blueprint, Response, jsonify

from journey_map.services.csv_import_service import (
    CsvImportError,
    generate_csv_template,
    is_csv_upload,
    preview_journey_csv,
)
from journey_map.utils.errors import E, api_error
from journey_map.utils.helpers import extract_csv_upload

logger = logging.getLogger(__name__)

import_bp = Blueprint("import_bp", __name__, url_prefix="/api/v1/import")


# ═══════════════════════════════════════════════════════════════
# Error Handler
# ═══════════════════════════════════════════════════════════════
@import_bp.errorhandler(CsvImportError)
def handle_csv_import_error(e):
    return api_error(E.IMPORT_INVALID, e.message, status=e.status_code, details=e.details)


# ═══════════════════════════════════════════════════════════════
# Template Download
# ═══════════════════════════════════════════════════════════════
@import_bp.route("/template", methods=["GET"])
def download_template():
    """Download a CSV template for journey import."""
    csv_content = generate_csv_template()
    return Response(
        csv_content,
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=journey_import_template.csv"},
    )


# ═══════════════════════════════════════════════════════════════
# Validate (dry run)
# ═══════════════════════════════════════════════════════════════
@import_bp.route("/validate", methods=["POST"])
def validate_csv():
    """Validate a CSV file without importing — dry run."""
    upload = extract_csv_upload()
    if upload is None:
        return api_error(E.VALIDATION_REQUIRED, "CSV file is required (file upload or raw body)")

    if (upload.filename or upload.mimetype) and not is_csv_upload(upload.filename, upload.mimetype):
        raise CsvImportError("Please upload a CSV file")

    preview = preview_journey_csv(upload.content)
    return jsonify({"valid": True, **preview}), 200

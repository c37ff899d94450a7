"""JSON error envelope shared by every blueprint.

    {"error": "<message for the UI>", "code": "ERR_…", "details": {...}?}

    return api_error(E.NOT_FOUND, "Journey not found")
    return api_error(E.IMPORT_INVALID, exc.message, details=exc.details)
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes. The HTTP status defaults live in ``STATUS_BY_CODE``."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    IMPORT_INVALID = "ERR_IMPORT_INVALID"
    UNPROCESSABLE = "ERR_UNPROCESSABLE"
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.IMPORT_INVALID: 400,
    E.NOT_FOUND: 404,
    E.CONFLICT_STATE: 409,
    E.UNPROCESSABLE: 422,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """Build ``(response, status)`` for a view to return.

    ``status`` overrides the code's default (e.g. a CSV error carrying its
    own status); unknown codes fall back to 400.
    """
    body = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or STATUS_BY_CODE.get(code, 400)

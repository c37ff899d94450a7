"""Shared blueprint helpers.

extract_csv_upload:  multipart file, JSON ``csv_content`` or raw body
parse_bool:          query/JSON flag parsing ("true", "0", True, …)
json_body:           request JSON as a dict, never None
string_field_errors: type check for optional text fields of a JSON body
journey_result_error: adapter result dict → error response tuple
"""
import logging
from dataclasses import dataclass

from flask import request

from journey_map.services.csv_import_service import CsvImportError
from journey_map.utils.errors import E, api_error

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class CsvUpload:
    content: str | bytes
    filename: str | None = None
    mimetype: str | None = None


def extract_csv_upload() -> CsvUpload | None:
    """Extract CSV file content from multipart upload, JSON body or raw body.

    Only multipart uploads carry a filename/mimetype, so only those go
    through the "is this a CSV file" check downstream. Bytes are handed on
    undecoded; the import service owns BOM handling.
    """
    # Multipart file upload
    if request.files:
        file = request.files.get("file")
        if file:
            return CsvUpload(
                content=file.read(),
                filename=file.filename,
                mimetype=file.mimetype,
            )

    # JSON body with csv_content field
    data = request.get_json(silent=True)
    if isinstance(data, dict) and data.get("csv_content") is not None:
        content = data["csv_content"]
        if not isinstance(content, str):
            raise CsvImportError(
                "csv_content must be a string", details={"csv_content": "Must be a string."},
            )
        if content:
            return CsvUpload(content=content)

    # Raw body (text/csv posted directly)
    if request.data and not request.is_json:
        return CsvUpload(content=request.data)

    return None


def parse_bool(value, default=False):
    """Interpret a query-string or JSON flag. None → ``default``."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def journey_result_error(result: dict):
    """Turn a failed persistence result into an API error response.

    ``not_found`` results map to 404, ``invalid`` snapshots to 422 and
    store errors to 500.
    """
    if result.get("not_found"):
        return api_error(E.NOT_FOUND, result["error"])
    if result.get("invalid"):
        return api_error(E.UNPROCESSABLE, result["error"])
    logger.warning("Journey operation failed: %s", result.get("error"))
    return api_error(E.DATABASE, result.get("error") or "Database error")


def string_field_errors(data: dict, *fields: str) -> dict:
    """Field → message for every listed key that is present but not a string."""
    return {
        name: "Must be a string."
        for name in fields
        if data.get(name) is not None and not isinstance(data[name], str)
    }

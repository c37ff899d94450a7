"""
Journey CSV Import Service

Turns an uploaded delimited-text file into journey map entities.

Pipeline:
  1. File type check (``.csv`` name or ``text/csv`` mimetype)
  2. Parse: header aliasing, empty-line skipping, structural error report
  3. Validate: non-empty, required columns present on the first row
  4. Extract performers: dedup by case-sensitive name, palette color, group
  5. Build micro jobs: sort by sequence, sequential ids, grid positions

Edge synthesis is NOT part of the import; callers chain jobs with
``build_sequential_connections`` when they want the default flow.

Every failure raises ``CsvImportError`` before any result is produced, so
callers never see a partial import.
"""

import csv
import io
import logging
import re

from journey_map.services.journey_types import (
    ImportResult,
    JobPerformer,
    JourneyConnection,
    MicroJob,
    Position,
)

logger = logging.getLogger(__name__)


class CsvImportError(Exception):
    """Input-format error raised by the import pipeline."""
    def __init__(self, message, status_code=400, details=None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


# ═══════════════════════════════════════════════════════════════
# Constants
# ═══════════════════════════════════════════════════════════════

REQUIRED_COLUMNS = ("sequence", "micro_job", "main_job", "domain")

HEADER_ALIASES = {
    "Sequence": "sequence",
    "Micro Job": "micro_job",
    "MicroJob": "micro_job",
    "Main Job": "main_job",
    "MainJob": "main_job",
    "Domain": "domain",
    "Phase": "phase",
    "High Level Description": "high_level_description",
    "High-Level Description": "high_level_description",
    "Detail Description": "detail_description",
    "Detailed Description": "detail_description",
    "Job Performer": "job_performer",
    "Job Performers": "job_performer",
    "Job Performer Group": "job_performer_group",
    "Job Performer Groups": "job_performer_group",
    "Product Team": "product_team",
    "ProductTeam": "product_team",
}

PERFORMER_PALETTE = (
    "#3B82F6", "#10B981", "#F59E0B", "#8B5CF6", "#EF4444", "#06B6D4",
    "#84CC16", "#F97316", "#EC4899", "#6366F1", "#14B8A6", "#F59E0B",
)

DEFAULT_GROUP = "Default Group"

# Default grid layout (pixels)
GRID_COLUMNS = 4
GRID_ORIGIN_X = 100
GRID_ORIGIN_Y = 150
GRID_SPACING_X = 300
GRID_SPACING_Y = 250

_WHITESPACE = re.compile(r"\s+")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


# ═══════════════════════════════════════════════════════════════
# CSV Template
# ═══════════════════════════════════════════════════════════════

CSV_TEMPLATE_HEADER = [
    "Sequence", "Micro Job", "Main Job", "Domain", "Phase",
    "High Level Description", "Detail Description",
    "Job Performer", "Job Performer Group", "Product Team",
]
CSV_TEMPLATE_EXAMPLE = [
    ["1", "Activate & Administer Contract", "Manage or Renew Contract Post-Sales",
     "Post Sales Contract Management", "Onboard",
     "Initial contract setup and activation",
     "Complete setup of contract terms, activation of services, and initial administration tasks",
     "Sales Rep, Contract Manager", "Sales Team, Operations", "Contract Management"],
    ["2", "Understand contract performance & obligations", "Manage or Renew Contract Post-Sales",
     "Post Sales Contract Management", "Operate",
     "Monitor and analyze contract performance",
     "Review contract metrics, obligations, and performance indicators",
     "Sales Rep, Account Manager", "Sales Team, Customer Success", "Analytics"],
    ["3", "Review contracts for revenue recognition", "Analyze Sales Bookings",
     "Performance Management", "Operate",
     "Ensure proper revenue recognition",
     "Review contracts to ensure compliance with revenue recognition standards",
     "Contract Manager, Finance Analyst", "Operations, Finance", "Finance"],
]


def generate_csv_template() -> str:
    """Generate an example CSV string with the expected columns."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_TEMPLATE_HEADER)
    writer.writerows(CSV_TEMPLATE_EXAMPLE)
    return output.getvalue()


# ═══════════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════════

def normalize_header(header: str) -> str:
    """Map a raw header onto its canonical column name.

    Known variants go through the alias table; anything else is lower-cased
    with whitespace runs replaced by underscores.
    """
    header = (header or "").strip()
    if header in HEADER_ALIASES:
        return HEADER_ALIASES[header]
    return _WHITESPACE.sub("_", header.lower())


def parse_sequence(value) -> int:
    """Parse the leading integer of ``value``; 0 when there is none."""
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value or ""))
    return int(match.group(1)) if match else 0


def is_csv_upload(filename: str | None, mimetype: str | None) -> bool:
    if mimetype and mimetype.split(";")[0].strip().lower() == "text/csv":
        return True
    return bool(filename) and filename.lower().endswith(".csv")


def _decode(file_content: str | bytes) -> str:
    if isinstance(file_content, bytes):
        try:
            return file_content.decode("utf-8-sig")  # Handle BOM
        except UnicodeDecodeError as exc:
            raise CsvImportError(f"Failed to parse CSV: {exc.reason}") from exc
    if not isinstance(file_content, str):
        raise CsvImportError("CSV content must be text or bytes")
    return file_content.lstrip("\ufeff")


def parse_csv(file_content: str | bytes) -> list[dict]:
    """
    Parse CSV content into a list of row dicts keyed by canonical column names.

    Empty lines are skipped. ``sequence`` values are converted with
    ``parse_sequence``. Rows whose field count differs from the header are
    structural errors: all of them are collected and raised together.
    """
    text = _decode(file_content)
    reader = csv.reader(io.StringIO(text, newline=""))
    try:
        records = [r for r in reader if r and r != [""]]
    except csv.Error as exc:
        raise CsvImportError(f"CSV parsing errors: {exc}") from exc

    if not records:
        return []

    header = [normalize_header(h) for h in records[0]]
    rows = []
    errors = []
    for row_num, values in enumerate(records[1:], start=1):
        if len(values) > len(header):
            errors.append(
                f"Too many fields: expected {len(header)} fields but parsed {len(values)} (row {row_num})"
            )
            continue
        if len(values) < len(header):
            errors.append(
                f"Too few fields: expected {len(header)} fields but parsed {len(values)} (row {row_num})"
            )
            continue
        row = dict(zip(header, values))
        if "sequence" in row:
            row["sequence"] = parse_sequence(row["sequence"])
        rows.append(row)

    if errors:
        raise CsvImportError(
            f"CSV parsing errors: {', '.join(errors)}",
            details={"errors": errors},
        )
    return rows


def validate_rows(rows: list[dict]) -> None:
    """Raise ``CsvImportError`` if the parsed rows cannot be imported."""
    if not rows:
        raise CsvImportError("No data found in CSV file")

    first_row = rows[0]
    missing = [col for col in REQUIRED_COLUMNS if col not in first_row]
    if missing:
        raise CsvImportError(
            f"Missing required columns: {', '.join(missing)}",
            details={"missing_columns": missing},
        )


# ═══════════════════════════════════════════════════════════════
# Entity extraction
# ═══════════════════════════════════════════════════════════════

def performer_color(index: int) -> str:
    return PERFORMER_PALETTE[index % len(PERFORMER_PALETTE)]


def _split_names(value) -> list[str]:
    return [part.strip() for part in str(value or "").split(",")]


def extract_performers(rows: list[dict]) -> tuple[list[JobPerformer], dict[str, str]]:
    """
    Register one JobPerformer per distinct (case-sensitive) name.

    Performer *i* of a row is paired with group *i* of the same row; when
    that group is blank the row's first group is used, then DEFAULT_GROUP.

    Returns (performers in first-sighting order, {name: performer_id}).
    """
    performers: list[JobPerformer] = []
    name_to_id: dict[str, str] = {}

    for row in rows:
        names = _split_names(row.get("job_performer"))
        groups = _split_names(row.get("job_performer_group"))

        for idx, name in enumerate(names):
            if not name or name in name_to_id:
                continue
            group = groups[idx] if idx < len(groups) and groups[idx] else groups[0]
            index = len(performers)
            performer = JobPerformer(
                id=f"jp-{index}",
                name=name,
                color=performer_color(index),
                group=group or DEFAULT_GROUP,
            )
            performers.append(performer)
            name_to_id[name] = performer.id

    return performers, name_to_id


def grid_position(index: int) -> Position:
    """Default left-to-right, wrapped grid slot for the index-th job."""
    col = index % GRID_COLUMNS
    row = index // GRID_COLUMNS
    return Position(
        x=GRID_ORIGIN_X + col * GRID_SPACING_X,
        y=GRID_ORIGIN_Y + row * GRID_SPACING_Y,
    )


def build_micro_jobs(rows: list[dict], name_to_id: dict[str, str]) -> list[MicroJob]:
    """
    Build MicroJobs ordered by ascending sequence.

    Output ids are ``job-1``, ``job-2``, … in sorted order, independent of
    input order. Performer names that do not resolve are dropped.
    """
    ordered = sorted(rows, key=lambda r: r.get("sequence", 0))
    jobs = []
    for index, row in enumerate(ordered):
        performer_ids: list[str] = []
        for name in _split_names(row.get("job_performer")):
            performer_id = name_to_id.get(name)
            if performer_id and performer_id not in performer_ids:
                performer_ids.append(performer_id)

        jobs.append(MicroJob(
            id=f"job-{index + 1}",
            sequence=row.get("sequence", 0),
            job_domain_stage=row.get("domain", ""),
            main_job=row.get("main_job", ""),
            micro_job=row.get("micro_job", ""),
            job_performers=performer_ids,
            high_level_description=row.get("high_level_description", ""),
            detail_description=row.get("detail_description", ""),
            product_team=row.get("product_team", ""),
            phase=row.get("phase", ""),
            position=grid_position(index),
        ))
    return jobs


def build_sequential_connections(jobs: list[MicroJob]) -> list[JourneyConnection]:
    """Chain jobs by ascending sequence: job i → job i+1 (n-1 edges)."""
    ordered = sorted(jobs, key=lambda j: j.sequence)
    return [
        JourneyConnection(id=f"e-{src.id}-{dst.id}", source=src.id, target=dst.id, type="normal")
        for src, dst in zip(ordered, ordered[1:])
    ]


# ═══════════════════════════════════════════════════════════════
# Full pipeline
# ═══════════════════════════════════════════════════════════════

def import_journey_csv(
    file_content: str | bytes,
    *,
    filename: str | None = None,
    mimetype: str | None = None,
) -> ImportResult:
    """
    Full pipeline: type check → parse → validate → performers → micro jobs.

    ``filename``/``mimetype`` come from multipart uploads; raw-body and
    JSON imports pass neither and skip the type check.
    """
    if (filename or mimetype) and not is_csv_upload(filename, mimetype):
        raise CsvImportError("Please upload a CSV file")

    rows = parse_csv(file_content)
    validate_rows(rows)

    performers, name_to_id = extract_performers(rows)
    jobs = build_micro_jobs(rows, name_to_id)

    logger.info(
        "CSV import parsed",
        extra={"row_count": len(rows), "performer_count": len(performers)},
    )
    return ImportResult(micro_jobs=jobs, job_performers=performers)


def preview_journey_csv(file_content: str | bytes) -> dict:
    """Dry run for the upload dialog: parse + validate, no entities kept."""
    rows = parse_csv(file_content)
    validate_rows(rows)
    performers, _ = extract_performers(rows)
    columns = list(rows[0].keys())
    return {
        "total_rows": len(rows),
        "performer_count": len(performers),
        "columns": columns,
        "optional_columns_missing": sorted(
            {"phase", "high_level_description", "detail_description",
             "job_performer", "job_performer_group", "product_team"} - set(columns)
        ),
    }

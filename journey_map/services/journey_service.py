"""
Journey Persistence Service.

Translates the in-memory (micro jobs, performers, connections) triple to
and from the relational store, keyed by journey id.

Save sequence (last writer wins at row level):
    1. journey row          — insert, or metadata update when journey_id given
    2. job_performers       — upsert by id (GLOBAL registry, not journey-scoped)
    3. micro_jobs           — upsert by (journey_id, id); rows of this journey
                              missing from the snapshot are removed
    4. microjob_performers  — delete all links of the saved jobs, reinsert
    5. connections          — delete all of the journey, reinsert

By default every step commits on its own, so a failure in step 4 or 5
leaves steps 1–3 persisted. Set ``JOURNEY_SAVE_ATOMIC`` to commit the
whole sequence once instead.

Every public function returns a result dict ``{"success": bool, ...}``;
store errors are logged and turned into an ``error`` message here.
"""

import logging
import uuid
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError

from journey_map.models import db
from journey_map.models.journey import (
    Connection,
    Journey,
    JobPerformer as JobPerformerRow,
    MicroJob as MicroJobRow,
    MicroJobPerformer,
)
from journey_map.services.journey_types import (
    CONNECTION_TYPES,
    DEFAULT_EDGE_SHAPE,
    JobPerformer,
    JourneyConnection,
    MicroJob,
    Position,
)

logger = logging.getLogger(__name__)

# Rows written before connection types existed carry the canvas shape name.
_LEGACY_CONNECTION_TYPES = {"smoothstep": "normal"}


def _failure(message: str, **extra) -> dict:
    return {"success": False, "error": message, **extra}


def _store_error(exc: SQLAlchemyError) -> str:
    return str(getattr(exc, "orig", None) or exc)


# ═══════════════════════════════════════════════════════════════
# Snapshot validation
# ═══════════════════════════════════════════════════════════════

def validate_snapshot(
    micro_jobs: list[MicroJob],
    job_performers: list[JobPerformer],
    connections: list[JourneyConnection],
) -> list[str]:
    """Return referential problems in a snapshot (empty list when valid)."""
    problems = []
    job_ids = [j.id for j in micro_jobs]
    if len(set(job_ids)) != len(job_ids):
        problems.append("Duplicate micro job ids")

    performer_ids = {p.id for p in job_performers}
    for job in micro_jobs:
        unknown = [pid for pid in job.job_performers if pid not in performer_ids]
        if unknown:
            problems.append(f"Micro job {job.id} references unknown performers: {', '.join(unknown)}")
        if len(set(job.job_performers)) != len(job.job_performers):
            problems.append(f"Micro job {job.id} lists a performer more than once")

    known_jobs = set(job_ids)
    conn_ids = set()
    for conn in connections:
        if conn.id in conn_ids:
            problems.append(f"Duplicate connection id {conn.id}")
        conn_ids.add(conn.id)
        if conn.source not in known_jobs or conn.target not in known_jobs:
            problems.append(f"Connection {conn.id} references a micro job outside this journey")
    return problems


# ═══════════════════════════════════════════════════════════════
# Save
# ═══════════════════════════════════════════════════════════════

def save_journey(
    name: str,
    description: str,
    micro_jobs: list[MicroJob],
    job_performers: list[JobPerformer],
    connections: list[JourneyConnection],
    journey_id: str | None = None,
    *,
    atomic: bool | None = None,
) -> dict:
    """Persist a full journey snapshot.

    Returns:
        {"success": True, "journey_id": str} or {"success": False, "error": str}
    """
    if atomic is None:
        atomic = bool(current_app.config.get("JOURNEY_SAVE_ATOMIC", False))

    problems = validate_snapshot(micro_jobs, job_performers, connections)
    if problems:
        return _failure("; ".join(problems), invalid=True)

    def _step_done():
        if atomic:
            db.session.flush()
        else:
            db.session.commit()

    try:
        # 1. Journey
        if journey_id:
            journey = db.session.get(Journey, journey_id)
            if journey is None:
                return _failure(f"Journey {journey_id} not found", not_found=True)
            journey.name = name
            journey.description = description or ""
            journey.updated_at = datetime.now(timezone.utc)
        else:
            journey = Journey(id=str(uuid.uuid4()), name=name, description=description or "")
            db.session.add(journey)
        jid = journey.id
        _step_done()

        # 2. Job performers (global registry)
        for performer in job_performers:
            db.session.merge(JobPerformerRow(
                id=performer.id,
                name=performer.name,
                group_name=performer.group,
                color=performer.color,
                description=performer.description or "",
            ))
        _step_done()

        # 3. Micro jobs (journey-scoped)
        job_ids = [j.id for j in micro_jobs]
        stale = delete(MicroJobRow).where(MicroJobRow.journey_id == jid)
        if job_ids:
            stale = stale.where(MicroJobRow.id.not_in(job_ids))
        db.session.execute(stale)
        for job in micro_jobs:
            db.session.merge(MicroJobRow(
                journey_id=jid,
                id=job.id,
                sequence=job.sequence or 0,
                job_domain_stage=job.job_domain_stage,
                main_job=job.main_job,
                micro_job=job.micro_job,
                phase=job.phase,
                high_level_description=job.high_level_description or "",
                detail_description=job.detail_description or "",
                product_team=job.product_team,
                notes=job.notes or "",
                position_x=job.position.x,
                position_y=job.position.y,
            ))
        _step_done()

        # 4. Micro job ↔ performer links: full delete + reinsert
        if job_ids:
            db.session.execute(
                delete(MicroJobPerformer).where(
                    MicroJobPerformer.journey_id == jid,
                    MicroJobPerformer.microjob_id.in_(job_ids),
                )
            )
        links = [
            {
                "journey_id": jid,
                "microjob_id": job.id,
                "job_performer_id": performer_id,
                "position": pos,
            }
            for job in micro_jobs
            for pos, performer_id in enumerate(job.job_performers)
        ]
        if links:
            db.session.execute(insert(MicroJobPerformer), links)
        _step_done()

        # 5. Connections: full delete + reinsert
        db.session.execute(delete(Connection).where(Connection.journey_id == jid))
        edges = [
            {
                "journey_id": jid,
                "id": conn.id,
                "source_microjob_id": conn.source,
                "target_microjob_id": conn.target,
                "label": conn.label or "",
                "type": conn.type or "normal",
                "notes": conn.notes or "",
                "shape": conn.shape or DEFAULT_EDGE_SHAPE,
            }
            for conn in connections
        ]
        if edges:
            db.session.execute(insert(Connection), edges)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error saving journey", extra={"journey_id": journey_id})
        return _failure(_store_error(exc))

    logger.info(
        "Journey saved",
        extra={
            "journey_id": jid,
            "row_count": len(micro_jobs),
            "performer_count": len(job_performers),
        },
    )
    return {"success": True, "journey_id": jid}


# ═══════════════════════════════════════════════════════════════
# Load
# ═══════════════════════════════════════════════════════════════

def _connection_type(stored: str | None) -> str:
    value = _LEGACY_CONNECTION_TYPES.get(stored or "", stored or "normal")
    return value if value in CONNECTION_TYPES else "normal"


def load_journey(journey_id: str) -> dict:
    """Load a journey snapshot.

    Returns:
        {"success": True, "data": {"journey": dict, "micro_jobs": [...],
         "job_performers": [...], "connections": [...]}}
        or {"success": False, "error": str, "not_found"?: True}
    """
    try:
        journey = db.session.get(Journey, journey_id)
        if journey is None:
            return _failure(f"Journey {journey_id} not found", not_found=True)

        job_rows = db.session.execute(
            select(MicroJobRow)
            .where(MicroJobRow.journey_id == journey_id)
            .order_by(MicroJobRow.sequence)
        ).scalars().all()

        link_rows = db.session.execute(
            select(MicroJobPerformer)
            .where(MicroJobPerformer.journey_id == journey_id)
            .order_by(MicroJobPerformer.position)
        ).scalars().all()

        performer_ids_by_job: dict[str, list[str]] = {}
        for link in link_rows:
            performer_ids_by_job.setdefault(link.microjob_id, []).append(link.job_performer_id)

        referenced: list[str] = []
        for row in job_rows:
            for pid in performer_ids_by_job.get(row.id, []):
                if pid not in referenced:
                    referenced.append(pid)

        performer_rows = {}
        if referenced:
            performer_rows = {
                p.id: p
                for p in db.session.execute(
                    select(JobPerformerRow).where(JobPerformerRow.id.in_(referenced))
                ).scalars()
            }

        conn_rows = db.session.execute(
            select(Connection).where(Connection.journey_id == journey_id)
        ).scalars().all()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error loading journey", extra={"journey_id": journey_id})
        return _failure(_store_error(exc))

    micro_jobs = [
        MicroJob(
            id=row.id,
            sequence=row.sequence,
            job_domain_stage=row.job_domain_stage or "",
            main_job=row.main_job or "",
            micro_job=row.micro_job or "",
            phase=row.phase or "",
            high_level_description=row.high_level_description or "",
            detail_description=row.detail_description or "",
            product_team=row.product_team or "",
            notes=row.notes or "",
            position=Position(x=row.position_x, y=row.position_y),
            job_performers=list(performer_ids_by_job.get(row.id, [])),
        )
        for row in job_rows
    ]
    job_performers = [
        JobPerformer(
            id=row.id,
            name=row.name,
            group=row.group_name or "",
            color=row.color or "",
            description=row.description or "",
        )
        for pid in referenced
        if (row := performer_rows.get(pid)) is not None
    ]
    connections = [
        JourneyConnection(
            id=row.id,
            source=row.source_microjob_id,
            target=row.target_microjob_id,
            label=row.label or "",
            type=_connection_type(row.type),
            notes=row.notes or "",
            shape=row.shape or DEFAULT_EDGE_SHAPE,
        )
        for row in conn_rows
    ]
    return {
        "success": True,
        "data": {
            "journey": journey.to_dict(),
            "micro_jobs": micro_jobs,
            "job_performers": job_performers,
            "connections": connections,
        },
    }


# ═══════════════════════════════════════════════════════════════
# List / delete / metadata
# ═══════════════════════════════════════════════════════════════

def list_journeys() -> dict:
    """Journey metadata only, most recently updated first."""
    try:
        journeys = db.session.execute(
            select(Journey).order_by(Journey.updated_at.desc())
        ).scalars().all()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error listing journeys")
        return _failure(_store_error(exc))
    return {"success": True, "journeys": [j.to_dict() for j in journeys]}


def delete_journey(journey_id: str) -> dict:
    """Delete a journey; dependent rows go through ON DELETE CASCADE."""
    try:
        result = db.session.execute(delete(Journey).where(Journey.id == journey_id))
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error deleting journey", extra={"journey_id": journey_id})
        return _failure(_store_error(exc))

    if result.rowcount == 0:
        return _failure(f"Journey {journey_id} not found", not_found=True)
    logger.info("Journey deleted", extra={"journey_id": journey_id})
    return {"success": True}


def update_journey_metadata(journey_id: str, name: str, description: str) -> dict:
    try:
        journey = db.session.get(Journey, journey_id)
        if journey is None:
            return _failure(f"Journey {journey_id} not found", not_found=True)
        journey.name = name
        journey.description = description or ""
        journey.updated_at = datetime.now(timezone.utc)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error updating journey", extra={"journey_id": journey_id})
        return _failure(_store_error(exc))
    return {"success": True, "journey": journey.to_dict()}

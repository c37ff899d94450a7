"""
JTBD Journey Map
Journey persistence models.

Models:
    - Journey: named snapshot container (owns micro jobs + connections)
    - JobPerformer: global performer registry (NOT journey-scoped)
    - MicroJob: one node of a journey, keyed by (journey_id, id)
    - MicroJobPerformer: N:M association micro job ↔ performer
    - Connection: one edge of a journey, keyed by (journey_id, id)

Performer scoping:
    job_performers is a global registry. Performer ids ("jp-0", "jp-1", …)
    are upserted by id, so editing a performer in one journey changes it
    for every journey that references the same id.
"""

import uuid
from datetime import datetime, timezone

from journey_map.models import db


__all__ = [
    "Journey",
    "JobPerformer",
    "MicroJob",
    "MicroJobPerformer",
    "Connection",
]


# ── Helpers ──────────────────────────────────────────────────────────────────

def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# ═════════════════════════════════════════════════════════════════════════════
# Journey
# ═════════════════════════════════════════════════════════════════════════════


class Journey(db.Model):
    """
    Named, described snapshot of a journey map.

    Deleting a journey cascades to its micro jobs, their performer links
    and its connections (ON DELETE CASCADE at the DB level, mirrored by
    ORM cascades so SQLite without FK enforcement behaves the same).
    """

    __tablename__ = "journeys"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, index=True,
    )

    # ── Relationships
    micro_jobs = db.relationship(
        "MicroJob", backref="journey", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="MicroJob.sequence",
    )
    connections = db.relationship(
        "Connection", backref="journey", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Journey {self.id}: {self.name}>"


# ═════════════════════════════════════════════════════════════════════════════
# JobPerformer (global registry)
# ═════════════════════════════════════════════════════════════════════════════


class JobPerformer(db.Model):
    """Role, person or team credited with executing micro jobs."""

    __tablename__ = "job_performers"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    group_name = db.Column(db.String(200), default="", comment="Taxonomy group")
    color = db.Column(db.String(16), default="")
    description = db.Column(db.Text, default="")

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "group_name": self.group_name,
            "color": self.color,
            "description": self.description or "",
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<JobPerformer {self.id}: {self.name}>"


# ═════════════════════════════════════════════════════════════════════════════
# MicroJob
# ═════════════════════════════════════════════════════════════════════════════


class MicroJob(db.Model):
    """
    Smallest unit of work on the journey map.

    Ids come from the import ("job-1", "job-2", …) and are only unique
    within one journey, hence the composite primary key.
    """

    __tablename__ = "micro_jobs"

    journey_id = db.Column(
        db.String(36),
        db.ForeignKey("journeys.id", ondelete="CASCADE"),
        primary_key=True,
    )
    id = db.Column(db.String(64), primary_key=True)
    sequence = db.Column(db.Integer, nullable=False, default=0)

    job_domain_stage = db.Column(db.String(300), default="")
    main_job = db.Column(db.String(500), default="")
    micro_job = db.Column(db.String(500), default="")
    phase = db.Column(db.String(200), default="")
    high_level_description = db.Column(db.Text, default="")
    detail_description = db.Column(db.Text, default="")
    product_team = db.Column(db.String(200), default="")
    notes = db.Column(db.Text, default="")

    position_x = db.Column(db.Float, nullable=False, default=0)
    position_y = db.Column(db.Float, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.Index("ix_micro_jobs_journey_sequence", "journey_id", "sequence"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "journey_id": self.journey_id,
            "sequence": self.sequence,
            "job_domain_stage": self.job_domain_stage,
            "main_job": self.main_job,
            "micro_job": self.micro_job,
            "phase": self.phase,
            "high_level_description": self.high_level_description or "",
            "detail_description": self.detail_description or "",
            "product_team": self.product_team,
            "notes": self.notes or "",
            "position_x": self.position_x,
            "position_y": self.position_y,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<MicroJob {self.journey_id}/{self.id}: {self.micro_job}>"


# ═════════════════════════════════════════════════════════════════════════════
# MicroJobPerformer (N:M association)
# ═════════════════════════════════════════════════════════════════════════════


class MicroJobPerformer(db.Model):
    """
    N:M association between MicroJob and JobPerformer.

    ``position`` keeps the performer order listed in the source row.
    """

    __tablename__ = "microjob_performers"

    journey_id = db.Column(db.String(36), primary_key=True)
    microjob_id = db.Column(db.String(64), primary_key=True)
    job_performer_id = db.Column(
        db.String(64),
        db.ForeignKey("job_performers.id", ondelete="CASCADE"),
        primary_key=True,
    )
    position = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.ForeignKeyConstraint(
            ["journey_id", "microjob_id"],
            ["micro_jobs.journey_id", "micro_jobs.id"],
            ondelete="CASCADE",
        ),
    )

    def to_dict(self):
        return {
            "journey_id": self.journey_id,
            "microjob_id": self.microjob_id,
            "job_performer_id": self.job_performer_id,
            "position": self.position,
        }


# ═════════════════════════════════════════════════════════════════════════════
# Connection
# ═════════════════════════════════════════════════════════════════════════════


class Connection(db.Model):
    """Directed edge between two micro jobs of the same journey."""

    __tablename__ = "connections"

    journey_id = db.Column(
        db.String(36),
        db.ForeignKey("journeys.id", ondelete="CASCADE"),
        primary_key=True,
    )
    id = db.Column(db.String(128), primary_key=True)
    source_microjob_id = db.Column(db.String(64), nullable=False)
    target_microjob_id = db.Column(db.String(64), nullable=False)
    label = db.Column(db.String(300), default="")
    type = db.Column(
        db.String(30), default="normal",
        comment="normal | feedback | conditional (legacy rows: smoothstep)",
    )
    notes = db.Column(db.Text, default="")
    shape = db.Column(
        db.String(20), default="smoothstep",
        comment="Canvas line geometry: smoothstep | step | straight | default",
    )

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.ForeignKeyConstraint(
            ["journey_id", "source_microjob_id"],
            ["micro_jobs.journey_id", "micro_jobs.id"],
            ondelete="CASCADE",
        ),
        db.ForeignKeyConstraint(
            ["journey_id", "target_microjob_id"],
            ["micro_jobs.journey_id", "micro_jobs.id"],
            ondelete="CASCADE",
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "journey_id": self.journey_id,
            "source_microjob_id": self.source_microjob_id,
            "target_microjob_id": self.target_microjob_id,
            "label": self.label or "",
            "type": self.type,
            "notes": self.notes or "",
            "shape": self.shape,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Connection {self.journey_id}/{self.id}: {self.source_microjob_id}→{self.target_microjob_id}>"

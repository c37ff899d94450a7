"""
In-memory journey map entities.

These are the transient objects the import pipeline produces and the
workspace mutates. ``to_dict`` uses the camelCase keys the diagram front end
consumes.
"""

from dataclasses import dataclass, field
from typing import Any

CONNECTION_TYPES = frozenset({"normal", "feedback", "conditional"})
EDGE_SHAPES = ("smoothstep", "step", "straight", "default")
DEFAULT_EDGE_SHAPE = "smoothstep"


@dataclass(frozen=True)
class Position:
    x: float
    y: float

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass
class JobPerformer:
    """Role, person or team executing micro jobs."""
    id: str
    name: str
    color: str
    group: str
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "group": self.group,
            "description": self.description,
        }


@dataclass
class MicroJob:
    """One node on the journey map."""
    id: str
    sequence: int
    job_domain_stage: str
    main_job: str
    micro_job: str
    position: Position
    job_performers: list[str] = field(default_factory=list)
    product_team: str = ""
    phase: str = ""
    high_level_description: str = ""
    detail_description: str = ""
    notes: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sequence": self.sequence,
            "jobDomainStage": self.job_domain_stage,
            "mainJob": self.main_job,
            "microJob": self.micro_job,
            "jobPerformers": list(self.job_performers),
            "highLevelDescription": self.high_level_description,
            "detailDescription": self.detail_description,
            "productTeam": self.product_team,
            "phase": self.phase,
            "position": self.position.to_dict(),
            "notes": self.notes,
        }


@dataclass
class JourneyConnection:
    """Directed edge between two micro jobs.

    ``type == "feedback"`` marks a backward/rework loop. ``shape`` is the
    line geometry the canvas draws (smoothstep, step, straight, default).
    """
    id: str
    source: str
    target: str
    type: str = "normal"
    label: str = ""
    notes: str = ""
    shape: str = DEFAULT_EDGE_SHAPE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.type,
            "label": self.label,
            "notes": self.notes,
            "shape": self.shape,
        }


@dataclass
class ImportResult:
    """Output of one successful CSV import."""
    micro_jobs: list[MicroJob]
    job_performers: list[JobPerformer]

    def to_dict(self) -> dict[str, Any]:
        return {
            "microJobs": [j.to_dict() for j in self.micro_jobs],
            "jobPerformers": [p.to_dict() for p in self.job_performers],
        }

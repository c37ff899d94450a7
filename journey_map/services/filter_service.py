"""
Filter / Highlight Engine.

Pure projection of (jobs, performers, filter selection) onto per-node view
flags. Nothing here mutates the entities it is given; callers recompute the
projection whenever either input changes.

Flag semantics:
    isHighlighted      — performer highlight (blue). Performer and group
                         selections each match on any selected value; when
                         both are non-empty the job must match both.
    isTeamHighlighted  — product-team highlight (green), independent of the
                         performer highlight.
    hidden             — job is outside a non-empty domain selection or a
                         non-empty phase selection.
"""

import logging
from dataclasses import dataclass, field

from journey_map.core.exceptions import ValidationError
from journey_map.services.journey_types import JobPerformer, MicroJob

logger = logging.getLogger(__name__)

HIGHLIGHT_COLOR = "#3B82F6"
TEAM_HIGHLIGHT_COLOR = "#10B981"
DEFAULT_NODE_COLOR = "#6B7280"

FILTER_DIMENSIONS = (
    "selected_job_performers",
    "selected_groups",
    "selected_teams",
    "selected_domains",
    "selected_phases",
)

# camelCase wire names used by the sidebar
_WIRE_NAMES = {
    "selected_job_performers": "selectedJobPerformers",
    "selected_groups": "selectedGroups",
    "selected_teams": "selectedTeams",
    "selected_domains": "selectedDomains",
    "selected_phases": "selectedPhases",
}


@dataclass(frozen=True)
class FilterState:
    """Multi-valued selection per dimension. Empty means "no filter"."""
    selected_job_performers: tuple[str, ...] = ()
    selected_groups: tuple[str, ...] = ()
    selected_teams: tuple[str, ...] = ()
    selected_domains: tuple[str, ...] = ()
    selected_phases: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, dim) for dim in FILTER_DIMENSIONS)

    def to_dict(self) -> dict:
        return {_WIRE_NAMES[dim]: list(getattr(self, dim)) for dim in FILTER_DIMENSIONS}

    @classmethod
    def from_dict(cls, data: dict | None) -> "FilterState":
        """Build from either camelCase or snake_case keys.

        Raises ValidationError when a dimension is not a list of strings.
        """
        data = data or {}
        values = {}
        errors = {}
        for dim in FILTER_DIMENSIONS:
            raw = data.get(_WIRE_NAMES[dim], data.get(dim, []))
            if raw is None:
                raw = []
            if not isinstance(raw, (list, tuple)) or not all(isinstance(v, str) for v in raw):
                errors[_WIRE_NAMES[dim]] = "Must be a list of strings."
                continue
            # dedupe, keep first-selected order
            values[dim] = tuple(dict.fromkeys(raw))
        if errors:
            raise ValidationError("Invalid filter selection", details=errors)
        return cls(**values)


@dataclass(frozen=True)
class NodeFlags:
    is_highlighted: bool = False
    is_team_highlighted: bool = False
    hidden: bool = False

    def to_dict(self) -> dict:
        return {
            "isHighlighted": self.is_highlighted,
            "isTeamHighlighted": self.is_team_highlighted,
            "hidden": self.hidden,
        }


def clear_filters() -> FilterState:
    return FilterState()


def compute_node_flags(
    jobs: list[MicroJob],
    performers: list[JobPerformer],
    filters: FilterState,
) -> dict[str, NodeFlags]:
    """Return {job_id: NodeFlags} for every job."""
    group_by_performer = {p.id: p.group for p in performers}
    selected_performers = set(filters.selected_job_performers)
    selected_groups = set(filters.selected_groups)
    selected_teams = set(filters.selected_teams)
    selected_domains = set(filters.selected_domains)
    selected_phases = set(filters.selected_phases)

    flags: dict[str, NodeFlags] = {}
    for job in jobs:
        performer_ids = set(job.job_performers)

        performer_checks = []
        if selected_performers:
            performer_checks.append(bool(performer_ids & selected_performers))
        if selected_groups:
            job_groups = {group_by_performer.get(pid) for pid in performer_ids}
            performer_checks.append(bool(job_groups & selected_groups))
        is_highlighted = bool(performer_checks) and all(performer_checks)

        is_team_highlighted = bool(selected_teams) and job.product_team in selected_teams

        hidden = (
            (bool(selected_domains) and job.job_domain_stage not in selected_domains)
            or (bool(selected_phases) and job.phase not in selected_phases)
        )

        flags[job.id] = NodeFlags(
            is_highlighted=is_highlighted,
            is_team_highlighted=is_team_highlighted,
            hidden=hidden,
        )
    return flags


def minimap_color(flags: NodeFlags) -> str:
    if flags.is_highlighted:
        return HIGHLIGHT_COLOR
    if flags.is_team_highlighted:
        return TEAM_HIGHLIGHT_COLOR
    return DEFAULT_NODE_COLOR


def filter_options(jobs: list[MicroJob], performers: list[JobPerformer]) -> dict:
    """Distinct values for the filter sidebar (blank values omitted)."""
    def _distinct(values):
        return sorted({v for v in values if v})

    return {
        "jobPerformers": [
            {"id": p.id, "name": p.name, "group": p.group, "color": p.color}
            for p in sorted(performers, key=lambda p: p.name.lower())
        ],
        "groups": _distinct(p.group for p in performers),
        "teams": _distinct(j.product_team for j in jobs),
        "domains": _distinct(j.job_domain_stage for j in jobs),
        "phases": _distinct(j.phase for j in jobs),
    }


def search_performers(performers: list[JobPerformer], query: str) -> list[JobPerformer]:
    """Case-insensitive substring search over performer name and group."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(performers)
    return [
        p for p in performers
        if needle in p.name.lower() or needle in (p.group or "").lower()
    ]

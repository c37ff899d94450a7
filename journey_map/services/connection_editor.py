"""
Connection Editor.

Edits one diagram edge at a time. The editor keeps a draft copy of the
selected edge; nothing touches the connection collection until ``save``
or ``delete``. ``cancel`` throws the draft away.

Edge choices (closed set):
    smoothstep  — Smooth Step (default)
    feedback    — preset: smoothstep + red stroke + animated
    step        — Step
    straight    — Straight
    default     — Curved

"feedback" is not a geometric type of its own: it is stored as
``JourneyConnection.type == "feedback"`` with a smoothstep shape.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace

from journey_map.core.exceptions import EditorStateError, NotFoundError, ValidationError
from journey_map.services.journey_types import (
    DEFAULT_EDGE_SHAPE as DEFAULT_SHAPE,
    EDGE_SHAPES,
    JourneyConnection,
)

logger = logging.getLogger(__name__)

FEEDBACK_CHOICE = "feedback"
EDGE_CHOICES = {
    "smoothstep": "Smooth Step (Default)",
    "feedback": "Feedback (Red Animated)",
    "step": "Step",
    "straight": "Straight",
    "default": "Curved",
}

FEEDBACK_STYLE = {"stroke": "#ef4444", "strokeDasharray": "5,5"}


@dataclass
class DiagramEdge:
    """Edge payload as drawn by the diagram canvas."""
    id: str
    source: str
    target: str
    label: str = ""
    type: str = DEFAULT_SHAPE
    animated: bool = False
    style: dict = field(default_factory=dict)

    @property
    def choice(self) -> str:
        return FEEDBACK_CHOICE if self.animated else (self.type or DEFAULT_SHAPE)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "label": self.label,
            "type": self.type,
            "animated": self.animated,
            "style": dict(self.style),
        }


def to_diagram_edge(connection: JourneyConnection) -> DiagramEdge:
    if connection.type == "feedback":
        return DiagramEdge(
            id=connection.id,
            source=connection.source,
            target=connection.target,
            label=connection.label,
            type=DEFAULT_SHAPE,
            animated=True,
            style=dict(FEEDBACK_STYLE),
        )
    return DiagramEdge(
        id=connection.id,
        source=connection.source,
        target=connection.target,
        label=connection.label,
        type=connection.shape if connection.shape in EDGE_SHAPES else DEFAULT_SHAPE,
    )


def from_diagram_edge(edge: DiagramEdge, original: JourneyConnection) -> JourneyConnection:
    """Fold an edited diagram edge back onto its stored connection."""
    if edge.animated:
        conn_type = "feedback"
    elif original.type == "feedback":
        conn_type = "normal"
    else:
        conn_type = original.type
    shape = edge.type if edge.type in EDGE_SHAPES else DEFAULT_SHAPE
    return replace(original, label=edge.label, type=conn_type, shape=shape)


class ConnectionEditor:
    """Exclusive edit context over a single edge.

    Opening a second edge replaces the current draft; only one edge is
    ever editable.
    """

    def __init__(self):
        self._draft: DiagramEdge | None = None

    @property
    def is_open(self) -> bool:
        return self._draft is not None

    @property
    def draft(self) -> DiagramEdge | None:
        return self._draft

    @property
    def edge_id(self) -> str | None:
        return self._draft.id if self._draft else None

    def open(self, edge: DiagramEdge) -> DiagramEdge:
        self._draft = replace(edge, style=dict(edge.style))
        return self._draft

    def set_label(self, label: str) -> DiagramEdge:
        draft = self._require_draft()
        _check_label(label)
        self._draft = replace(draft, label=label or "")
        return self._draft

    def set_type(self, choice: str) -> DiagramEdge:
        draft = self._require_draft()
        if choice not in EDGE_CHOICES:
            raise ValidationError(
                f"Unknown connection type '{choice}'",
                details={"type": f"Must be one of: {', '.join(EDGE_CHOICES)}."},
            )
        if choice == FEEDBACK_CHOICE:
            self._draft = replace(
                draft, type=DEFAULT_SHAPE, style={"stroke": FEEDBACK_STYLE["stroke"]}, animated=True,
            )
        else:
            self._draft = replace(draft, type=choice, style={}, animated=False)
        return self._draft

    def save(
        self, connections: list[JourneyConnection]
    ) -> tuple[list[JourneyConnection], JourneyConnection]:
        """Replace the edited edge in place by id.

        Returns (new connection list, saved connection) and closes the
        edit context.
        """
        draft = self._require_draft()
        index = _index_of(connections, draft.id)
        saved = from_diagram_edge(draft, connections[index])
        updated = list(connections)
        updated[index] = saved
        self._draft = None
        logger.debug("Connection saved", extra={"event_type": "edge_save"})
        return updated, saved

    def delete(self, connections: list[JourneyConnection]) -> list[JourneyConnection]:
        """Remove the edited edge and close the edit context."""
        draft = self._require_draft()
        _index_of(connections, draft.id)
        self._draft = None
        return [c for c in connections if c.id != draft.id]

    def cancel(self) -> None:
        self._draft = None

    def _require_draft(self) -> DiagramEdge:
        if self._draft is None:
            raise EditorStateError("No connection is open for editing")
        return self._draft


def connect(
    connections: list[JourneyConnection],
    source: str,
    target: str,
    job_ids: set[str],
    *,
    label: str = "",
    conn_type: str = "normal",
) -> tuple[list[JourneyConnection], JourneyConnection]:
    """Append a user-drawn edge. Parallel edges between one pair are allowed."""
    _check_label(label)
    errors = {}
    if source not in job_ids:
        errors["source"] = f"Unknown micro job '{source}'."
    if target not in job_ids:
        errors["target"] = f"Unknown micro job '{target}'."
    if conn_type not in ("normal", "feedback", "conditional"):
        errors["type"] = "Must be one of: normal, feedback, conditional."
    if errors:
        raise ValidationError("Invalid connection", details=errors)

    conn = JourneyConnection(
        id=f"e-{source}-{target}-{uuid.uuid4().hex[:8]}",
        source=source,
        target=target,
        type=conn_type,
        label=label or "",
    )
    return [*connections, conn], conn


def _index_of(connections: list[JourneyConnection], edge_id: str) -> int:
    for index, conn in enumerate(connections):
        if conn.id == edge_id:
            return index
    raise NotFoundError(resource="Connection", resource_id=edge_id)


def _check_label(label) -> None:
    # None means "no label"; anything else must already be text
    if label is not None and not isinstance(label, str):
        raise ValidationError("Connection label must be a string", details={"label": "Must be a string."})

"""
Workspace Service — the in-memory editing session behind one diagram.

A workspace holds the current micro jobs, performers, connections and the
filter selection. Every mutation swaps in a whole new collection (never an
in-place edit), then notifies subscribed observers. The built-in observer
recomputes node flags, so derived view state is always in step with the
entities and the filters.

A new CSV import or journey load replaces all three collections at once,
and only after the import/load has fully succeeded.

Registry:
    Workspaces live in a process-local dict guarded by ``_registry_lock``.
    Each workspace carries its own lock; the blueprint holds it for the
    length of one request so a workspace has a single writer at a time.
    Two uploads racing on the same workspace: the last to finish wins.
    Workspaces untouched for ``WORKSPACE_IDLE_TTL_SECONDS`` are evicted
    whenever a new one is created.
"""

import logging
import threading
import time
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable

from journey_map.core.exceptions import EditorStateError, NotFoundError, ValidationError
from journey_map.services import journey_service
from journey_map.services.connection_editor import (
    ConnectionEditor,
    DiagramEdge,
    connect,
    to_diagram_edge,
)
from journey_map.services.csv_import_service import (
    build_sequential_connections,
    import_journey_csv,
)
from journey_map.services.filter_service import (
    FilterState,
    NodeFlags,
    compute_node_flags,
    filter_options,
    minimap_color,
    search_performers,
)
from journey_map.services.journey_types import (
    ImportResult,
    JobPerformer,
    JourneyConnection,
    MicroJob,
    Position,
)

logger = logging.getLogger(__name__)

NODE_TYPE = "microJob"

Observer = Callable[["Workspace"], None]


def _recompute_flags(workspace: "Workspace") -> None:
    workspace._node_flags = compute_node_flags(
        workspace.micro_jobs, workspace.job_performers, workspace.filters,
    )


class Workspace:
    """One editing session: entities + filter selection + edge editor."""

    def __init__(self, workspace_id: str | None = None):
        self.id = workspace_id or str(uuid.uuid4())
        self.created_at = datetime.now(timezone.utc)
        self.last_used = time.monotonic()
        self.lock = threading.RLock()

        self.journey_id: str | None = None
        self.journey_name: str = ""
        self.journey_description: str = ""

        self._micro_jobs: tuple[MicroJob, ...] = ()
        self._job_performers: tuple[JobPerformer, ...] = ()
        self._connections: tuple[JourneyConnection, ...] = ()
        self._filters = FilterState()
        self._node_flags: dict[str, NodeFlags] = {}

        self.editor = ConnectionEditor()
        self._observers: list[Observer] = []
        self.subscribe(_recompute_flags)

    # ── Observers ────────────────────────────────────────────────────────

    def subscribe(self, observer: Observer) -> Observer:
        self._observers.append(observer)
        observer(self)
        return observer

    def unsubscribe(self, observer: Observer) -> None:
        self._observers.remove(observer)

    def _notify(self) -> None:
        for observer in list(self._observers):
            observer(self)

    # ── Read access (copies; callers cannot mutate state) ────────────────

    @property
    def micro_jobs(self) -> list[MicroJob]:
        return list(self._micro_jobs)

    @property
    def job_performers(self) -> list[JobPerformer]:
        return list(self._job_performers)

    @property
    def connections(self) -> list[JourneyConnection]:
        return list(self._connections)

    @property
    def filters(self) -> FilterState:
        return self._filters

    @property
    def node_flags(self) -> dict[str, NodeFlags]:
        return dict(self._node_flags)

    @property
    def job_ids(self) -> set[str]:
        return {j.id for j in self._micro_jobs}

    # ── Whole-set replacement ────────────────────────────────────────────

    def replace_all(
        self,
        micro_jobs: list[MicroJob],
        job_performers: list[JobPerformer],
        connections: list[JourneyConnection],
    ) -> None:
        """Swap in a complete new entity set. Any open edge edit is dropped."""
        self._micro_jobs = tuple(micro_jobs)
        self._job_performers = tuple(job_performers)
        self._connections = tuple(connections)
        self.editor.cancel()
        self._notify()

    def apply_import(
        self,
        file_content: str | bytes,
        *,
        filename: str | None = None,
        mimetype: str | None = None,
        auto_connect: bool = True,
    ) -> ImportResult:
        """Run the CSV pipeline and, on success only, replace the workspace.

        Raises CsvImportError before any state changes.
        """
        result = import_journey_csv(file_content, filename=filename, mimetype=mimetype)
        connections = build_sequential_connections(result.micro_jobs) if auto_connect else []
        self.replace_all(result.micro_jobs, result.job_performers, connections)
        # An import starts a fresh, unsaved journey
        self.journey_id = None
        logger.info(
            "Workspace imported CSV",
            extra={
                "workspace_id": self.id,
                "row_count": len(result.micro_jobs),
                "performer_count": len(result.job_performers),
            },
        )
        return result

    # ── Filters ──────────────────────────────────────────────────────────

    def set_filters(self, filters: FilterState) -> None:
        self._filters = filters
        self._notify()

    def clear_filters(self) -> None:
        self.set_filters(FilterState())

    def filter_options(self) -> dict:
        return filter_options(self.micro_jobs, self.job_performers)

    def search_performers(self, query: str) -> list[JobPerformer]:
        return search_performers(self.job_performers, query)

    # ── Node drag ────────────────────────────────────────────────────────

    def move_node(self, job_id: str, x: float, y: float) -> MicroJob:
        jobs = list(self._micro_jobs)
        for index, job in enumerate(jobs):
            if job.id == job_id:
                moved = replace(job, position=Position(x=float(x), y=float(y)))
                jobs[index] = moved
                self._micro_jobs = tuple(jobs)
                self._notify()
                return moved
        raise NotFoundError(resource="MicroJob", resource_id=job_id)

    # ── Connections ──────────────────────────────────────────────────────

    def add_connection(
        self, source: str, target: str, *, label: str = "", conn_type: str = "normal",
    ) -> JourneyConnection:
        updated, conn = connect(
            self.connections, source, target, self.job_ids, label=label, conn_type=conn_type,
        )
        self._connections = tuple(updated)
        self._notify()
        return conn

    def open_edge(self, edge_id: str) -> DiagramEdge:
        for conn in self._connections:
            if conn.id == edge_id:
                return self.editor.open(to_diagram_edge(conn))
        raise NotFoundError(resource="Connection", resource_id=edge_id)

    def update_edge_draft(self, *, label: str | None = None, choice: str | None = None) -> DiagramEdge:
        draft = None
        if label is not None:
            draft = self.editor.set_label(label)
        if choice is not None:
            draft = self.editor.set_type(choice)
        if draft is None:
            draft = self.editor.draft
        if draft is None:
            raise EditorStateError("No connection is open for editing")
        return draft

    def save_edge(self) -> JourneyConnection:
        updated, saved = self.editor.save(self.connections)
        self._connections = tuple(updated)
        self._notify()
        return saved

    def delete_edge(self) -> str:
        edge_id = self.editor.edge_id
        self._connections = tuple(self.editor.delete(self.connections))
        self._notify()
        return edge_id

    def cancel_edge(self) -> None:
        self.editor.cancel()

    # ── Diagram payload ──────────────────────────────────────────────────

    def diagram(self) -> dict:
        """Nodes, edges and view state in the shape the canvas draws."""
        performers_by_id = {p.id: p for p in self._job_performers}
        nodes = []
        for job in self._micro_jobs:
            flags = self._node_flags.get(job.id, NodeFlags())
            nodes.append({
                "id": job.id,
                "type": NODE_TYPE,
                "position": job.position.to_dict(),
                "hidden": flags.hidden,
                "minimapColor": minimap_color(flags),
                "data": {
                    "microJob": job.to_dict(),
                    "jobPerformers": [
                        performers_by_id[pid].to_dict()
                        for pid in job.job_performers
                        if pid in performers_by_id
                    ],
                    **flags.to_dict(),
                },
            })
        draft = self.editor.draft
        return {
            "workspace_id": self.id,
            "journey": {
                "id": self.journey_id,
                "name": self.journey_name,
                "description": self.journey_description,
            },
            "nodes": nodes,
            "edges": [to_diagram_edge(c).to_dict() for c in self._connections],
            "filters": self._filters.to_dict(),
            "editor": draft.to_dict() if draft else None,
            "counts": {
                "microJobs": len(self._micro_jobs),
                "jobPerformers": len(self._job_performers),
                "connections": len(self._connections),
            },
        }

    # ── Persistence ──────────────────────────────────────────────────────

    def save_journey(self, name: str, description: str = "", *, as_new: bool = False) -> dict:
        """Persist the current entity set. Updates the loaded journey unless ``as_new``."""
        if not (name or "").strip():
            raise ValidationError("Journey name is required", details={"name": "Required."})
        result = journey_service.save_journey(
            name.strip(),
            description or "",
            self.micro_jobs,
            self.job_performers,
            self.connections,
            journey_id=None if as_new else self.journey_id,
        )
        if result["success"]:
            self.journey_id = result["journey_id"]
            self.journey_name = name.strip()
            self.journey_description = description or ""
        return result

    def load_journey(self, journey_id: str) -> dict:
        """Replace the workspace with a stored journey (only when the load succeeds)."""
        result = journey_service.load_journey(journey_id)
        if not result["success"]:
            return result
        data = result["data"]
        self.replace_all(data["micro_jobs"], data["job_performers"], data["connections"])
        self.journey_id = data["journey"]["id"]
        self.journey_name = data["journey"]["name"]
        self.journey_description = data["journey"]["description"]
        logger.info(
            "Workspace loaded journey",
            extra={"workspace_id": self.id, "journey_id": journey_id},
        )
        return result


# ═══════════════════════════════════════════════════════════════
# Registry
# ═══════════════════════════════════════════════════════════════

_registry: dict[str, Workspace] = {}
_registry_lock = threading.Lock()


def create_workspace(max_idle_seconds: float | None = None) -> Workspace:
    """Register a new empty workspace, first evicting idle ones when a limit is given."""
    if max_idle_seconds:
        prune_idle_workspaces(max_idle_seconds)
    workspace = Workspace()
    with _registry_lock:
        _registry[workspace.id] = workspace
    logger.info("Workspace created", extra={"workspace_id": workspace.id})
    return workspace


def get_workspace(workspace_id: str) -> Workspace:
    with _registry_lock:
        workspace = _registry.get(workspace_id)
        if workspace is not None:
            workspace.last_used = time.monotonic()
    if workspace is None:
        raise NotFoundError(resource="Workspace", resource_id=workspace_id)
    return workspace


def delete_workspace(workspace_id: str) -> None:
    with _registry_lock:
        workspace = _registry.pop(workspace_id, None)
    if workspace is None:
        raise NotFoundError(resource="Workspace", resource_id=workspace_id)
    logger.info("Workspace deleted", extra={"workspace_id": workspace_id})


def reset_workspaces() -> None:
    """Drop every workspace (used by the test suite between tests)."""
    with _registry_lock:
        _registry.clear()


def workspace_count() -> int:
    with _registry_lock:
        return len(_registry)


def prune_idle_workspaces(max_idle_seconds: float, now: float | None = None) -> list[str]:
    """Drop workspaces not touched for ``max_idle_seconds``; returns their ids."""
    now = time.monotonic() if now is None else now
    with _registry_lock:
        expired = [
            ws_id for ws_id, ws in _registry.items()
            if now - ws.last_used > max_idle_seconds
        ]
        for ws_id in expired:
            del _registry[ws_id]
    if expired:
        logger.info("Evicted %d idle workspace(s)", len(expired))
    return expired

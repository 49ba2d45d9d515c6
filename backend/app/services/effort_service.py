"""Effort graph persistence and access rules."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..db import models
from ..domain.enums import Access, PermissionLevel
from ..domain.normalization import normalize_efforts
from ..domain.workstream_parser import color_for_index
from ..errors import ForbiddenError, NotFoundError, ValidationAppError

logger = logging.getLogger(__name__)

GRAPH_NAME_MAX = 150


@dataclass
class WorkstreamInput:
    name: str
    effort: float
    color: Optional[str] = None


@dataclass
class AccessibleGraph:
    graph: models.EffortGraph
    access: Access


def _now() -> datetime:
    return datetime.now(timezone.utc)


def percentages(workstreams: Sequence[models.Workstream]) -> List[float]:
    return normalize_efforts([ws.effort for ws in workstreams])


class EffortService:
    def __init__(self, db: Session):
        self.db = db

    # --- reads ---
    def get_graph(self, graph_id: str) -> models.EffortGraph:
        graph = self.db.query(models.EffortGraph).filter(models.EffortGraph.id == graph_id).first()
        if not graph:
            raise NotFoundError("GRAPH_NOT_FOUND", "Graph not found")
        return graph

    def list_workstreams(self, graph_id: str) -> List[models.Workstream]:
        return (
            self.db.query(models.Workstream)
            .filter(models.Workstream.graph_id == graph_id)
            .order_by(models.Workstream.created_at.asc())
            .all()
        )

    def access_for(self, graph: models.EffortGraph, user_id: Optional[str]) -> Optional[Access]:
        if not user_id:
            return None
        if graph.author_id == user_id:
            return Access.OWNER
        perm = (
            self.db.query(models.GraphPermission)
            .filter(models.GraphPermission.graph_id == graph.id, models.GraphPermission.user_id == user_id)
            .first()
        )
        if not perm:
            return None
        return Access.EDITOR if perm.permission_level == PermissionLevel.EDITOR.value else Access.VIEWER

    def get_for_view(self, graph_id: str, user_id: str) -> AccessibleGraph:
        graph = self.get_graph(graph_id)
        access = self.access_for(graph, user_id)
        if access is None:
            # don't reveal graphs the caller cannot see
            raise NotFoundError("GRAPH_NOT_FOUND", "Graph not found")
        return AccessibleGraph(graph, access)

    def get_for_edit(self, graph_id: str, user_id: str) -> models.EffortGraph:
        found = self.get_for_view(graph_id, user_id)
        if not found.access.can_edit:
            raise ForbiddenError("GRAPH_READ_ONLY", "Viewer permission does not allow edits")
        return found.graph

    def get_owned(self, graph_id: str, user_id: str) -> models.EffortGraph:
        graph = self.get_graph(graph_id)
        if graph.author_id != user_id:
            raise ForbiddenError("NOT_GRAPH_OWNER", "Only the owner can do this")
        return graph

    def list_accessible(self, user_id: str) -> List[AccessibleGraph]:
        owned = (
            self.db.query(models.EffortGraph)
            .filter(models.EffortGraph.author_id == user_id)
            .order_by(models.EffortGraph.created_at.asc())
            .all()
        )
        granted = (
            self.db.query(models.EffortGraph, models.GraphPermission.permission_level)
            .join(models.GraphPermission, models.GraphPermission.graph_id == models.EffortGraph.id)
            .filter(models.GraphPermission.user_id == user_id, models.EffortGraph.author_id != user_id)
            .order_by(models.EffortGraph.created_at.asc())
            .all()
        )
        result = [AccessibleGraph(g, Access.OWNER) for g in owned]
        result.extend(AccessibleGraph(g, Access(level)) for g, level in granted)
        return result

    def find_by_name(self, user_id: str, name: str) -> Optional[AccessibleGraph]:
        """Case-insensitive name match among graphs the user can view; owned graphs win."""
        wanted = name.strip().lower()
        if not wanted:
            return None
        for item in self.list_accessible(user_id):
            if item.graph.name.strip().lower() == wanted:
                return item
        return None

    # --- writes ---
    def create_graph(
        self,
        author_id: str,
        name: str,
        workstreams: Iterable[WorkstreamInput],
        description: Optional[str] = None,
    ) -> models.EffortGraph:
        name = (name or "").strip()
        if not name:
            raise ValidationAppError("GRAPH_NAME_REQUIRED", "Effort name is required")
        if len(name) > GRAPH_NAME_MAX:
            raise ValidationAppError("GRAPH_NAME_TOO_LONG", f"Effort name must be at most {GRAPH_NAME_MAX} characters")
        graph = models.EffortGraph(name=name, description=description or None, author_id=author_id)
        self.db.add(graph)
        self.db.flush()
        for i, ws in enumerate(workstreams):
            self._validate_workstream(ws.name, ws.effort)
            self.db.add(models.Workstream(
                graph_id=graph.id,
                name=ws.name.strip(),
                effort=float(ws.effort),
                color=ws.color or color_for_index(i),
            ))
        self.db.commit()
        self.db.refresh(graph)
        logger.info("created graph %s for user %s", graph.id, author_id)
        return graph

    def add_workstream(self, graph: models.EffortGraph, name: str, effort: float, color: Optional[str] = None) -> models.Workstream:
        self._validate_workstream(name, effort)
        count = self.db.query(func.count(models.Workstream.id)).filter(models.Workstream.graph_id == graph.id).scalar() or 0
        ws = models.Workstream(graph_id=graph.id, name=name.strip(), effort=float(effort), color=color or color_for_index(count))
        self.db.add(ws)
        self.touch(graph)
        self.db.commit()
        self.db.refresh(ws)
        return ws

    def update_workstream(
        self,
        graph: models.EffortGraph,
        workstream_id: str,
        name: Optional[str] = None,
        effort: Optional[float] = None,
        color: Optional[str] = None,
    ) -> models.Workstream:
        ws = self._get_workstream(graph, workstream_id)
        if name is not None:
            if not name.strip():
                raise ValidationAppError("WORKSTREAM_NAME_REQUIRED", "Workstream name is required")
            ws.name = name.strip()
        if effort is not None:
            self._validate_workstream(ws.name, effort)
            ws.effort = float(effort)
        if color is not None:
            ws.color = color
        ws.updated_at = _now()
        self.touch(graph)
        self.db.commit()
        self.db.refresh(ws)
        return ws

    def delete_workstream(self, graph: models.EffortGraph, workstream_id: str) -> None:
        ws = self._get_workstream(graph, workstream_id)
        self.db.delete(ws)
        self.touch(graph)
        self.db.commit()

    def delete_graph(self, graph: models.EffortGraph) -> None:
        """Delete the graph row; workstreams, shares and permissions go with it."""
        graph_id = graph.id
        # ORM cascade, SQLite does not enforce ON DELETE CASCADE by default
        self.db.delete(graph)
        self.db.commit()
        logger.info("deleted graph %s", graph_id)

    def grant_permission(self, graph: models.EffortGraph, user: models.User, level: PermissionLevel) -> models.GraphPermission:
        if user.id == graph.author_id:
            raise ValidationAppError("OWNER_PERMISSION", "The owner already has full access")
        perm = (
            self.db.query(models.GraphPermission)
            .filter(models.GraphPermission.graph_id == graph.id, models.GraphPermission.user_id == user.id)
            .first()
        )
        if perm:
            perm.permission_level = level.value
        else:
            perm = models.GraphPermission(graph_id=graph.id, user_id=user.id, permission_level=level.value)
            self.db.add(perm)
        self.db.commit()
        self.db.refresh(perm)
        return perm

    def touch(self, graph: models.EffortGraph) -> None:
        """Bump ``updated_at``; this moves the graph's chart cache key."""
        graph.updated_at = _now()

    # --- helpers ---
    def _get_workstream(self, graph: models.EffortGraph, workstream_id: str) -> models.Workstream:
        ws = (
            self.db.query(models.Workstream)
            .filter(models.Workstream.id == workstream_id, models.Workstream.graph_id == graph.id)
            .first()
        )
        if not ws:
            raise NotFoundError("WORKSTREAM_NOT_FOUND", "Workstream not found")
        return ws

    @staticmethod
    def _validate_workstream(name: str, effort: float) -> None:
        if not (name or "").strip():
            raise ValidationAppError("WORKSTREAM_NAME_REQUIRED", "Workstream name is required")
        if effort is None or effort < 0 or effort > 100:
            raise ValidationAppError("WORKSTREAM_EFFORT_RANGE", "Effort must be between 0 and 100")

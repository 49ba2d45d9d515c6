from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..db import models
from ..db.session import get_db
from ..domain.enums import PermissionLevel
from ..errors import NotFoundError
from ..ports.chart_renderer import ChartRenderer
from ..ports.chart_store import ChartStore
from ..services.chart_service import ChartService
from ..services.effort_service import GRAPH_NAME_MAX, EffortService, WorkstreamInput, percentages
from ..services.share_service import ShareService, share_url
from .auth import get_current_user
from .deps import base_url, get_chart_renderer, get_chart_store

router = APIRouter(prefix="/api/effort", tags=["efforts"])


class WorkstreamIn(BaseModel):
    name: str = Field(min_length=1)
    effort: float = Field(ge=0, le=100)
    color: str | None = None


class WorkstreamPatch(BaseModel):
    name: str | None = None
    effort: float | None = Field(default=None, ge=0, le=100)
    color: str | None = None


class EffortCreate(BaseModel):
    name: str = Field(min_length=1, max_length=GRAPH_NAME_MAX)
    description: str | None = None
    workstreams: List[WorkstreamIn] = Field(default_factory=list)


class PermissionGrant(BaseModel):
    user_email: str
    permission_level: PermissionLevel


class WorkstreamOut(BaseModel):
    id: str
    name: str
    effort: float
    color: str
    percentage: float


class EffortSummary(BaseModel):
    id: str
    name: str
    description: str | None = None
    permission: str
    createdAt: datetime
    updatedAt: datetime


class EffortOut(EffortSummary):
    authorId: str
    workstreams: List[WorkstreamOut]


def workstreams_out(workstreams: List[models.Workstream]) -> List[dict]:
    return [
        {"id": ws.id, "name": ws.name, "effort": ws.effort, "color": ws.color, "percentage": pct}
        for ws, pct in zip(workstreams, percentages(workstreams))
    ]


def effort_out(graph: models.EffortGraph, workstreams: List[models.Workstream], permission: str) -> dict:
    return {
        "id": graph.id,
        "name": graph.name,
        "description": graph.description,
        "authorId": graph.author_id,
        "permission": permission,
        "createdAt": graph.created_at,
        "updatedAt": graph.updated_at,
        "workstreams": workstreams_out(workstreams),
    }


def _workstream_out(ws: models.Workstream, siblings: List[models.Workstream]) -> dict:
    for item in workstreams_out(siblings):
        if item["id"] == ws.id:
            return item
    return {"id": ws.id, "name": ws.name, "effort": ws.effort, "color": ws.color, "percentage": 0.0}


@router.get("", response_model=List[EffortSummary])
def list_efforts(db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    return [
        {
            "id": item.graph.id,
            "name": item.graph.name,
            "description": item.graph.description,
            "permission": item.access.value,
            "createdAt": item.graph.created_at,
            "updatedAt": item.graph.updated_at,
        }
        for item in EffortService(db).list_accessible(current_user.id)
    ]


@router.post("", response_model=EffortOut, status_code=201)
def create_effort(body: EffortCreate, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    svc = EffortService(db)
    graph = svc.create_graph(
        current_user.id,
        body.name,
        [WorkstreamInput(ws.name, ws.effort, ws.color) for ws in body.workstreams],
        description=body.description,
    )
    return effort_out(graph, svc.list_workstreams(graph.id), "owner")


@router.get("/{graph_id}", response_model=EffortOut)
def get_effort(graph_id: str, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    svc = EffortService(db)
    found = svc.get_for_view(graph_id, current_user.id)
    return effort_out(found.graph, svc.list_workstreams(graph_id), found.access.value)


@router.delete("/{graph_id}", status_code=204)
def delete_effort(
    graph_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    store: ChartStore = Depends(get_chart_store),
    renderer: ChartRenderer = Depends(get_chart_renderer),
):
    svc = EffortService(db)
    graph = svc.get_owned(graph_id, current_user.id)
    owner_id = graph.author_id
    svc.delete_graph(graph)
    ChartService(store, renderer).purge_graph(owner_id, graph_id)
    return Response(status_code=204)


@router.post("/{graph_id}/workstreams", response_model=WorkstreamOut, status_code=201)
def add_workstream(graph_id: str, body: WorkstreamIn, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    svc = EffortService(db)
    graph = svc.get_for_edit(graph_id, current_user.id)
    ws = svc.add_workstream(graph, body.name, body.effort, body.color)
    return _workstream_out(ws, svc.list_workstreams(graph_id))


@router.patch("/{graph_id}/workstreams/{workstream_id}", response_model=WorkstreamOut)
def update_workstream(
    graph_id: str,
    workstream_id: str,
    body: WorkstreamPatch,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    svc = EffortService(db)
    graph = svc.get_for_edit(graph_id, current_user.id)
    ws = svc.update_workstream(graph, workstream_id, name=body.name, effort=body.effort, color=body.color)
    return _workstream_out(ws, svc.list_workstreams(graph_id))


@router.delete("/{graph_id}/workstreams/{workstream_id}", status_code=204)
def delete_workstream(graph_id: str, workstream_id: str, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    svc = EffortService(db)
    graph = svc.get_for_edit(graph_id, current_user.id)
    svc.delete_workstream(graph, workstream_id)
    return Response(status_code=204)


@router.post("/{graph_id}/permissions", status_code=201)
def grant_permission(graph_id: str, body: PermissionGrant, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    svc = EffortService(db)
    graph = svc.get_owned(graph_id, current_user.id)
    user = db.query(models.User).filter(models.User.email == body.user_email).first()
    if not user:
        raise NotFoundError("USER_NOT_FOUND", "No user with that email")
    perm = svc.grant_permission(graph, user, body.permission_level)
    return {"graphId": graph.id, "userId": user.id, "permissionLevel": perm.permission_level}


@router.post("/{graph_id}/share")
def share_effort(graph_id: str, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    graph = EffortService(db).get_for_edit(graph_id, current_user.id)
    share = ShareService(db).get_or_create(graph.id, created_by=current_user.id)
    return {"shareToken": share.share_token, "url": share_url(base_url(request), share.share_token)}

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import models
from ..db.session import get_db
from ..errors import NotFoundError, ValidationAppError
from ..ports.chart_renderer import ChartRenderer
from ..ports.chart_store import ChartStore
from ..services.chart_service import ChartResult, ChartService, load_chart_spec
from ..services.effort_service import EffortService
from .auth import get_current_user
from .deps import base_url, get_chart_renderer, get_chart_store, get_screenshot_renderer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chart", tags=["charts"])
blob_router = APIRouter(tags=["charts"])

PNG_HEADERS = {"Cache-Control": "public, max-age=300"}


class InvalidateIn(BaseModel):
    graphId: str


class GenerateIn(BaseModel):
    graphId: str | None = None
    userId: str | None = None


def _png(content: bytes) -> Response:
    return Response(content=content, media_type="image/png", headers=PNG_HEADERS)


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=307)


def _serve_cached_or_bytes(result: ChartResult) -> Response:
    if result.public_url:
        return _redirect(result.public_url)
    return _png(result.content or b"")


# declared before /{graph_id} so "screenshot" is not taken as a graph id
@router.get("/screenshot")
def screenshot_chart(
    graphId: str | None = None,
    userId: str | None = None,
    refresh: bool = False,
    t: str | None = None,  # Slack image cache buster, unused
    db: Session = Depends(get_db),
    store: ChartStore = Depends(get_chart_store),
    renderer: ChartRenderer = Depends(get_screenshot_renderer),
    fallback: ChartRenderer = Depends(get_chart_renderer),
):
    if not graphId:
        raise ValidationAppError("GRAPH_ID_REQUIRED", "Missing graphId")
    spec = load_chart_spec(db, graphId, user_id=userId)
    return _serve_cached_or_bytes(ChartService(store, renderer, fallback).get_chart(spec, refresh=refresh))


@router.post("/invalidate")
def invalidate_chart(
    body: InvalidateIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    store: ChartStore = Depends(get_chart_store),
    renderer: ChartRenderer = Depends(get_chart_renderer),
):
    graph = EffortService(db).get_graph(body.graphId)
    if graph.author_id != current_user.id:
        raise NotFoundError("GRAPH_NOT_FOUND", "Graph not found")
    removed = ChartService(store, renderer).invalidate(graph.author_id, graph.id)
    return {"success": True, "removed": removed}


@router.post("/generate")
def generate_chart(
    body: GenerateIn,
    request: Request,
    db: Session = Depends(get_db),
    store: ChartStore = Depends(get_chart_store),
    renderer: ChartRenderer = Depends(get_screenshot_renderer),
    fallback: ChartRenderer = Depends(get_chart_renderer),
):
    if not body.graphId or not body.userId:
        raise ValidationAppError("GRAPH_ID_REQUIRED", "Missing graphId or userId")
    spec = load_chart_spec(db, body.graphId, user_id=body.userId)
    ChartService(store, renderer, fallback).get_chart(spec)
    query = urlencode({"graphId": body.graphId, "userId": body.userId})
    return {"success": True, "url": f"{base_url(request)}/api/chart/screenshot?{query}"}


@router.get("/{graph_id}")
def direct_chart(
    graph_id: str,
    userId: str | None = None,
    refresh: bool = False,
    db: Session = Depends(get_db),
    store: ChartStore = Depends(get_chart_store),
    renderer: ChartRenderer = Depends(get_chart_renderer),
):
    spec = load_chart_spec(db, graph_id, user_id=userId)
    result = ChartService(store, renderer).get_chart(spec, refresh=refresh)
    if result.cached:
        return _redirect(result.public_url)
    return _png(result.content or b"")


@blob_router.get("/charts/{key:path}")
def chart_blob(key: str, store: ChartStore = Depends(get_chart_store)):
    content = store.read(key)
    if content is None:
        raise NotFoundError("CHART_NOT_FOUND", "Chart image not found")
    return _png(content)

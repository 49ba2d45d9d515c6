"""Chart image lookup, rendering and cache invalidation.

Blobs live at ``ChartCacheKey.path``. A hit is served straight from the store;
a miss (or ``refresh``) clears older blobs of the same graph/theme line,
renders, stores and serves the fresh image. Storage failures only cost the
cache: the rendered bytes are still returned. A failing renderer hands over
to the optional ``fallback`` renderer.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from ..domain.chart_cache import ChartCacheKey, is_graph_blob, is_variant_blob
from ..domain.charts import ChartSpec
from ..domain.enums import Theme
from ..errors import NotFoundError, UpstreamError
from ..metrics import CHART_RENDER_DURATION, CHART_REQUESTS, CHART_UPLOAD_FAILURES
from ..ports.chart_renderer import ChartRenderer
from ..ports.chart_store import ChartStore
from .effort_service import EffortService
from .preferences_service import resolve_theme

logger = logging.getLogger(__name__)


@dataclass
class ChartResult:
    key: ChartCacheKey
    cached: bool
    public_url: Optional[str] = None  # None when the upload failed
    content: Optional[bytes] = None  # None on a cache hit


def load_chart_spec(db: Session, graph_id: str, user_id: Optional[str] = None, theme: Optional[Theme] = None) -> ChartSpec:
    efforts = EffortService(db)
    graph = efforts.get_graph(graph_id)
    workstreams = efforts.list_workstreams(graph_id)
    if not workstreams:
        raise NotFoundError("WORKSTREAMS_NOT_FOUND", "No workstreams found")
    resolved = theme or resolve_theme(db, user_id, graph.author_id)
    return ChartSpec.from_rows(graph, workstreams, resolved)


class ChartService:
    def __init__(self, store: ChartStore, renderer: ChartRenderer, fallback: Optional[ChartRenderer] = None):
        self.store = store
        self.renderer = renderer
        self.fallback = fallback

    def get_chart(self, spec: ChartSpec, refresh: bool = False) -> ChartResult:
        key = ChartCacheKey.build(spec.owner_id, spec.graph_id, spec.theme, spec.updated_at)
        if not refresh and self._exists(key):
            CHART_REQUESTS.labels(outcome="hit").inc()
            return ChartResult(key=key, cached=True, public_url=self.store.public_url(key.path))

        CHART_REQUESTS.labels(outcome="refresh" if refresh else "miss").inc()
        self._remove_matching(key.folder, spec.graph_id, lambda name: is_variant_blob(name, spec.graph_id, spec.theme))

        content = self._render(spec)

        try:
            self.store.upload(key.path, content)
        except UpstreamError as e:
            CHART_UPLOAD_FAILURES.inc()
            logger.error("chart upload failed for %s: %s", key.path, e.message)
            return ChartResult(key=key, cached=False, content=content)
        return ChartResult(key=key, cached=False, public_url=self.store.public_url(key.path), content=content)

    def _render(self, spec: ChartSpec) -> bytes:
        try:
            with CHART_RENDER_DURATION.labels(renderer=self.renderer.name).time():
                return self.renderer.render(spec)
        except UpstreamError as e:
            if self.fallback is None or self.fallback.name == self.renderer.name:
                raise
            logger.warning("%s renderer failed for graph %s, using %s: %s", self.renderer.name, spec.graph_id, self.fallback.name, e.message)
        with CHART_RENDER_DURATION.labels(renderer=self.fallback.name).time():
            return self.fallback.render(spec)

    def invalidate(self, owner_id: str, graph_id: str, themes: Iterable[Theme] = tuple(Theme)) -> List[str]:
        """Drop every cached blob of the given theme lines; other lines are untouched."""
        wanted = [Theme(t) for t in themes]
        return self._remove_matching(owner_id, graph_id, lambda name: any(is_variant_blob(name, graph_id, t) for t in wanted))

    def purge_graph(self, owner_id: str, graph_id: str) -> List[str]:
        return self._remove_matching(owner_id, graph_id, lambda name: is_graph_blob(name, graph_id))

    def _exists(self, key: ChartCacheKey) -> bool:
        try:
            return self.store.exists(key.path)
        except UpstreamError as e:
            logger.warning("chart lookup failed for %s: %s", key.path, e.message)
            return False

    def _remove_matching(self, folder: str, search: str, predicate) -> List[str]:
        try:
            names = self.store.list(folder, search=search)
            keys = [f"{folder}/{name}" for name in names if predicate(name)]
            if keys:
                self.store.remove(keys)
        except UpstreamError as e:
            logger.warning("could not clear cached charts in %s: %s", folder, e.message)
            return []
        return keys


def prerender_chart(
    session_factory,
    store: ChartStore,
    renderer: ChartRenderer,
    graph_id: str,
    user_id: Optional[str],
    fallback: Optional[ChartRenderer] = None,
) -> None:
    """Background warm-up after a graph is created; failures are logged only."""
    db = session_factory()
    try:
        spec = load_chart_spec(db, graph_id, user_id=user_id)
        ChartService(store, renderer, fallback).get_chart(spec, refresh=True)
    except Exception:
        logger.exception("pre-rendering chart for graph %s failed", graph_id)
    finally:
        db.close()

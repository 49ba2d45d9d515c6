"""Shared FastAPI dependencies: settings-built collaborators, swappable in tests via dependency_overrides."""
from __future__ import annotations
from functools import lru_cache

from fastapi import Depends, Request

from ..adapters.local_chart_store import LocalChartStore
from ..adapters.plotly_chart_renderer import PlotlyChartRenderer
from ..adapters.screenshot_chart_renderer import ScreenshotChartRenderer
from ..adapters.supabase_chart_store import SupabaseChartStore
from ..config import Settings, get_settings
from ..ports.chart_renderer import ChartRenderer
from ..ports.chart_store import ChartStore
from ..services.slack_client import SlackClient
from ..services.slack_link_service import SlackLinkService
from ..services.state_store import StateStore, build_state_store


def base_url(request: Request, settings: Settings | None = None) -> str:
    """Public origin for links; PUBLIC_BASE_URL wins over the request's own origin."""
    settings = settings or get_settings()
    return settings.public_base_url or str(request.base_url).rstrip("/")


@lru_cache(maxsize=1)
def _chart_store() -> ChartStore:
    settings = get_settings()
    if settings.chart_store_backend == "supabase":
        return SupabaseChartStore(settings.supabase_url or "", settings.supabase_service_key or "", settings.chart_bucket)
    return LocalChartStore(settings.chart_store_dir, base_url=settings.public_base_url or "")


def get_chart_store() -> ChartStore:
    return _chart_store()


def get_chart_renderer() -> ChartRenderer:
    return PlotlyChartRenderer()


def get_screenshot_renderer(request: Request) -> ChartRenderer:
    settings = get_settings()
    if not settings.screenshot_service_url:
        return PlotlyChartRenderer()
    return ScreenshotChartRenderer(
        settings.screenshot_service_url,
        base_url(request, settings),
        timeout=settings.screenshot_timeout_seconds,
    )


@lru_cache(maxsize=1)
def _state_store() -> StateStore:
    settings = get_settings()
    return build_state_store(settings.oauth_state_backend, settings.redis_url)


def get_state_store() -> StateStore:
    return _state_store()


def get_slack_client() -> SlackClient:
    return SlackClient(get_settings().slack)


def get_link_service(
    client: SlackClient = Depends(get_slack_client),
    state_store: StateStore = Depends(get_state_store),
) -> SlackLinkService:
    return SlackLinkService(client, state_store)

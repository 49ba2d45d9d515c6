"""Renderer backed by a headless-browser screenshot service.

The service loads ``/render/{graph_id}`` from this app and returns a PNG.
Request body follows the browserless ``/screenshot`` API.
"""
from __future__ import annotations
from urllib.parse import urlencode

import requests

from ..domain.charts import ChartSpec
from ..errors import UpstreamError
from ..ports.chart_renderer import ChartRenderer


class ScreenshotChartRenderer(ChartRenderer):
    name = "screenshot"

    def __init__(self, service_url: str, app_base_url: str, timeout: float = 20.0):
        self.service_url = service_url
        self.app_base_url = app_base_url.rstrip("/")
        self.timeout = timeout

    def render_url(self, spec: ChartSpec) -> str:
        query = urlencode({"userId": spec.owner_id, "theme": spec.theme.value})
        return f"{self.app_base_url}/render/{spec.graph_id}?{query}"

    def render(self, spec: ChartSpec) -> bytes:
        payload = {
            "url": self.render_url(spec),
            "options": {"type": "png", "fullPage": False},
            "viewport": {"width": 800, "height": 600},
            "waitForSelector": {"selector": ".js-plotly-plot"},
        }
        try:
            res = requests.post(self.service_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError("RENDER_UNAVAILABLE", f"screenshot service unreachable: {e}")
        if res.status_code != 200 or not res.content:
            raise UpstreamError("RENDER_FAILED", f"screenshot service returned {res.status_code}")
        return res.content

from __future__ import annotations
import html
import plotly.graph_objects as go

from ..domain.charts import ChartSpec
from ..ports.chart_renderer import ChartRenderer

WIDTH = 800
HEIGHT = 600


def build_pie_figure(spec: ChartSpec) -> go.Figure:
    """Pie of normalized percentages with ``name: 12.3%`` legend entries."""
    bg, fg = spec.colors
    fig = go.Figure(
        go.Pie(
            labels=[f"{s.name}: {s.percentage:.1f}%" for s in spec.slices],
            values=[s.percentage for s in spec.slices],
            marker=dict(colors=[s.color for s in spec.slices], line=dict(color=bg, width=3)),
            sort=False,
            direction="clockwise",
            texttemplate="%{value:.1f}%",
            hoverinfo="label",
        )
    )
    fig.update_layout(
        title=dict(text=spec.title, x=0.5, font=dict(size=24, color=fg)),
        paper_bgcolor=bg,
        plot_bgcolor=bg,
        font=dict(color=fg, size=16),
        legend=dict(orientation="v", x=1.02, y=0.5),
        margin=dict(t=80, b=20, l=20, r=20),
        width=WIDTH,
        height=HEIGHT,
    )
    return fig


def render_chart_html(spec: ChartSpec) -> str:
    bg, _ = spec.colors
    body = build_pie_figure(spec).to_html(full_html=False, include_plotlyjs="cdn")
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{html.escape(spec.title)}</title>"
        f"<style>body{{margin:0;padding:20px;background:{bg};display:flex;"
        "justify-content:center;align-items:center;min-height:100vh;}}</style>"
        f"</head><body>{body}</body></html>"
    )


class PlotlyChartRenderer(ChartRenderer):
    """Server-side renderer (Plotly static export through kaleido)."""

    name = "plotly"

    def render(self, spec: ChartSpec) -> bytes:
        return build_pie_figure(spec).to_image(format="png", width=WIDTH, height=HEIGHT)

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Sequence, Tuple

from .enums import Theme
from .normalization import normalize_efforts

# (background, text) per theme
THEME_COLORS = {
    Theme.DARK: ("#1a1a1a", "#e5e5e5"),
    Theme.LIGHT: ("#ffffff", "#1a1a1a"),
}


@dataclass(frozen=True)
class ChartSlice:
    name: str
    percentage: float
    color: str


@dataclass(frozen=True)
class ChartSpec:
    """Everything a renderer needs to draw one graph in one theme."""
    graph_id: str
    owner_id: str
    title: str
    theme: Theme
    updated_at: datetime
    slices: List[ChartSlice] = field(default_factory=list)

    @property
    def colors(self) -> Tuple[str, str]:
        return THEME_COLORS[self.theme]

    @classmethod
    def from_rows(cls, graph, workstreams: Sequence, theme: Theme) -> "ChartSpec":
        percentages = normalize_efforts([ws.effort for ws in workstreams])
        slices = [
            ChartSlice(name=ws.name, percentage=pct, color=ws.color)
            for ws, pct in zip(workstreams, percentages)
            if ws.effort > 0
        ]
        return cls(
            graph_id=graph.id,
            owner_id=graph.author_id,
            title=graph.name,
            theme=Theme(theme),
            updated_at=graph.updated_at,
            slices=slices,
        )

from __future__ import annotations
from typing import Protocol

from ..domain.charts import ChartSpec


class ChartRenderer(Protocol):
    """Turns chart data into PNG bytes."""

    name: str

    def render(self, spec: ChartSpec) -> bytes:
        ...

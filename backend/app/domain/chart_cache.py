"""Storage identity of rendered chart images.

Key layout: ``{owner_id}/{graph_id}-{theme}-{updated_at_millis}.png``. The
graph's ``updated_at`` is part of the key, so any mutation produces a new key
and older blobs can never be served for the current data. Stale blobs of the
same ``(graph, theme)`` line share the ``{graph_id}-{theme}-`` name prefix.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from .enums import Theme

CHART_EXTENSION = ".png"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_unix_millis(ts: datetime) -> int:
    """Milliseconds since epoch; naive datetimes are taken as UTC (SQLite drops tzinfo)."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return (ts - _EPOCH) // timedelta(milliseconds=1)


def variant_prefix(graph_id: str, theme: Theme | str) -> str:
    return f"{graph_id}-{Theme(theme).value}-"


@dataclass(frozen=True)
class ChartCacheKey:
    owner_id: str
    graph_id: str
    theme: Theme
    version: int

    @classmethod
    def build(cls, owner_id: str, graph_id: str, theme: Theme | str, updated_at: datetime) -> "ChartCacheKey":
        return cls(owner_id=owner_id, graph_id=graph_id, theme=Theme(theme), version=to_unix_millis(updated_at))

    @property
    def folder(self) -> str:
        return self.owner_id

    @property
    def file_name(self) -> str:
        return f"{variant_prefix(self.graph_id, self.theme)}{self.version}{CHART_EXTENSION}"

    @property
    def path(self) -> str:
        return f"{self.folder}/{self.file_name}"

    def __str__(self) -> str:
        return self.path


def is_variant_blob(file_name: str, graph_id: str, theme: Theme | str) -> bool:
    return file_name.startswith(variant_prefix(graph_id, theme)) and file_name.endswith(CHART_EXTENSION)


def is_graph_blob(file_name: str, graph_id: str) -> bool:
    return file_name.startswith(f"{graph_id}-") and file_name.endswith(CHART_EXTENSION)

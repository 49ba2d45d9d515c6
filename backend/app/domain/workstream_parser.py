"""Parser for the free-text workstream field of the Slack create-effort modal.

One workstream per line, ``name, number``::

    Engineering, 60
    Design, 25
    QA, 15
"""
from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import List

from ..errors import ValidationAppError
from .normalization import normalize_efforts

WORKSTREAM_COLORS = [
    "#3b82f6",  # blue
    "#10b981",  # green
    "#f59e0b",  # amber
    "#ef4444",  # red
    "#8b5cf6",  # purple
    "#ec4899",  # pink
    "#06b6d4",  # cyan
    "#f97316",  # orange
]

MAX_WORKSTREAMS = 10


def color_for_index(i: int) -> str:
    return WORKSTREAM_COLORS[i % len(WORKSTREAM_COLORS)]


@dataclass
class ParsedWorkstream:
    name: str
    effort: float
    color: str


@dataclass
class ParseWorkstreamsResult:
    workstreams: List[ParsedWorkstream] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and bool(self.workstreams)

    def raise_for_errors(self) -> None:
        if self.errors:
            raise ValidationAppError("WORKSTREAMS_INVALID", "\n".join(self.errors))
        if not self.workstreams:
            raise ValidationAppError("WORKSTREAMS_REQUIRED", "At least one workstream is required")


def _parse_effort(raw: str) -> float | None:
    value = raw.strip()
    if value.endswith("%"):
        value = value[:-1].strip()
    try:
        effort = float(value)
    except ValueError:
        return None
    if not math.isfinite(effort) or effort <= 0:
        return None
    return effort


def parse_workstreams(text: str | None) -> ParseWorkstreamsResult:
    """Parse modal text into workstreams, collecting one error per bad line.

    Line numbers in errors and palette colors both follow the position among
    non-blank lines. Parsed efforts are normalized to sum to 100.
    """
    result = ParseWorkstreamsResult()
    lines = [line for line in (text or "").strip().split("\n") if line.strip()]

    if not lines:
        result.errors.append("At least one workstream is required")
        return result
    if len(lines) > MAX_WORKSTREAMS:
        result.errors.append(f"Maximum {MAX_WORKSTREAMS} workstreams allowed")
        return result

    for i, line in enumerate(lines):
        parts = [p.strip() for p in line.strip().split(",")]
        if len(parts) != 2:
            result.errors.append(f'Line {i + 1}: Invalid format. Expected "name, percentage"')
            continue
        name, effort_str = parts
        if not name:
            result.errors.append(f"Line {i + 1}: Workstream name is required")
            continue
        effort = _parse_effort(effort_str)
        if effort is None:
            result.errors.append(f'Line {i + 1}: Invalid percentage "{effort_str}"')
            continue
        result.workstreams.append(ParsedWorkstream(name=name, effort=effort, color=color_for_index(i)))

    if result.workstreams:
        normalized = normalize_efforts([ws.effort for ws in result.workstreams])
        for ws, pct in zip(result.workstreams, normalized):
            ws.effort = pct
    return result

"""Slack payloads for the /effort command and the create-effort modal."""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlencode

from ..domain.chart_cache import to_unix_millis
from ..domain.normalization import normalize_efforts
from .effort_service import GRAPH_NAME_MAX
from .slack_blocks import (
    HEADER_MAX,
    ActionsBlock,
    Button,
    ContextBlock,
    HeaderBlock,
    ImageBlock,
    InputBlock,
    Modal,
    SectionBlock,
    render,
    truncate,
)

CREATE_EFFORT_CALLBACK = "create_effort"
EFFORT_NAME_BLOCK, EFFORT_NAME_INPUT = "effort_name_block", "effort_name_input"
WORKSTREAMS_BLOCK, WORKSTREAMS_INPUT = "workstreams_block", "workstreams_input"
DESCRIPTION_BLOCK, DESCRIPTION_INPUT = "description_block", "description_input"

HELP_TEXT = (
    "*Effort App Commands:*\n"
    "• `/effort new` - Create a new effort\n"
    "• `/effort list` - List all your efforts\n"
    "• `/effort view [name]` - View a specific effort\n"
    "• `/effort share [name]` - Share an effort to this channel\n"
    "• `/effort link` - Link your Slack account\n"
    "• `/effort help` - Show this help message"
)


def ephemeral(text: str, blocks: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"response_type": "ephemeral", "text": text}
    if blocks:
        body["blocks"] = blocks
    return body


def in_channel(text: str, blocks: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"response_type": "in_channel", "text": text}
    if blocks:
        body["blocks"] = blocks
    return body


def chart_image_url(base_url: str, graph, user_id: str) -> str:
    # t busts Slack's image cache whenever the graph changes
    query = urlencode({"graphId": graph.id, "userId": user_id, "t": to_unix_millis(graph.updated_at)})
    return f"{base_url.rstrip('/')}/api/chart/screenshot?{query}"


def workstream_lines(workstreams: Sequence) -> str:
    percents = normalize_efforts([ws.effort for ws in workstreams])
    return "\n".join(f"• *{ws.name}*: {pct:.1f}%" for ws, pct in zip(workstreams, percents))


def effort_blocks(graph, workstreams: Sequence, chart_url: str, share_url: Optional[str] = None) -> List[Dict[str, Any]]:
    blocks = [
        HeaderBlock(truncate(graph.name, HEADER_MAX)),
        ImageBlock(chart_url, f"{graph.name} effort distribution chart"),
        SectionBlock("*Workstream Distribution:*"),
    ]
    if workstreams:
        blocks.append(SectionBlock(workstream_lines(workstreams)))
    else:
        blocks.append(ContextBlock(["_No workstreams yet_"]))
    if share_url:
        blocks.append(ActionsBlock([Button("View Interactive Chart", url=share_url, action_id="open_share")]))
    return render(blocks)


def link_prompt(link_url: str) -> Dict[str, Any]:
    blocks = render([
        SectionBlock(
            "Your Slack account is not linked to an Effort account yet.",
            accessory=Button("Link account", url=link_url, action_id="link_account", style="primary"),
        ),
    ])
    return ephemeral("Please link your account first: " + link_url, blocks)


def graph_list_text(items: Sequence) -> str:
    if not items:
        return "You don't have any efforts yet. Try `/effort new`."
    lines = []
    for item in items:
        suffix = "" if item.access.value == "owner" else f" _({item.access.value})_"
        lines.append(f"• {item.graph.name}{suffix}")
    return "*Your efforts:*\n" + "\n".join(lines)


def create_effort_modal() -> Dict[str, Any]:
    return Modal(
        title="New Effort",
        callback_id=CREATE_EFFORT_CALLBACK,
        blocks=(
            InputBlock(EFFORT_NAME_BLOCK, EFFORT_NAME_INPUT, "Effort name", placeholder="Q3 Platform Work", max_length=GRAPH_NAME_MAX),
            InputBlock(
                WORKSTREAMS_BLOCK,
                WORKSTREAMS_INPUT,
                "Workstreams",
                placeholder="Engineering, 60\nDesign, 25\nQA, 15",
                multiline=True,
                hint="One per line: name, percentage. Up to 10 workstreams.",
            ),
            InputBlock(DESCRIPTION_BLOCK, DESCRIPTION_INPUT, "Description", multiline=True, optional=True),
        ),
    ).to_dict()

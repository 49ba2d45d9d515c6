import pytest
from types import SimpleNamespace
from datetime import datetime, timezone

from app.services.slack_blocks import ActionsBlock, Button, ContextBlock, HeaderBlock, SectionBlock, render, truncate
from app.services import slack_messages as msg


def test_header_rejects_empty_and_overlong_text():
    with pytest.raises(ValueError):
        HeaderBlock("  ")
    with pytest.raises(ValueError):
        HeaderBlock("x" * 151)
    assert HeaderBlock("x" * 150).to_dict()["text"]["type"] == "plain_text"


def test_button_validation():
    with pytest.raises(ValueError):
        Button("Go", url="https://x", style="loud")
    with pytest.raises(ValueError):
        Button("Go")
    assert Button("Go", url="https://x", style="primary").to_dict() == {
        "type": "button",
        "text": {"type": "plain_text", "text": "Go", "emoji": True},
        "url": "https://x",
        "style": "primary",
    }


def test_empty_containers_are_rejected():
    with pytest.raises(ValueError):
        ActionsBlock([])
    with pytest.raises(ValueError):
        ContextBlock([])


def test_section_with_accessory_renders():
    [block] = render([SectionBlock("*hi*", accessory=Button("Link", action_id="link"))])
    assert block["type"] == "section"
    assert block["text"] == {"type": "mrkdwn", "text": "*hi*"}
    assert block["accessory"]["action_id"] == "link"


def _graph():
    return SimpleNamespace(id="g1", name="Q3 Plan", updated_at=datetime(2025, 1, 1, tzinfo=timezone.utc))


def test_effort_blocks_layout():
    workstreams = [SimpleNamespace(name="Eng", effort=3), SimpleNamespace(name="QA", effort=1)]
    blocks = msg.effort_blocks(_graph(), workstreams, "http://x/chart.png", "http://x/share/abc")
    assert [b["type"] for b in blocks] == ["header", "image", "section", "section", "actions"]
    assert blocks[2]["text"]["text"] == "*Workstream Distribution:*"
    assert blocks[3]["text"]["text"] == "• *Eng*: 75.0%\n• *QA*: 25.0%"
    assert blocks[4]["elements"][0]["url"] == "http://x/share/abc"


def test_effort_blocks_without_share_has_no_button():
    blocks = msg.effort_blocks(_graph(), [SimpleNamespace(name="Eng", effort=1)], "http://x/c.png")
    assert all(b["type"] != "actions" for b in blocks)


def test_chart_image_url_carries_timestamp():
    url = msg.chart_image_url("http://app/", _graph(), "u1")
    assert url == "http://app/api/chart/screenshot?graphId=g1&userId=u1&t=1735689600000"


def test_create_effort_modal_ids():
    view = msg.create_effort_modal()
    assert view["callback_id"] == msg.CREATE_EFFORT_CALLBACK
    ids = [(b["block_id"], b["element"]["action_id"]) for b in view["blocks"]]
    assert ids == [
        ("effort_name_block", "effort_name_input"),
        ("workstreams_block", "workstreams_input"),
        ("description_block", "description_input"),
    ]
    assert view["blocks"][2]["optional"] is True
    assert view["blocks"][0]["element"]["max_length"] == 150
    assert "max_length" not in view["blocks"][1]["element"]


def test_truncate_keeps_short_text_and_marks_cut_text():
    assert truncate("Roadmap", 150) == "Roadmap"
    cut = truncate("y" * 200, 150)
    assert len(cut) == 150
    assert cut.endswith("…")
    HeaderBlock(cut)

from unittest.mock import MagicMock

import pytest
import requests

from app.adapters.screenshot_chart_renderer import ScreenshotChartRenderer
from app.adapters.supabase_chart_store import SupabaseChartStore
from app.config import SlackConfig
from app.domain.charts import ChartSpec
from app.domain.enums import Theme
from app.errors import UpstreamError
from app.services.slack_client import SlackClient
from datetime import datetime, timezone


def _response(status=200, json_data=None, content=b""):
    res = MagicMock()
    res.status_code = status
    res.json.return_value = json_data
    res.content = content
    res.text = ""
    return res


def test_slack_ok_false_raises_upstream_error():
    session = MagicMock()
    session.post.return_value = _response(json_data={"ok": False, "error": "invalid_auth"})
    client = SlackClient(SlackConfig(bot_token="xoxb"), session=session)
    with pytest.raises(UpstreamError) as exc:
        client.open_view("trig", {"type": "modal"})
    assert exc.value.code == "SLACK_API_ERROR"
    assert "invalid_auth" in exc.value.message


def test_slack_transport_failure_raises_upstream_error():
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError("boom")
    client = SlackClient(SlackConfig(bot_token="xoxb"), session=session)
    with pytest.raises(UpstreamError) as exc:
        client.post_message("C1", [], text="hi")
    assert exc.value.code == "SLACK_UNAVAILABLE"


def test_open_view_uses_bot_token():
    session = MagicMock()
    session.post.return_value = _response(json_data={"ok": True})
    SlackClient(SlackConfig(bot_token="xoxb-1"), session=session).open_view("trig", {"type": "modal"})
    args, kwargs = session.post.call_args
    assert args[0] == "https://slack.com/api/views.open"
    assert kwargs["headers"]["Authorization"] == "Bearer xoxb-1"
    assert kwargs["json"]["trigger_id"] == "trig"


def test_authorize_url_uses_user_scopes():
    client = SlackClient(SlackConfig(client_id="cid", client_secret="s"))
    url = client.authorize_url("http://app/cb", "st", ["identity.basic", "identity.team"])
    assert url.startswith("https://slack.com/oauth/v2/authorize?")
    assert "user_scope=identity.basic%2Cidentity.team" in url
    assert "state=st" in url


def test_supabase_list_and_public_url():
    session = MagicMock()
    session.headers = {}
    session.request.return_value = _response(json_data=[{"name": "g1-dark-1.png"}, {"name": None}])
    store = SupabaseChartStore("https://proj.supabase.co", "key", "effort-charts", session=session)
    assert store.list("u1", search="g1") == ["g1-dark-1.png"]
    method, url = session.request.call_args[0]
    assert (method, url) == ("POST", "https://proj.supabase.co/storage/v1/object/list/effort-charts")
    assert session.request.call_args[1]["json"]["search"] == "g1"
    assert store.public_url("u1/x.png") == "https://proj.supabase.co/storage/v1/object/public/effort-charts/u1/x.png"


def test_supabase_error_status_raises():
    session = MagicMock()
    session.headers = {}
    session.request.return_value = _response(status=500)
    store = SupabaseChartStore("https://proj.supabase.co", "key", "effort-charts", session=session)
    with pytest.raises(UpstreamError):
        store.upload("u1/x.png", b"png")


def test_screenshot_renderer_posts_render_page(monkeypatch):
    captured = {}

    def fake_post(url, json, timeout):
        captured.update(url=url, json=json)
        return _response(content=b"\x89PNG")

    monkeypatch.setattr("app.adapters.screenshot_chart_renderer.requests.post", fake_post)
    spec = ChartSpec("g1", "u1", "Q3", Theme.LIGHT, datetime(2025, 1, 1, tzinfo=timezone.utc))
    out = ScreenshotChartRenderer("http://shots/screenshot", "http://app/").render(spec)
    assert out == b"\x89PNG"
    assert captured["json"]["url"] == "http://app/render/g1?userId=u1&theme=light"


def test_supabase_list_reads_every_page():
    session = MagicMock()
    session.headers = {}
    full = [{"name": f"g1-dark-{i}.png"} for i in range(SupabaseChartStore.LIST_LIMIT)]
    session.request.side_effect = [_response(json_data=full), _response(json_data=[{"name": "g1-light-1.png"}])]
    store = SupabaseChartStore("https://proj.supabase.co", "key", "effort-charts", session=session)
    names = store.list("u1", search="g1")
    assert len(names) == SupabaseChartStore.LIST_LIMIT + 1
    assert names[-1] == "g1-light-1.png"
    offsets = [call[1]["json"]["offset"] for call in session.request.call_args_list]
    assert offsets == [0, SupabaseChartStore.LIST_LIMIT]

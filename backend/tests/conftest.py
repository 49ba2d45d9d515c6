import os, sys
import tempfile
import pytest
from fastapi.testclient import TestClient

# Ensure app import path
backend_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if backend_root not in sys.path:
    sys.path.insert(0, backend_root)

# Dedicated SQLite file per test session, set before the engine is created
_db_dir = tempfile.mkdtemp(prefix="effort-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+pysqlite:///{os.path.join(_db_dir, 'test.db')}")
os.environ.setdefault("PUBLIC_BASE_URL", "http://testserver")
os.environ.setdefault("SLACK_CLIENT_ID", "cid")
os.environ.setdefault("SLACK_CLIENT_SECRET", "csecret")
os.environ.setdefault("SLACK_BOT_TOKEN", "xoxb-test")

from app.main import app  # noqa: E402
from app.api import deps  # noqa: E402
from app.db.session import engine, Base, SessionLocal  # noqa: E402
from app.services.state_store import MemoryStateStore  # noqa: E402

PNG = b"\x89PNG\r\n\x1a\nfake"


class FakeChartStore:
    """In-memory bucket with the ChartStore surface."""

    def __init__(self):
        self.blobs = {}
        self.fail_uploads = False
        self.uploads = []

    def exists(self, key):
        return key in self.blobs

    def upload(self, key, data, content_type="image/png"):
        from app.errors import UpstreamError
        if self.fail_uploads:
            raise UpstreamError("CHART_UPLOAD_FAILED", "bucket unavailable")
        self.uploads.append(key)
        self.blobs[key] = data

    def list(self, folder, search=""):
        prefix = f"{folder}/"
        return sorted(
            k[len(prefix):] for k in self.blobs
            if k.startswith(prefix) and "/" not in k[len(prefix):] and search in k[len(prefix):]
        )

    def remove(self, keys):
        for key in keys:
            self.blobs.pop(key, None)

    def read(self, key):
        return self.blobs.get(key)

    def public_url(self, key):
        return f"http://blobs.test/{key}"


class FakeRenderer:
    name = "fake"

    def __init__(self):
        self.calls = []

    def render(self, spec):
        self.calls.append(spec)
        return PNG


class FakeSlackClient:
    def __init__(self):
        from app.config import SlackConfig
        self.config = SlackConfig(bot_token="xoxb-test", client_id="cid", client_secret="csecret")
        self.opened_views = []
        self.identity_user = "U123"
        self.identity_team = "T123"

    def open_view(self, trigger_id, view):
        self.opened_views.append((trigger_id, view))
        return {"ok": True}

    def authorize_url(self, redirect_uri, state, user_scopes):
        return f"https://slack.com/oauth/v2/authorize?state={state}&redirect_uri={redirect_uri}"

    def exchange_code(self, code, redirect_uri):
        return {"ok": True, "authed_user": {"id": self.identity_user, "access_token": f"xoxp-{code}"}}

    def identity(self, user_token):
        return {"ok": True, "user": {"id": self.identity_user}, "team": {"id": self.identity_team}}


@pytest.fixture
def chart_store():
    return FakeChartStore()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def slack_client():
    return FakeSlackClient()


@pytest.fixture
def state_store():
    return MemoryStateStore()


@pytest.fixture(scope="function")  # fresh DB per test
def client(chart_store, renderer, slack_client, state_store):
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[deps.get_chart_store] = lambda: chart_store
    app.dependency_overrides[deps.get_chart_renderer] = lambda: renderer
    app.dependency_overrides[deps.get_screenshot_renderer] = lambda: renderer
    app.dependency_overrides[deps.get_slack_client] = lambda: slack_client
    app.dependency_overrides[deps.get_state_store] = lambda: state_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def db_session(client):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def login(client, email="owner@example.com", password="pass123"):
    r = client.post('/auth/token', data={'username': email, 'password': password})
    assert r.status_code == 200, r.text
    return {'Authorization': f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def auth_headers(client):
    return lambda email="owner@example.com": login(client, email)

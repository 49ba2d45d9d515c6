"""FastAPI application entrypoint.

Responsibilities kept minimal:
  * App / lifespan initialization
  * Router registration (auth, efforts, shares, preferences, charts, render, slack)
  * Cross-cutting concerns: logging, metrics middleware & exception handlers
"""

from contextlib import asynccontextmanager
import logging
import time
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from . import db  # noqa: F401 ensure models imported (register models before create_all)
from .api.auth import router as auth_router
from .api.charts import router as charts_router, blob_router as chart_blob_router
from .api.deps import get_state_store
from .api.efforts import router as efforts_router
from .api.preferences import router as preferences_router
from .api.render import router as render_router
from .api.shares import router as shares_router
from .api.slack import router as slack_router
from .config import get_settings
from .db.session import engine, Base
from .errors import BaseAppException
from .logging_setup import configure_logging
from .metrics import REQUEST_COUNT, REQUEST_LATENCY
from .services.state_store import RedisStateStore

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - simple startup path
    """Initialize database schema (idempotent for tests)."""
    Base.metadata.create_all(bind=engine)
    logger.info("effort graph API started")
    yield


app = FastAPI(title="Effort Graph API", version="0.1.0", lifespan=lifespan)

# --- CORS (for local frontend dev) ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_allow_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Register routers once ---
app.include_router(auth_router)
app.include_router(efforts_router)
app.include_router(shares_router)
app.include_router(preferences_router)
app.include_router(charts_router)
app.include_router(chart_blob_router)
app.include_router(render_router)
app.include_router(slack_router)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    method = request.method
    started = time.perf_counter()
    response: Response = await call_next(request)
    elapsed = time.perf_counter() - started
    # route template keeps ids and tokens out of the label set
    route = request.scope.get("route")
    path_label = getattr(route, "path", None) or "unmatched"
    REQUEST_LATENCY.labels(method=method, path=path_label).observe(elapsed)
    REQUEST_COUNT.labels(method=method, path=path_label, status=str(response.status_code)).inc()
    return response


@app.get("/metrics")
def metrics():  # pragma: no cover - external scrape
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.exception_handler(BaseAppException)
async def app_exception_handler(request: Request, exc: BaseAppException):
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content={"detail": {"code": exc.code, "message": exc.message}},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": {"code": "INTERNAL_ERROR", "message": "unexpected error"}},
    )


@app.get("/healthz")
async def health():
    health = {"status": "ok"}
    settings = get_settings()
    state_store = app.dependency_overrides.get(get_state_store, get_state_store)()
    backend = 'redis' if isinstance(state_store, RedisStateStore) else 'memory'
    health['oauthStateBackend'] = backend
    if backend == 'redis':
        # PING (non-fatal)
        try:
            pong = state_store.redis.ping()
            health['redis'] = 'up' if pong else 'down'
        except Exception:
            health['redis'] = 'error'
    health['chartStore'] = settings.chart_store_backend
    return health

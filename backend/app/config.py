"""Process-wide configuration.

Built once from the environment by ``get_settings()`` and handed to the
services that need it (Slack client, chart store, auth) instead of being read
ad hoc at call sites.
"""
from __future__ import annotations
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional, Tuple

# --- Optional .env loading (opt-in via APP_LOAD_DOTENV) ---
if os.getenv("APP_LOAD_DOTENV") in {"1", "true", "TRUE", "yes", "on"}:  # pragma: no cover
    from dotenv import load_dotenv
    # Respect existing env (override=False). Default search walks up from CWD.
    load_dotenv(override=False)


@dataclass(frozen=True)
class SlackConfig:
    bot_token: str = ""
    signing_secret: str = ""
    client_id: str = ""
    client_secret: str = ""

    @classmethod
    def from_env(cls) -> "SlackConfig":
        return cls(
            bot_token=os.getenv("SLACK_BOT_TOKEN", ""),
            signing_secret=os.getenv("SLACK_SIGNING_SECRET", ""),
            client_id=os.getenv("SLACK_CLIENT_ID", ""),
            client_secret=os.getenv("SLACK_CLIENT_SECRET", ""),
        )

    @property
    def oauth_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass(frozen=True)
class Settings:
    slack: SlackConfig = field(default_factory=SlackConfig)
    public_base_url: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None
    chart_bucket: str = "effort-charts"
    chart_store_backend: str = "local"
    chart_store_dir: str = "./chart-cache"
    screenshot_service_url: Optional[str] = None
    screenshot_timeout_seconds: float = 20.0
    jwt_secret_key: str = "dev-secret-change-me"  # in production load from env
    access_token_expire_minutes: int = 60
    oauth_state_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    cors_allow_origins: Tuple[str, ...] = ("http://localhost:3000",)

    @classmethod
    def from_env(cls) -> "Settings":
        supabase_url = os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL")
        backend = os.getenv("CHART_STORE_BACKEND") or ("supabase" if supabase_url else "local")
        cors_env = os.getenv("CORS_ALLOW_ORIGINS")
        if cors_env:
            origins = tuple(o.strip() for o in cors_env.split(",") if o.strip())
        else:
            origins = ("http://localhost:3000",)
        base_url = os.getenv("PUBLIC_BASE_URL")
        return cls(
            slack=SlackConfig.from_env(),
            public_base_url=base_url.rstrip("/") if base_url else None,
            supabase_url=supabase_url.rstrip("/") if supabase_url else None,
            supabase_service_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
            chart_bucket=os.getenv("CHART_BUCKET", "effort-charts"),
            chart_store_backend=backend.lower(),
            chart_store_dir=os.getenv("CHART_STORE_DIR", "./chart-cache"),
            screenshot_service_url=os.getenv("SCREENSHOT_SERVICE_URL") or None,
            screenshot_timeout_seconds=float(os.getenv("SCREENSHOT_TIMEOUT_SECONDS", "20")),
            jwt_secret_key=os.getenv("JWT_SECRET_KEY", "dev-secret-change-me"),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")),
            oauth_state_backend=os.getenv("OAUTH_STATE_BACKEND", "memory").lower(),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            cors_allow_origins=origins,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()

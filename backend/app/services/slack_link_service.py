"""Linking a Slack identity to an app account.

``unlinked -> link-pending``: a command from an unknown Slack user answers with
a link button (``/api/slack/link``), which stores an OAuth state and sends the
user to Slack. ``link-pending -> linked``: the OAuth callback upserts the
SlackUser row keyed by ``slack_user_id``, so the latest link wins. When nobody
is logged in at callback time the identity waits in an encrypted cookie until
``/api/slack/link/complete``.
"""
from __future__ import annotations
import base64
import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..db import models
from ..errors import BaseAppException
from .encryption_service import EncryptionService, get_encryption_service
from .slack_client import SlackClient
from .state_store import StateStore

logger = logging.getLogger(__name__)


class SlackLinkError(BaseAppException):
    """``code`` doubles as the ``?error=`` value of the redirect."""
    def __init__(self, code: str, message: str):
        super().__init__(code, message, http_status=400)


@dataclass(frozen=True)
class SlackIdentity:
    slack_user_id: str
    slack_team_id: str
    access_token: Optional[str] = None


class SlackLinkService:
    USER_SCOPES = ["identity.basic", "identity.team"]
    PENDING_COOKIE = "slack_oauth_data"
    PENDING_TTL_SECONDS = 600

    def __init__(
        self,
        client: SlackClient,
        state_store: StateStore,
        encryption: EncryptionService | None = None,
        time_provider: Callable[[], float] = time.time,
    ):
        self.client = client
        self.state_store = state_store
        self.encryption = encryption or get_encryption_service()
        self.time_provider = time_provider

    # --- OAuth round trip ---
    def start(self, redirect_uri: str, slack_user_id: Optional[str] = None) -> str:
        if not self.client.config.oauth_configured:
            raise SlackLinkError("slack_not_configured", "Slack OAuth credentials not configured")
        state = base64.urlsafe_b64encode(secrets.token_bytes(18)).decode("utf-8").rstrip("=")
        self.state_store.put(state, slack_user_id or "", self.time_provider())
        return self.client.authorize_url(redirect_uri, state, self.USER_SCOPES)

    def complete_oauth(self, code: str, state: Optional[str], redirect_uri: str) -> SlackIdentity:
        if not state or self.state_store.pop(state) is None:
            raise SlackLinkError("invalid_state", "OAuth state not found or expired")
        try:
            token_data = self.client.exchange_code(code, redirect_uri)
        except BaseAppException as e:
            logger.error("Slack OAuth error: %s", e.message)
            raise SlackLinkError("slack_oauth_failed", e.message)
        user_token = (token_data.get("authed_user") or {}).get("access_token") or token_data.get("access_token")
        if not user_token:
            raise SlackLinkError("slack_oauth_failed", "no user token granted")
        try:
            ident = self.client.identity(user_token)
        except BaseAppException as e:
            logger.error("Slack user identity error: %s", e.message)
            raise SlackLinkError("slack_user_failed", e.message)
        return SlackIdentity(
            slack_user_id=ident["user"]["id"],
            slack_team_id=ident["team"]["id"],
            access_token=user_token,
        )

    # --- persistence ---
    def link(self, db: Session, user_id: str, identity: SlackIdentity) -> models.SlackUser:
        token = self.encryption.encrypt(identity.access_token) if identity.access_token else None
        row = db.query(models.SlackUser).filter(models.SlackUser.slack_user_id == identity.slack_user_id).first()
        if row:
            if row.user_id != user_id:
                logger.info("relinking slack user %s from %s to %s", identity.slack_user_id, row.user_id, user_id)
            row.user_id = user_id
            row.slack_team_id = identity.slack_team_id
            row.slack_access_token_encrypted = token
            row.updated_at = datetime.now(timezone.utc)
        else:
            row = models.SlackUser(
                user_id=user_id,
                slack_user_id=identity.slack_user_id,
                slack_team_id=identity.slack_team_id,
                slack_access_token_encrypted=token,
            )
            db.add(row)
        db.commit()
        db.refresh(row)
        return row

    @staticmethod
    def linked_user(db: Session, slack_user_id: str) -> Optional[models.SlackUser]:
        if not slack_user_id:
            return None
        return db.query(models.SlackUser).filter(models.SlackUser.slack_user_id == slack_user_id).first()

    @staticmethod
    def link_for_user(db: Session, user_id: str) -> Optional[models.SlackUser]:
        return (
            db.query(models.SlackUser)
            .filter(models.SlackUser.user_id == user_id)
            .order_by(models.SlackUser.updated_at.desc())
            .first()
        )

    # --- pending link cookie ---
    def pending_cookie_value(self, identity: SlackIdentity) -> str:
        return self.encryption.encrypt_json({
            "slack_user_id": identity.slack_user_id,
            "slack_team_id": identity.slack_team_id,
            "slack_access_token": identity.access_token,
        })

    def read_pending(self, cookie: Optional[str]) -> Optional[SlackIdentity]:
        if not cookie:
            return None
        try:
            data = self.encryption.decrypt_json(cookie, ttl=self.PENDING_TTL_SECONDS)
        except ValueError:
            logger.warning("discarding unreadable or expired pending Slack link cookie")
            return None
        return SlackIdentity(
            slack_user_id=data["slack_user_id"],
            slack_team_id=data["slack_team_id"],
            access_token=data.get("slack_access_token"),
        )

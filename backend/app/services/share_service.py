"""Link-based sharing: one canonical active share token per graph."""
from __future__ import annotations
import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import models
from ..errors import NotFoundError

logger = logging.getLogger(__name__)

TOKEN_BYTES = 18


def new_share_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def share_url(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/share/{token}"


class ShareService:
    def __init__(self, db: Session):
        self.db = db

    def active_share(self, graph_id: str) -> Optional[models.SharedEffort]:
        return (
            self.db.query(models.SharedEffort)
            .filter(models.SharedEffort.graph_id == graph_id, models.SharedEffort.is_active.is_(True))
            .order_by(models.SharedEffort.created_at.asc())
            .first()
        )

    def get_or_create(self, graph_id: str, created_by: Optional[str]) -> models.SharedEffort:
        """At most one insert; a concurrent insert that wins the unique index is returned instead."""
        existing = self.active_share(graph_id)
        if existing:
            return existing
        share = models.SharedEffort(graph_id=graph_id, share_token=new_share_token(), created_by=created_by)
        self.db.add(share)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            winner = self.active_share(graph_id)
            if winner is None:
                raise
            return winner
        self.db.refresh(share)
        logger.info("created share for graph %s", graph_id)
        return share

    def resolve(self, token: str) -> models.SharedEffort:
        share = (
            self.db.query(models.SharedEffort)
            .filter(models.SharedEffort.share_token == token, models.SharedEffort.is_active.is_(True))
            .first()
        )
        if not share:
            raise NotFoundError("SHARE_NOT_FOUND", "This share link is invalid or has been removed")
        return share

    def record_view(self, share: models.SharedEffort, via_slack: bool = False) -> None:
        """Best-effort view tracking; never raises."""
        try:
            if via_slack:
                share.slack_view_count = (share.slack_view_count or 0) + 1
            else:
                share.view_count = (share.view_count or 0) + 1
            share.last_viewed_at = datetime.now(timezone.utc)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("failed to record view for share %s", share.id)

    def deactivate(self, share: models.SharedEffort) -> None:
        share.is_active = False
        self.db.commit()

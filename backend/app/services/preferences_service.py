from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ..db import models
from ..domain.enums import DEFAULT_THEME, Theme


def get_preferences(db: Session, user_id: str) -> models.UserPreferences:
    """Preferences row for the user, created with the default theme on first read."""
    prefs = db.query(models.UserPreferences).filter(models.UserPreferences.user_id == user_id).first()
    if prefs:
        return prefs
    prefs = models.UserPreferences(user_id=user_id, theme=DEFAULT_THEME.value)
    db.add(prefs)
    db.commit()
    db.refresh(prefs)
    return prefs


def set_theme(db: Session, user_id: str, theme: Theme) -> models.UserPreferences:
    prefs = get_preferences(db, user_id)
    prefs.theme = theme.value
    prefs.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(prefs)
    return prefs


def resolve_theme(db: Session, user_id: Optional[str], owner_id: str) -> Theme:
    """Theme of ``user_id`` if given, else of the graph owner; dark when unset."""
    lookup = user_id or owner_id
    prefs = db.query(models.UserPreferences).filter(models.UserPreferences.user_id == lookup).first()
    if not prefs:
        return DEFAULT_THEME
    try:
        return Theme(prefs.theme)
    except ValueError:
        return DEFAULT_THEME

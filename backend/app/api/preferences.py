from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import models
from ..db.session import get_db
from ..domain.enums import Theme
from ..services import preferences_service
from .auth import get_current_user

router = APIRouter(prefix="/api/preferences", tags=["preferences"])


class PreferencesIn(BaseModel):
    theme: Theme


def _out(prefs: models.UserPreferences) -> dict:
    return {"theme": prefs.theme, "updatedAt": prefs.updated_at}


@router.get("")
def get_preferences(db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    return _out(preferences_service.get_preferences(db, current_user.id))


@router.put("")
def put_preferences(body: PreferencesIn, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    return _out(preferences_service.set_theme(db, current_user.id, body.theme))

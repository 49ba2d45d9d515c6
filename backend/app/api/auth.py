from fastapi import APIRouter, Depends, Header, Cookie
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from sqlalchemy.orm import Session
from ..db.session import get_db
from ..services.auth_service import AuthService, create_access_token, decode_access_token
from ..db import models
from ..errors import AuthorizationError

router = APIRouter(prefix="/auth", tags=["auth"])

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)

@router.post("/token")
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    auth = AuthService(db)
    # Auto-register convenience for dev if user absent
    auth.register_if_absent(form_data.username, form_data.password)
    user = auth.authenticate_user(form_data.username, form_data.password)
    if not user:
        raise AuthorizationError("INVALID_CREDENTIALS", "invalid credentials")
    token = create_access_token(user.id)
    return {"access_token": token, "token_type": "bearer"}


def _user_for_token(db: Session, token: str | None) -> models.User | None:
    if not token:
        return None
    sub = decode_access_token(token)
    if not sub:
        return None
    return db.query(models.User).filter(models.User.id == sub).first()


def get_current_user(db: Session = Depends(get_db), token: str | None = Depends(oauth2_scheme)) -> models.User:
    if not token:
        raise AuthorizationError()
    user = _user_for_token(db, token)
    if not user:
        raise AuthorizationError("INVALID_TOKEN", "invalid token")
    return user


def get_current_user_optional(
    db: Session = Depends(get_db),
    authorization: str | None = Header(None),
    access_token: str | None = Cookie(None),
) -> models.User | None:
    """Best-effort user retrieval from a bearer header or the ``access_token`` cookie; None otherwise."""
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(None, 1)[1]
    return _user_for_token(db, token or access_token)

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session
from buspos.core.config import settings
from buspos.core.errors import Unauthorized, Forbidden
from buspos.db.session import get_db
from buspos.core.security import decode_token
from buspos.models.user import User

bearer = HTTPBearer(auto_error=False)


def session_token(request: Request, creds: HTTPAuthorizationCredentials | None) -> str | None:
    """Session cookie first, then Authorization: Bearer for API clients."""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token
    if creds:
        return creds.credentials
    return None


def get_optional_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User | None:
    token = session_token(request, creds)
    if not token:
        return None
    try:
        payload = decode_token(token)
    except JWTError:
        return None
    user = db.get(User, payload.get("sub"))
    if not user or not user.is_active:
        return None
    return user


def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    if user is None:
        raise Unauthorized("Unauthorized")
    return user


def require_roles(*roles: str):
    def _guard(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise Forbidden("Forbidden")
        return user
    return _guard

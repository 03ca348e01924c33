from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from buspos.db.session import get_db
from buspos.core.config import settings
from buspos.core.security import create_session_token
from buspos.schemas.auth import RegisterRequest, LoginRequest
from buspos.models.user import User
from buspos.services.auth_service import register_user, authenticate
from buspos.api.deps import get_current_user

router = APIRouter(tags=["auth"])


def _user_out(u: User) -> dict:
    return {"id": u.id, "name": u.name, "email": u.email, "role": u.role}


@router.post("/auth/register", status_code=201)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    user = register_user(db, body.name, body.email, body.password, body.role)
    return {"message": "User registered successfully", "user": _user_out(user)}


@router.post("/auth/login")
def login(body: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = authenticate(db, body.email, body.password)
    token = create_session_token(user.id, user.role)
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    return {"user": _user_out(user), "token": token}


@router.post("/auth/logout")
def logout(response: Response):
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"ok": True}


@router.get("/auth/me")
def me(me: User = Depends(get_current_user)):
    """Return current user info including role."""
    return _user_out(me)

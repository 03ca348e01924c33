"""Path-level role gate, run before routing.

Page paths (/admin, /vendor-pos, /auth) redirect; admin-only API prefixes answer
401 JSON. Every other API route checks its own session via api.deps.
"""
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse
from jose import JWTError

from buspos.core.config import settings
from buspos.core.security import decode_token

PUBLIC_API_PREFIXES = ("/api/routes/public", "/api/trips/public", "/api/seats")
ADMIN_API_PREFIXES = ("/api/reports", "/api/vendors")

HOME_BY_ROLE = {"ADMIN": "/admin", "VENDOR": "/vendor-pos"}


def _session_role(request: Request) -> str | None:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        auth = request.headers.get("authorization", "")
        if auth.lower().startswith("bearer "):
            token = auth[7:].strip()
    if not token:
        return None
    try:
        return decode_token(token).get("role")
    except JWTError:
        return None


def is_public_path(request: Request) -> bool:
    path = request.url.path
    if path.startswith(PUBLIC_API_PREFIXES) or path.startswith("/machine"):
        return True
    # kiosk screens list machines without a session
    return path.startswith("/api/machines") and request.query_params.get("public") == "true"


async def role_gate(request: Request, call_next):
    path = request.url.path
    if is_public_path(request):
        return await call_next(request)

    role = _session_role(request)

    if path.startswith(ADMIN_API_PREFIXES):
        if role != "ADMIN":
            return JSONResponse({"error": "Unauthorized"}, status_code=401)
        return await call_next(request)

    if path.startswith("/auth"):
        if role:
            return RedirectResponse(HOME_BY_ROLE.get(role, "/search"), status_code=307)
        return await call_next(request)

    is_admin_page = path.startswith("/admin")
    is_vendor_page = path.startswith("/vendor-pos")
    if is_admin_page or is_vendor_page:
        if not role:
            return RedirectResponse("/auth/login?" + urlencode({"callbackUrl": path}), status_code=307)
        if is_admin_page and role != "ADMIN":
            return RedirectResponse("/", status_code=307)
        if is_vendor_page and role not in ("VENDOR", "ADMIN"):
            return RedirectResponse("/", status_code=307)

    return await call_next(request)

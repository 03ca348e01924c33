import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from buspos.core.config import settings
from buspos.core.errors import BusPosError
from buspos.core.logging import configure_logging
from buspos.api.gate import role_gate
from buspos.api.v1.api import api_router
from buspos.realtime import router as realtime_router

configure_logging()
logger = logging.getLogger("buspos")

app = FastAPI(title=settings.APP_NAME)
# registered before CORS so CORS wraps it and preflights never hit the gate
app.middleware("http")(role_gate)

# CORS: use CORS_ORIGINS from env in production; default to localhost for dev
_default_origins = [
    "http://127.0.0.1:3000", "http://localhost:3000",
    "http://127.0.0.1:8080", "http://localhost:8080",
]
_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] if settings.CORS_ORIGINS else _default_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BusPosError)
async def _buspos_error(request: Request, exc: BusPosError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query"))
    msg = first.get("msg", "Invalid request")
    return JSONResponse({"error": f"{field}: {msg}" if field else msg}, status_code=400)


@app.exception_handler(Exception)
async def _unhandled(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal Server Error"}, status_code=500)


app.include_router(api_router)
app.include_router(realtime_router)


@app.get("/health")
def health():
    return {"status": "ok"}


# Optional prebuilt UI bundle so one URL serves API + UI
if settings.UI_DIR and Path(settings.UI_DIR).is_dir():
    app.mount("/", StaticFiles(directory=settings.UI_DIR, html=True), name="ui")

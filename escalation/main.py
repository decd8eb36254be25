import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from escalation.api.router import router
from escalation.core.config import get_settings
from escalation.core.errors import (
    BadRequest,
    Conflict,
    Forbidden,
    InternalError,
    InvalidState,
    LeagueError,
    NotFound,
    RateLimited,
    Unauthorized,
)
from escalation.db.session import SessionLocal
from escalation.schemas.common import ErrorOut

logger = logging.getLogger(__name__)

settings = get_settings()
logging.getLogger("escalation").setLevel(settings.LOG_LEVEL.upper())

origin_regex = settings.CORS_ORIGIN_REGEX.strip() if settings.CORS_ORIGIN_REGEX else None
if origin_regex == "":
    origin_regex = None

allowed_origins = [
    origin.strip()
    for origin in settings.CORS_ORIGINS.split(",")
    if origin.strip()
]
if settings.SITE_URL not in allowed_origins:
    allowed_origins.append(settings.SITE_URL)

STATUS_BY_ERROR = {
    BadRequest: 400,
    NotFound: 404,
    Conflict: 400,
    Unauthorized: 401,
    Forbidden: 403,
    InvalidState: 400,
    RateLimited: 429,
    InternalError: 500,
}

app = FastAPI(title="Escalation League", version="1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_origin_regex=origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


def _error_response(status_code: int, message: str) -> JSONResponse:
    body = ErrorOut(status_code=status_code, status_message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


def status_for(exc: LeagueError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 500


@app.exception_handler(LeagueError)
def handle_league_error(request: Request, exc: LeagueError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.warning(
            "request_failed method=%s path=%s detail=%s",
            request.method,
            request.url.path,
            exc.message,
        )
    else:
        logger.info(
            "request_rejected method=%s path=%s status=%s detail=%s",
            request.method,
            request.url.path,
            status_code,
            exc.message,
        )
    return _error_response(status_code, exc.message)


@app.exception_handler(RequestValidationError)
def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    location = ".".join(str(part) for part in errors[0]["loc"]) if errors else "request"
    return _error_response(400, f"Invalid request: {location}")


@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unexpected_error")
    return _error_response(500, "Internal server error")


@app.get("/health")
def health() -> dict:
    return {"ok": True, "env": settings.APP_ENV}


@app.get("/health/db")
def health_db():
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        return {"ok": True, "env": settings.APP_ENV, "db": "up"}
    except OperationalError as exc:
        logger.warning("health_db_unavailable detail=%s", str(exc))
        return JSONResponse(
            status_code=503,
            content={
                "ok": False,
                "env": settings.APP_ENV,
                "db": "down",
                "detail": "db_unavailable",
            },
        )

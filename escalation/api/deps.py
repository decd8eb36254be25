from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from fastapi import Depends, Header, Request
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.orm import Session

from escalation.core.config import get_settings
from escalation.core.errors import InternalError, LeagueError, RateLimited, Unauthorized
from escalation.core.security import decode_token
from escalation.db.session import get_db
from escalation.models import User
from escalation.services.rate_limit import rate_limiter

logger = logging.getLogger(__name__)


@contextmanager
def unexpected_errors(message: str) -> Iterator[None]:
    """Let classified errors through; turn anything else into a fixed 500."""
    try:
        yield
    except LeagueError:
        raise
    except Exception as exc:
        logger.exception("unexpected_error operation=%r", message)
        raise InternalError(message) from exc


def _provision_user(db: Session, payload: dict) -> User:
    subject = payload.get("sub")
    email = payload.get("email")
    if not subject:
        raise Unauthorized("Invalid token")

    user = db.execute(select(User).where(User.auth_subject == str(subject))).scalar_one_or_none()
    if user:
        return user
    if not email:
        raise Unauthorized("Invalid token")

    user = User(
        auth_subject=str(subject),
        email=email,
        name=payload.get("name") or email.split("@")[0],
        picture=payload.get("picture"),
        last_login_at=datetime.now(timezone.utc),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user_provisioned user_id=%s", user.id)
    return user


def get_current_user(
    db: Session = Depends(get_db), authorization: str | None = Header(default=None)
) -> User:
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("Unauthorized - Please log in")
    token = authorization.split(" ", 1)[1]
    try:
        payload = decode_token(token)
    except JWTError:
        raise Unauthorized("Invalid token") from None
    return _provision_user(db, payload)


def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    settings = get_settings()
    if not x_admin_token or x_admin_token != settings.ADMIN_TOKEN:
        raise Unauthorized("Invalid admin token")


def _get_client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else "unknown"
    return f"join:{ip}"


def enforce_join_rate_limit(request: Request) -> None:
    settings = get_settings()
    allowed = rate_limiter.allow(
        _get_client_key(request),
        settings.JOIN_RATE_LIMIT_MAX,
        settings.JOIN_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        raise RateLimited("Too many join attempts, try again later")

from __future__ import annotations

import re
import secrets
from typing import Any

from jose import jwt
from passlib.context import CryptContext

from escalation.core.config import get_settings

SHARE_TOKEN_BYTES = 16
SHARE_TOKEN_PATTERN = re.compile(r"^[0-9a-f]{32}$", re.IGNORECASE)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def decode_token(token: str) -> dict[str, Any]:
    """Decode a bearer token issued by the identity provider.

    Raises ``jose.JWTError`` when the signature, expiry, audience or issuer
    does not check out.
    """
    settings = get_settings()
    options = {"verify_aud": settings.AUTH_AUDIENCE is not None}
    return jwt.decode(
        token,
        settings.AUTH_JWT_SECRET,
        algorithms=[settings.AUTH_JWT_ALGORITHM],
        audience=settings.AUTH_AUDIENCE,
        issuer=settings.AUTH_ISSUER,
        options=options,
    )


def generate_share_token(length: int = SHARE_TOKEN_BYTES) -> str:
    return secrets.token_hex(length)


def is_valid_share_token(token: str | None) -> bool:
    if not token:
        return False
    return bool(SHARE_TOKEN_PATTERN.match(token))

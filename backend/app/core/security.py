"""
Password hashing and JWT helpers.

Pure functions only; DB lookups live in services/auth_service.py.
"""
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

TOKEN_TYPE = "access"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def verify_and_rehash(plain: str, hashed: str) -> tuple[bool, str | None]:
    """
    Check *plain* against *hashed*.

    The second item is a fresh hash when the stored one uses outdated
    parameters, otherwise None.
    """
    return pwd_context.verify_and_update(plain, hashed)


def create_access_token(
    subject: Any,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """
    Sign a bearer token for *subject* (a user id).

    extra_claims are informational for the client (e.g. username); the API
    itself only trusts ``sub``.
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims: dict[str, Any] = dict(extra_claims or {})
    claims.update({
        "sub": str(subject),
        "type": TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    })
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> str | None:
    """Subject of a valid access token; None if expired, forged or malformed."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    if claims.get("type", TOKEN_TYPE) != TOKEN_TYPE:
        return None
    subject = claims.get("sub")
    return subject if isinstance(subject, str) else None

"""
Auth dependencies — shared across protected and visibility-aware endpoints.

    get_current_user   — bearer token required (401 otherwise)
    get_optional_user  — anonymous allowed; returns None without a valid token
    get_current_admin  — bearer token of an admin user (403 otherwise)
"""
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.core.security import decode_access_token
from app.db.models import User
from app.db.session import get_db

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def _user_from_token(db: Session, token: str | None) -> User | None:
    """Resolve a bearer token to an active User, or None."""
    if not token:
        return None

    sub = decode_access_token(token)
    if sub is None:
        return None

    try:
        user_id = UUID(sub)
    except (ValueError, AttributeError):
        return None

    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        return None
    return user


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Decode the bearer JWT and return the corresponding active User.

    Raises 401 on any failure (missing/invalid token, unknown user, inactive).
    """
    user = _user_from_token(db, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_optional_user(
    token: str | None = Depends(optional_oauth2_scheme),
    db: Session = Depends(get_db),
) -> User | None:
    return _user_from_token(db, token)


def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user

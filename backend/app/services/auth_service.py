"""
Account business logic — signup, login, own-profile edits, token issuance.
"""
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.security import create_access_token, hash_password, verify_and_rehash
from app.db.models import User
from app.schemas.auth import ProfileUpdateRequest

logger = logging.getLogger(__name__)


class DuplicateUserError(Exception):
    """Raised when signup conflicts with an existing username or email."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"A user with that {field} already exists")


def _normalise(value: str) -> str:
    return value.strip().lower()


def create_user(db: Session, username: str, email: str, password: str) -> User:
    """
    Register a new account.

    Username and email are stored lower-cased. Taken values raise
    DuplicateUserError, whether caught by the pre-check or by the unique
    index on flush.
    """
    username, email = _normalise(username), _normalise(email)

    clash = (
        db.query(User.username)
        .filter(or_(User.username == username, User.email == email))
        .first()
    )
    if clash is not None:
        raise DuplicateUserError("username" if clash.username == username else "email")

    user = User(username=username, email=email, password_hash=hash_password(password))
    db.add(user)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateUserError("username or email") from exc

    db.commit()
    db.refresh(user)
    logger.info("User %s signed up", user.id)
    return user


def authenticate_user(db: Session, login: str, password: str) -> User | None:
    """
    Resolve *login* (username or email) plus password to an active user.

    Hashes stored with outdated bcrypt parameters are upgraded in place.
    """
    identifier = _normalise(login)
    user = (
        db.query(User)
        .filter(or_(User.username == identifier, User.email == identifier))
        .first()
    )
    if user is None or not user.is_active:
        return None

    valid, new_hash = verify_and_rehash(password, user.password_hash)
    if not valid:
        return None

    if new_hash is not None:
        user.password_hash = new_hash
        db.commit()
        logger.info("Upgraded password hash for user %s", user.id)
    return user


def update_profile(db: Session, user: User, payload: ProfileUpdateRequest) -> User:
    """Apply the fields present in *payload* to the caller's own account."""
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def issue_access_token(user: User) -> str:
    return create_access_token(subject=user.id, extra_claims={"username": user.username})

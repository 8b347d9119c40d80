"""
Public user profiles — search, profile summary, top reviewers.
"""
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.db.models import Review, ReviewStatusEnum, User
from app.services.pagination import paginate
from app.services.rating_service import round_rating
from app.services.watchlist_service import count_visible_items


class UserNotFoundError(Exception):
    """Raised when the target user does not exist or is deactivated."""


def map_public_user(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "profile_picture": user.profile_picture,
        "bio": user.bio,
        "join_date": user.created_at,
    }


def get_active_user_or_raise(db: Session, user_id: UUID) -> User:
    user = (
        db.query(User)
        .filter(User.id == user_id, User.is_active.is_(True))
        .first()
    )
    if user is None:
        raise UserNotFoundError("User not found")
    return user


def search_users(
    db: Session,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[dict], dict[str, int]]:
    """Active users, newest first, optionally matching username/email."""
    query = db.query(User).filter(User.is_active.is_(True))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(User.username.ilike(pattern), User.email.ilike(pattern)))

    query = query.order_by(User.created_at.desc(), User.id.asc())
    rows, meta = paginate(query, page, limit)
    return [map_public_user(u) for u in rows], meta


def count_approved_reviews(db: Session, user_id: UUID) -> int:
    return (
        db.query(func.count(Review.id))
        .filter(Review.user_id == user_id, Review.status == ReviewStatusEnum.APPROVED)
        .scalar()
    ) or 0


def get_user_profile(db: Session, user_id: UUID, viewer_id: UUID | None = None) -> dict:
    """
    Public profile plus counts. watchlist_count covers every entry for the
    owner and only public entries for anyone else.
    """
    user = get_active_user_or_raise(db, user_id)
    profile = map_public_user(user)
    profile["review_count"] = count_approved_reviews(db, user.id)
    profile["watchlist_count"] = count_visible_items(db, user.id, viewer_id)
    return profile


def get_top_reviewers(db: Session, limit: int = 10) -> list[dict]:
    """Users ranked by number of approved reviews."""
    review_count = func.count(Review.id).label("review_count")
    average = func.avg(Review.rating).label("average_rating")
    rows = (
        db.query(User, review_count, average)
        .join(Review, Review.user_id == User.id)
        .filter(Review.status == ReviewStatusEnum.APPROVED, User.is_active.is_(True))
        .group_by(User.id)
        .order_by(review_count.desc(), User.username.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "user": map_public_user(user),
            "review_count": count,
            "average_rating": round_rating(float(avg)) if avg is not None else 0.0,
        }
        for user, count, avg in rows
    ]

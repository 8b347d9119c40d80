"""
Movie review business logic.

Every write that can move a movie's rating aggregate ends with an explicit
call to the *refresh* callback (rating_service.refresh_movie_rating by
default), in the same session, before commit.
"""
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models import Movie, Review, ReviewHelpfulVote, ReviewStatusEnum, User
from app.schemas.common import SortOrder
from app.schemas.reviews import CreateReviewRequest, ReviewSortField, UpdateReviewRequest
from app.services.movie_service import MovieNotFoundError, map_movie_brief
from app.services.pagination import paginate
from app.services.rating_service import refresh_movie_rating

logger = logging.getLogger(__name__)

RatingRefresher = Callable[[Session, UUID], object]

SORT_COLUMNS = {
    ReviewSortField.CREATED_AT: Review.created_at,
    ReviewSortField.RATING: Review.rating,
    ReviewSortField.HELPFUL_VOTES: Review.helpful_votes,
}


class ReviewNotFoundError(Exception):
    """Raised when a review does not exist."""


class NotReviewOwnerError(Exception):
    """Raised when a user tries to modify another user's review."""


class DuplicateReviewError(Exception):
    """Raised when a user already reviewed this movie."""


class SelfVoteError(Exception):
    """Raised when a user votes on their own review."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def map_review_author(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "profile_picture": user.profile_picture,
        "join_date": user.created_at,
    }


def build_review_dict(review: Review, user: User | None = None, movie: Movie | None = None) -> dict:
    return {
        "id": review.id,
        "user_id": review.user_id,
        "movie_id": review.movie_id,
        "tmdb_movie_id": review.tmdb_movie_id,
        "user": map_review_author(user) if user is not None else None,
        "movie": map_movie_brief(movie) if movie is not None else None,
        "rating": review.rating,
        "review_text": review.review_text,
        "title": review.title,
        "helpful_votes": review.helpful_votes,
        "status": review.status,
        "contains_spoilers": review.contains_spoilers,
        "last_edited_at": review.last_edited_at,
        "created_at": review.created_at,
        "updated_at": review.updated_at,
    }


def _get_review_or_raise(db: Session, review_id: UUID) -> Review:
    review = db.query(Review).filter(Review.id == review_id).first()
    if review is None:
        raise ReviewNotFoundError(f"Review {review_id} not found")
    return review


def _owned_review_or_raise(db: Session, user_id: UUID, review_id: UUID) -> Review:
    review = _get_review_or_raise(db, review_id)
    if review.user_id != user_id:
        raise NotReviewOwnerError("You can only modify your own reviews")
    return review


def _hydrate(db: Session, review: Review) -> dict:
    user = db.query(User).filter(User.id == review.user_id).first()
    movie = db.query(Movie).filter(Movie.id == review.movie_id).first()
    return build_review_dict(review, user, movie)


# ── Read operations ──────────────────────────────────────────────────────────


def list_reviews(
    db: Session,
    *,
    movie_id: UUID | None = None,
    user_id: UUID | None = None,
    min_rating: float | None = None,
    max_rating: float | None = None,
    sort: ReviewSortField = ReviewSortField.CREATED_AT,
    order: SortOrder = SortOrder.DESC,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], dict[str, int]]:
    """Approved reviews with optional movie/user/rating filters, paginated."""
    query = (
        db.query(Review, User, Movie)
        .join(User, Review.user_id == User.id)
        .join(Movie, Review.movie_id == Movie.id)
        .filter(Review.status == ReviewStatusEnum.APPROVED)
    )

    if movie_id is not None:
        query = query.filter(Review.movie_id == movie_id)
    if user_id is not None:
        query = query.filter(Review.user_id == user_id)
    if min_rating is not None:
        query = query.filter(Review.rating >= min_rating)
    if max_rating is not None:
        query = query.filter(Review.rating <= max_rating)

    column = SORT_COLUMNS[sort]
    direction = column.asc() if order == SortOrder.ASC else column.desc()
    query = query.order_by(direction, Review.id.asc())

    rows, meta = paginate(query, page, limit)
    return [build_review_dict(review, user, movie) for review, user, movie in rows], meta


def get_recent_reviews(db: Session, limit: int = 10) -> list[dict]:
    """Newest approved reviews across all movies."""
    rows = (
        db.query(Review, User, Movie)
        .join(User, Review.user_id == User.id)
        .join(Movie, Review.movie_id == Movie.id)
        .filter(Review.status == ReviewStatusEnum.APPROVED)
        .order_by(Review.created_at.desc())
        .limit(limit)
        .all()
    )
    return [build_review_dict(review, user, movie) for review, user, movie in rows]


# ── Write operations ─────────────────────────────────────────────────────────


def create_review(
    db: Session,
    user_id: UUID,
    payload: CreateReviewRequest,
    refresh: RatingRefresher = refresh_movie_rating,
) -> dict:
    """Create the user's one review for a movie and refresh the movie aggregate."""
    movie = db.query(Movie).filter(Movie.id == payload.movie_id).first()
    if movie is None:
        raise MovieNotFoundError("Movie not found")

    existing = (
        db.query(Review.id)
        .filter(Review.user_id == user_id, Review.movie_id == movie.id)
        .first()
    )
    if existing is not None:
        raise DuplicateReviewError("You have already reviewed this movie")

    review = Review(
        user_id=user_id,
        movie_id=movie.id,
        tmdb_movie_id=movie.tmdb_id,
        rating=payload.rating,
        review_text=payload.review_text,
        title=payload.title,
        contains_spoilers=payload.contains_spoilers,
    )
    db.add(review)

    try:
        db.flush()
    except IntegrityError as exc:
        # Lost a race with a concurrent create for the same (user, movie).
        db.rollback()
        raise DuplicateReviewError("You have already reviewed this movie") from exc

    refresh(db, movie.id)
    db.commit()
    db.refresh(review)
    logger.info("Review %s created by user %s for movie %s", review.id, user_id, movie.id)
    return _hydrate(db, review)


def update_review(
    db: Session,
    user_id: UUID,
    review_id: UUID,
    payload: UpdateReviewRequest,
    refresh: RatingRefresher = refresh_movie_rating,
) -> dict:
    """Owner-only partial update; re-stamps last_edited_at on content changes."""
    review = _owned_review_or_raise(db, user_id, review_id)

    changes = payload.model_dump(exclude_unset=True)
    # None for a required column means "leave it alone"
    for required in ("rating", "review_text", "contains_spoilers"):
        if changes.get(required, ...) is None:
            changes.pop(required)

    edited = False
    for field in ("rating", "review_text", "title"):
        if field in changes and changes[field] != getattr(review, field):
            edited = True

    rating_changed = "rating" in changes and changes["rating"] != review.rating

    for field, value in changes.items():
        setattr(review, field, value)
    if edited:
        review.last_edited_at = _utcnow()

    db.add(review)
    if rating_changed:
        refresh(db, review.movie_id)
    db.commit()
    db.refresh(review)
    return _hydrate(db, review)


def delete_review(
    db: Session,
    user_id: UUID,
    review_id: UUID,
    refresh: RatingRefresher = refresh_movie_rating,
) -> bool:
    """Delete a review. Only the owner can delete."""
    review = _owned_review_or_raise(db, user_id, review_id)
    movie_id = review.movie_id

    db.delete(review)
    refresh(db, movie_id)
    db.commit()
    logger.info("Review %s deleted by user %s", review_id, user_id)
    return True


def set_review_status(
    db: Session,
    review_id: UUID,
    status: ReviewStatusEnum,
    refresh: RatingRefresher = refresh_movie_rating,
) -> dict:
    """Moderation: change a review's status and refresh the movie aggregate."""
    review = _get_review_or_raise(db, review_id)
    review.status = status
    db.add(review)
    refresh(db, review.movie_id)
    db.commit()
    db.refresh(review)
    logger.info("Review %s moderated to %s", review_id, status.value)
    return _hydrate(db, review)


def _find_vote(db: Session, user_id: UUID, review_id: UUID) -> ReviewHelpfulVote | None:
    return (
        db.query(ReviewHelpfulVote)
        .filter(
            ReviewHelpfulVote.review_id == review_id,
            ReviewHelpfulVote.user_id == user_id,
        )
        .first()
    )


def toggle_helpful_vote(db: Session, user_id: UUID, review_id: UUID) -> dict:
    """Add or remove the user's helpful vote. Returns the new count and state."""
    review = _get_review_or_raise(db, review_id)
    if review.user_id == user_id:
        raise SelfVoteError("Cannot vote on your own review")

    existing = _find_vote(db, user_id, review_id)

    if existing is not None:
        db.delete(existing)
        review.helpful_votes = max(0, review.helpful_votes - 1)
        user_voted = False
    else:
        db.add(ReviewHelpfulVote(review_id=review_id, user_id=user_id))
        review.helpful_votes += 1
        user_voted = True

    db.add(review)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent toggle by the same user already stored the vote.
        db.rollback()
        logger.info("Helpful vote on review %s by user %s already recorded", review_id, user_id)
        review = _get_review_or_raise(db, review_id)
        return {
            "helpful_votes": review.helpful_votes,
            "user_voted": _find_vote(db, user_id, review_id) is not None,
        }
    db.refresh(review)

    return {"helpful_votes": review.helpful_votes, "user_voted": user_voted}

"""
Review request/response schemas.
"""
from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import field_validator

from app.db.models import ReviewStatusEnum
from app.schemas.common import CamelModel, PaginationMeta
from app.schemas.movies import MovieBrief


class ReviewSortField(str, Enum):
    CREATED_AT = "createdAt"
    RATING = "rating"
    HELPFUL_VOTES = "helpfulVotes"


def validate_star_rating(value: float | None) -> float | None:
    """1-5 stars, whole or half (3.5 ok, 3.25 not)."""
    if value is None:
        return None
    if value < 1 or value > 5:
        raise ValueError("Rating must be between 1 and 5")
    if (value * 2) % 1 != 0:
        raise ValueError("Rating must be a whole number or half number (e.g., 3.5)")
    return float(value)


def _clean_review_text(value: str | None) -> str | None:
    if value is None:
        return None
    text = value.strip()
    if len(text) < 10 or len(text) > 2000:
        raise ValueError("Review text must be between 10 and 2000 characters")
    return text


def _clean_title(value: str | None) -> str | None:
    if value is None:
        return None
    title = value.strip()
    if len(title) > 100:
        raise ValueError("Title cannot exceed 100 characters")
    return title or None


class CreateReviewRequest(CamelModel):
    """Payload for POST /reviews."""

    movie_id: UUID
    # Accepted for client compatibility; the stored value is copied from the movie.
    tmdb_movie_id: int | None = None
    rating: float
    review_text: str
    title: str | None = None
    contains_spoilers: bool = False

    check_rating = field_validator("rating")(validate_star_rating)
    check_review_text = field_validator("review_text")(_clean_review_text)
    check_title = field_validator("title")(_clean_title)


class UpdateReviewRequest(CamelModel):
    """Partial update for PUT /reviews/{id}; omitted fields are left alone."""

    rating: float | None = None
    review_text: str | None = None
    title: str | None = None
    contains_spoilers: bool | None = None

    check_rating = field_validator("rating")(validate_star_rating)
    check_review_text = field_validator("review_text")(_clean_review_text)
    check_title = field_validator("title")(_clean_title)


class ReviewStatusRequest(CamelModel):
    """Moderation payload for PATCH /reviews/{id}/status."""

    status: ReviewStatusEnum


class ReviewAuthor(CamelModel):
    id: UUID
    username: str
    profile_picture: str | None = None
    join_date: datetime | None = None


class ReviewResponse(CamelModel):
    id: UUID
    user_id: UUID
    movie_id: UUID
    tmdb_movie_id: int
    user: ReviewAuthor | None = None
    movie: MovieBrief | None = None
    rating: float
    review_text: str
    title: str | None = None
    helpful_votes: int = 0
    status: ReviewStatusEnum
    contains_spoilers: bool = False
    last_edited_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ReviewData(CamelModel):
    review: ReviewResponse


class ReviewListData(CamelModel):
    reviews: list[ReviewResponse]
    pagination: PaginationMeta | None = None


class HelpfulVoteData(CamelModel):
    helpful_votes: int
    user_voted: bool

"""
Movie rating aggregate — mean and count of approved reviews.

The aggregate is refreshed explicitly by review_service after each review
write (create, update, delete, moderation). It runs inside the caller's
session and only flushes; the caller commits.
"""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.models import Movie, Review, ReviewStatusEnum

logger = logging.getLogger(__name__)


def round_rating(value: float) -> float:
    """Round half-up to one decimal (3.25 -> 3.3, not banker's 3.2)."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def compute_rating_summary(ratings: Iterable[float]) -> tuple[float, int]:
    """Return ``(rounded_mean, count)``; ``(0.0, 0)`` for no ratings."""
    values = [float(r) for r in ratings]
    if not values:
        return 0.0, 0
    return round_rating(sum(values) / len(values)), len(values)


def approved_rating_stats(db: Session, movie_id: UUID) -> tuple[float, int]:
    """Aggregate approved review ratings for one movie in the database."""
    avg_rating, review_count = (
        db.query(func.avg(Review.rating), func.count(Review.id))
        .filter(
            Review.movie_id == movie_id,
            Review.status == ReviewStatusEnum.APPROVED,
        )
        .one()
    )
    if not review_count:
        return 0.0, 0
    return round_rating(float(avg_rating)), int(review_count)


def refresh_movie_rating(db: Session, movie_id: UUID) -> Movie | None:
    """
    Recompute Movie.average_rating / review_count from approved reviews.

    A missing movie is skipped (returns None); the triggering review write
    is not affected.
    """
    movie = db.query(Movie).filter(Movie.id == movie_id).first()
    if movie is None:
        logger.debug("Skipping rating refresh for missing movie %s", movie_id)
        return None

    db.flush()  # make pending review changes visible to the aggregate query
    average, count = approved_rating_stats(db, movie_id)
    movie.average_rating = average
    movie.review_count = count
    db.add(movie)
    db.flush()

    logger.info(
        "Movie %s rating refreshed: average=%.1f count=%d",
        movie_id, average, count,
    )
    return movie

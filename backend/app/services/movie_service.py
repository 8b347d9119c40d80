"""
Movie business logic — filtered listings, trending / top-rated rankings,
and create-or-refresh from TMDB metadata.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models import Movie
from app.schemas.common import SortOrder
from app.schemas.movies import MovieSortField, MovieUpsertRequest
from app.services.pagination import paginate
from app.services.tmdb_sync import TMDBService, TMDBUpstreamError

logger = logging.getLogger(__name__)

NAME_SEPARATOR = "|"

SORT_COLUMNS = {
    MovieSortField.TITLE: Movie.title,
    MovieSortField.RELEASE_DATE: Movie.release_date,
    MovieSortField.AVERAGE_RATING: Movie.average_rating,
    MovieSortField.POPULARITY: Movie.popularity,
}


class MovieNotFoundError(Exception):
    """Raised when a movie does not exist (locally or on TMDB)."""


class InvalidMoviePayloadError(Exception):
    """Raised when a movie payload cannot be stored."""


# ── Helpers ──────────────────────────────────────────────────────────────────


def _enum_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


def _joined_names(items: list[dict[str, Any]] | None) -> str:
    """Pipe-join the ``name`` of each record, skipping blanks."""
    names = [
        str(item.get("name")).strip()
        for item in items or []
        if isinstance(item, dict) and item.get("name")
    ]
    return NAME_SEPARATOR.join(names)


def sync_search_columns(movie: Movie) -> None:
    """Refresh the denormalised genre/cast name columns from the JSON lists."""
    movie.genre_names = _joined_names(movie.genres)
    movie.cast_names = _joined_names(movie.cast)


def map_movie_brief(row: Movie) -> dict:
    return {
        "id": row.id,
        "tmdb_id": row.tmdb_id,
        "title": row.title,
        "poster_path": row.poster_path,
        "release_date": row.release_date,
        "genres": row.genres or [],
        "average_rating": row.average_rating or 0.0,
    }


def map_movie_response(row: Movie) -> dict:
    """Serialize an ORM movie to the MovieResponse field set."""
    return {
        "id": row.id,
        "tmdb_id": row.tmdb_id,
        "title": row.title,
        "original_title": row.original_title,
        "overview": row.overview,
        "genres": row.genres or [],
        "release_date": row.release_date,
        "runtime": row.runtime,
        "director": row.director,
        "cast": row.cast or [],
        "poster_path": row.poster_path,
        "backdrop_path": row.backdrop_path,
        "tagline": row.tagline,
        "status": _enum_value(row.status),
        "budget": row.budget,
        "revenue": row.revenue,
        "original_language": row.original_language,
        "adult": bool(row.adult),
        "tmdb_vote_average": row.tmdb_vote_average or 0.0,
        "tmdb_vote_count": row.tmdb_vote_count or 0,
        "average_rating": row.average_rating or 0.0,
        "review_count": row.review_count or 0,
        "popularity": row.popularity or 0.0,
        "last_sync_date": row.last_sync_date,
        "created_at": row.created_at,
        "updated_at": row.updated_at,
    }


# ── Read operations ──────────────────────────────────────────────────────────


def list_movies(
    db: Session,
    *,
    genre: str | None = None,
    year: int | None = None,
    search: str | None = None,
    sort: MovieSortField = MovieSortField.POPULARITY,
    order: SortOrder = SortOrder.DESC,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Movie], dict[str, int]]:
    """
    Filtered, sorted, paginated movie listing.

    genre  — case-insensitive substring of any genre name
    year   — release_date within that calendar year
    search — case-insensitive substring of title, original title, overview,
             cast names or director
    """
    query = db.query(Movie)

    if genre:
        query = query.filter(Movie.genre_names.ilike(f"%{genre.strip()}%"))

    if year is not None:
        query = query.filter(
            Movie.release_date >= date(year, 1, 1),
            Movie.release_date < date(year + 1, 1, 1),
        )

    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Movie.title.ilike(pattern),
                Movie.original_title.ilike(pattern),
                Movie.overview.ilike(pattern),
                Movie.cast_names.ilike(pattern),
                Movie.director.ilike(pattern),
            )
        )

    column = SORT_COLUMNS[sort]
    direction = column.asc() if order == SortOrder.ASC else column.desc()
    query = query.order_by(direction, Movie.id.asc())

    return paginate(query, page, limit)


def get_trending(db: Session, limit: int = 20) -> list[Movie]:
    """All movies by popularity, ties broken by platform rating."""
    return (
        db.query(Movie)
        .order_by(Movie.popularity.desc(), Movie.average_rating.desc())
        .limit(limit)
        .all()
    )


def get_top_rated(
    db: Session,
    limit: int = 20,
    min_reviews: int | None = None,
) -> list[Movie]:
    """Movies with enough approved reviews, best average first."""
    threshold = settings.TOP_RATED_MIN_REVIEWS if min_reviews is None else min_reviews
    return (
        db.query(Movie)
        .filter(Movie.review_count >= threshold)
        .order_by(Movie.average_rating.desc(), Movie.review_count.desc())
        .limit(limit)
        .all()
    )


def get_movie_by_id(db: Session, movie_id: UUID) -> Movie | None:
    return db.query(Movie).filter(Movie.id == movie_id).first()


def get_movie_by_tmdb_id(db: Session, tmdb_id: int) -> Movie | None:
    return db.query(Movie).filter(Movie.tmdb_id == tmdb_id).first()


# ── Write operations ─────────────────────────────────────────────────────────


def _payload_columns(payload: MovieUpsertRequest, *, only_set: bool) -> dict[str, Any]:
    """Column values from a payload; nested lists stored in wire (camelCase) shape."""
    data = payload.model_dump(exclude_unset=only_set)
    if "genres" in data:
        data["genres"] = [g.model_dump(by_alias=True) for g in payload.genres]
    if "cast" in data:
        data["cast"] = [c.model_dump(by_alias=True) for c in payload.cast]
    return data


def upsert_movie(db: Session, payload: MovieUpsertRequest) -> tuple[Movie, bool]:
    """
    Create a movie or refresh an existing one, keyed by tmdb_id.

    Only fields present in the payload are changed on update. The review
    aggregate is never touched here.

    Returns:
      (movie, created)
    """
    movie = get_movie_by_tmdb_id(db, payload.tmdb_id)
    created = movie is None

    if created:
        movie = Movie(**_payload_columns(payload, only_set=False))
    else:
        for field, value in _payload_columns(payload, only_set=True).items():
            setattr(movie, field, value)

    movie.last_sync_date = datetime.now(timezone.utc)
    sync_search_columns(movie)
    db.add(movie)

    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise InvalidMoviePayloadError("Movie could not be saved") from exc

    db.commit()
    db.refresh(movie)
    logger.info(
        "Movie tmdb_id=%s %s", payload.tmdb_id, "created" if created else "updated",
    )
    return movie, created


async def sync_movie_from_tmdb(
    db: Session,
    tmdb_id: int,
    service: TMDBService | None = None,
) -> tuple[Movie, bool]:
    """
    Pull full details for *tmdb_id* from TMDB and upsert the local record.

    Raises MovieNotFoundError when TMDB has no such movie. A TMDB record that
    fails local validation is reported as TMDBUpstreamError. TMDBConfigError
    propagates to the caller.
    """
    client = service or TMDBService()
    details = await client.get_movie_details(tmdb_id)
    if details is None:
        raise MovieNotFoundError(f"TMDB movie {tmdb_id} not found")

    try:
        payload = MovieUpsertRequest.model_validate(details)
    except ValidationError as exc:
        logger.warning("TMDB movie %s failed validation: %s", tmdb_id, exc.errors())
        raise TMDBUpstreamError(f"TMDB returned unusable data for movie {tmdb_id}") from exc
    return upsert_movie(db, payload)

"""
Movie request/response schemas.
"""
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import Field, field_validator

from app.db.models import ReleaseStatusEnum
from app.schemas.common import CamelModel, PaginationMeta


class MovieSortField(str, Enum):
    """Sortable columns for GET /movies (wire names)."""

    TITLE = "title"
    RELEASE_DATE = "releaseDate"
    AVERAGE_RATING = "averageRating"
    POPULARITY = "popularity"


class GenreSchema(CamelModel):
    id: int | None = None
    name: str = Field(..., min_length=1, max_length=100)


class CastMemberSchema(CamelModel):
    id: int | None = None
    name: str = Field(..., min_length=1, max_length=200)
    character: str | None = None
    profile_path: str | None = None
    order: int | None = None


class MovieUpsertRequest(CamelModel):
    """Payload for POST /movies — create or refresh a movie by tmdbId."""

    tmdb_id: int = Field(..., ge=1)
    title: str
    original_title: str | None = Field(default=None, max_length=200)
    overview: str | None = Field(default=None, max_length=2000)
    genres: list[GenreSchema] = Field(default_factory=list)
    release_date: date | None = None
    runtime: int | None = Field(default=None, ge=1)
    director: str | None = Field(default=None, max_length=200)
    cast: list[CastMemberSchema] = Field(default_factory=list)
    poster_path: str | None = Field(default=None, max_length=300)
    backdrop_path: str | None = Field(default=None, max_length=300)
    tagline: str | None = Field(default=None, max_length=500)
    status: ReleaseStatusEnum | None = None
    budget: int | None = Field(default=None, ge=0)
    revenue: int | None = Field(default=None, ge=0)
    original_language: str | None = Field(default=None, max_length=10)
    adult: bool = False
    tmdb_vote_average: float = Field(default=0.0, ge=0, le=10)
    tmdb_vote_count: int = Field(default=0, ge=0)
    popularity: float = Field(default=0.0, ge=0)

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str) -> str:
        title = value.strip()
        if not title:
            raise ValueError("Movie title is required")
        if len(title) > 200:
            raise ValueError("Title cannot exceed 200 characters")
        return title

    @field_validator("director", "original_title")
    @classmethod
    def strip_optional(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class MovieBrief(CamelModel):
    """Compact movie payload embedded in reviews and watchlist entries."""

    id: UUID
    tmdb_id: int
    title: str
    poster_path: str | None = None
    release_date: date | None = None
    genres: list[GenreSchema] = Field(default_factory=list)
    average_rating: float = 0.0


class MovieResponse(CamelModel):
    id: UUID
    tmdb_id: int
    title: str
    original_title: str | None = None
    overview: str | None = None
    genres: list[GenreSchema] = Field(default_factory=list)
    release_date: date | None = None
    runtime: int | None = None
    director: str | None = None
    cast: list[CastMemberSchema] = Field(default_factory=list)
    poster_path: str | None = None
    backdrop_path: str | None = None
    tagline: str | None = None
    status: str | None = None
    budget: int | None = None
    revenue: int | None = None
    original_language: str | None = None
    adult: bool = False
    tmdb_vote_average: float = 0.0
    tmdb_vote_count: int = 0
    average_rating: float = 0.0
    review_count: int = 0
    popularity: float = 0.0
    last_sync_date: datetime | None = None
    created_at: datetime
    updated_at: datetime


class MovieData(CamelModel):
    movie: MovieResponse


class MovieListData(CamelModel):
    movies: list[MovieResponse]
    pagination: PaginationMeta | None = None

"""
Watchlist request/response schemas.
"""
from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.db.models import PriorityEnum, WatchStatusEnum
from app.schemas.common import CamelModel, PaginationMeta
from app.schemas.movies import MovieBrief

MAX_TAG_LENGTH = 20


class WatchlistSortField(str, Enum):
    DATE_ADDED = "dateAdded"
    PRIORITY = "priority"
    TITLE = "title"


def _clean_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    cleaned: list[str] = []
    for tag in tags:
        value = tag.strip()
        if not value:
            continue
        if len(value) > MAX_TAG_LENGTH:
            raise ValueError(f"Tags cannot exceed {MAX_TAG_LENGTH} characters")
        if value not in cleaned:
            cleaned.append(value)
    return cleaned


def _clean_notes(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip()


class AddWatchlistRequest(CamelModel):
    """Payload for POST /watchlist."""

    movie_id: UUID
    # Accepted for client compatibility; the stored value is copied from the movie.
    tmdb_movie_id: int | None = None
    priority: PriorityEnum = PriorityEnum.MEDIUM
    notes: str | None = Field(default=None, max_length=500)
    status: WatchStatusEnum = WatchStatusEnum.WANT_TO_WATCH
    user_rating: int | None = Field(default=None, ge=1, le=5)
    tags: list[str] = Field(default_factory=list)
    is_public: bool = True
    reminder_enabled: bool = False
    reminder_date: datetime | None = None

    check_tags = field_validator("tags")(_clean_tags)
    check_notes = field_validator("notes")(_clean_notes)


class UpdateWatchlistRequest(CamelModel):
    """Partial update for PUT /watchlist/{id}."""

    priority: PriorityEnum | None = None
    notes: str | None = Field(default=None, max_length=500)
    status: WatchStatusEnum | None = None
    user_rating: int | None = Field(default=None, ge=1, le=5)
    tags: list[str] | None = None
    is_public: bool | None = None
    reminder_enabled: bool | None = None
    reminder_date: datetime | None = None

    check_tags = field_validator("tags")(_clean_tags)
    check_notes = field_validator("notes")(_clean_notes)


class MarkWatchedRequest(CamelModel):
    """Optional body for POST /watchlist/{id}/watched."""

    rating: int | None = Field(default=None, ge=1, le=5)


class WatchlistItemResponse(CamelModel):
    id: UUID
    user_id: UUID
    movie_id: UUID
    tmdb_movie_id: int
    movie: MovieBrief | None = None
    date_added: datetime
    priority: PriorityEnum
    notes: str | None = None
    status: WatchStatusEnum
    watched_date: datetime | None = None
    user_rating: int | None = None
    tags: list[str] = Field(default_factory=list)
    is_public: bool = True
    reminder_enabled: bool = False
    reminder_date: datetime | None = None
    created_at: datetime
    updated_at: datetime


class WatchlistItemData(CamelModel):
    watchlist_item: WatchlistItemResponse


class WatchlistListData(CamelModel):
    watchlist: list[WatchlistItemResponse]
    pagination: PaginationMeta | None = None


class WatchlistStats(BaseModel):
    """Status counts; keys stay snake_case to match the status values."""

    want_to_watch: int = 0
    watching: int = 0
    watched: int = 0
    dropped: int = 0
    total: int = 0


class WatchlistStatsData(CamelModel):
    stats: WatchlistStats


class WatchlistCheckData(CamelModel):
    in_watchlist: bool
    item: WatchlistItemResponse | None = None


class PopularWatchlistMovie(CamelModel):
    movie: MovieBrief
    watchlist_count: int


class PopularWatchlistData(CamelModel):
    movies: list[PopularWatchlistMovie]

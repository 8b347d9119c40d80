"""
Watchlist business logic — per-user entries, status summary, visibility.
"""
import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models import Movie, PriorityEnum, WatchlistItem, WatchStatusEnum
from app.schemas.common import SortOrder
from app.schemas.watchlist import (
    AddWatchlistRequest,
    UpdateWatchlistRequest,
    WatchlistSortField,
)
from app.services.movie_service import MovieNotFoundError, map_movie_brief
from app.services.pagination import paginate

logger = logging.getLogger(__name__)


class WatchlistItemNotFoundError(Exception):
    """Raised when a watchlist entry does not exist."""


class NotWatchlistOwnerError(Exception):
    """Raised when a user touches another user's watchlist entry."""


class DuplicateWatchlistItemError(Exception):
    """Raised when the movie is already on the user's watchlist."""


class InvalidWatchlistUpdateError(Exception):
    """Raised when an entry would end up in an invalid state."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def priority_sort_case():
    """CASE expression ranking priorities: high=3, medium=2, low=1."""
    return case(
        (WatchlistItem.priority == PriorityEnum.HIGH, 3),
        (WatchlistItem.priority == PriorityEnum.MEDIUM, 2),
        (WatchlistItem.priority == PriorityEnum.LOW, 1),
        else_=0,
    )


def build_watchlist_dict(item: WatchlistItem, movie: Movie | None = None) -> dict:
    return {
        "id": item.id,
        "user_id": item.user_id,
        "movie_id": item.movie_id,
        "tmdb_movie_id": item.tmdb_movie_id,
        "movie": map_movie_brief(movie) if movie is not None else None,
        "date_added": item.date_added,
        "priority": item.priority,
        "notes": item.notes,
        "status": item.status,
        "watched_date": item.watched_date,
        "user_rating": item.user_rating,
        "tags": item.tags or [],
        "is_public": item.is_public,
        "reminder_enabled": item.reminder_enabled,
        "reminder_date": item.reminder_date,
        "created_at": item.created_at,
        "updated_at": item.updated_at,
    }


def stamp_watched_date(item: WatchlistItem) -> None:
    """First arrival at WATCHED records the date; later arrivals keep it."""
    if item.status == WatchStatusEnum.WATCHED and item.watched_date is None:
        item.watched_date = _utcnow()


def _require_rating_when_watched(item: WatchlistItem) -> None:
    if item.status == WatchStatusEnum.WATCHED and item.user_rating is None:
        raise InvalidWatchlistUpdateError("Rating is required when status is watched")


def _owned_item_or_raise(db: Session, user_id: UUID, item_id: UUID) -> WatchlistItem:
    item = db.query(WatchlistItem).filter(WatchlistItem.id == item_id).first()
    if item is None:
        raise WatchlistItemNotFoundError("Watchlist item not found")
    if item.user_id != user_id:
        raise NotWatchlistOwnerError("You can only modify your own watchlist")
    return item


def _hydrate(db: Session, item: WatchlistItem) -> dict:
    movie = db.query(Movie).filter(Movie.id == item.movie_id).first()
    return build_watchlist_dict(item, movie)


# ── Read operations ──────────────────────────────────────────────────────────


def visible_items_query(db: Session, owner_id: UUID, viewer_id: UUID | None):
    """Owner sees every entry; anyone else only the public ones."""
    query = db.query(WatchlistItem).filter(WatchlistItem.user_id == owner_id)
    if viewer_id != owner_id:
        query = query.filter(WatchlistItem.is_public.is_(True))
    return query


def list_watchlist(
    db: Session,
    owner_id: UUID,
    *,
    viewer_id: UUID | None = None,
    status: WatchStatusEnum | None = None,
    priority: PriorityEnum | None = None,
    sort: WatchlistSortField = WatchlistSortField.DATE_ADDED,
    order: SortOrder = SortOrder.DESC,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[dict], dict[str, int]]:
    """A user's watchlist as seen by *viewer_id* (None = anonymous)."""
    query = (
        visible_items_query(db, owner_id, viewer_id)
        .add_entity(Movie)
        .join(Movie, WatchlistItem.movie_id == Movie.id)
    )

    if status is not None:
        query = query.filter(WatchlistItem.status == status)
    if priority is not None:
        query = query.filter(WatchlistItem.priority == priority)

    if sort == WatchlistSortField.PRIORITY:
        column = priority_sort_case()
    elif sort == WatchlistSortField.TITLE:
        column = Movie.title
    else:
        column = WatchlistItem.date_added
    direction = column.asc() if order == SortOrder.ASC else column.desc()
    query = query.order_by(direction, WatchlistItem.id.asc())

    rows, meta = paginate(query, page, limit)
    return [build_watchlist_dict(item, movie) for item, movie in rows], meta


def count_visible_items(db: Session, owner_id: UUID, viewer_id: UUID | None) -> int:
    return visible_items_query(db, owner_id, viewer_id).count()


def check_in_watchlist(db: Session, user_id: UUID, tmdb_movie_id: int) -> dict:
    item = (
        db.query(WatchlistItem)
        .filter(
            WatchlistItem.user_id == user_id,
            WatchlistItem.tmdb_movie_id == tmdb_movie_id,
        )
        .first()
    )
    return {
        "in_watchlist": item is not None,
        "item": _hydrate(db, item) if item is not None else None,
    }


def get_watchlist_stats(db: Session, user_id: UUID) -> dict[str, int]:
    """Entry counts per status plus total."""
    rows = (
        db.query(WatchlistItem.status, func.count(WatchlistItem.id))
        .filter(WatchlistItem.user_id == user_id)
        .group_by(WatchlistItem.status)
        .all()
    )

    stats = {s.value: 0 for s in WatchStatusEnum}
    stats["total"] = 0
    for status, count in rows:
        key = status.value if hasattr(status, "value") else str(status)
        stats[key] = count
        stats["total"] += count
    return stats


def get_due_reminders(db: Session, user_id: UUID, now: datetime | None = None) -> list[dict]:
    """Enabled reminders that are due for entries not yet watched or dropped."""
    cutoff = now or _utcnow()
    rows = (
        db.query(WatchlistItem, Movie)
        .join(Movie, WatchlistItem.movie_id == Movie.id)
        .filter(
            WatchlistItem.user_id == user_id,
            WatchlistItem.reminder_enabled.is_(True),
            WatchlistItem.reminder_date <= cutoff,
            WatchlistItem.status.in_([WatchStatusEnum.WANT_TO_WATCH, WatchStatusEnum.WATCHING]),
        )
        .order_by(WatchlistItem.reminder_date.asc())
        .all()
    )
    return [build_watchlist_dict(item, movie) for item, movie in rows]


def get_popular_watchlist_movies(db: Session, limit: int = 10) -> list[dict]:
    """Movies most often sitting in want_to_watch, across all users."""
    watch_count = func.count(WatchlistItem.id).label("watchlist_count")
    rows = (
        db.query(Movie, watch_count)
        .join(WatchlistItem, WatchlistItem.movie_id == Movie.id)
        .filter(WatchlistItem.status == WatchStatusEnum.WANT_TO_WATCH)
        .group_by(Movie.id)
        .order_by(watch_count.desc(), Movie.title.asc())
        .limit(limit)
        .all()
    )
    return [
        {"movie": map_movie_brief(movie), "watchlist_count": count}
        for movie, count in rows
    ]


# ── Write operations ─────────────────────────────────────────────────────────


def add_to_watchlist(db: Session, user_id: UUID, payload: AddWatchlistRequest) -> dict:
    """Add a movie to the user's watchlist (once per movie)."""
    movie = db.query(Movie).filter(Movie.id == payload.movie_id).first()
    if movie is None:
        raise MovieNotFoundError("Movie not found")

    existing = (
        db.query(WatchlistItem.id)
        .filter(WatchlistItem.user_id == user_id, WatchlistItem.movie_id == movie.id)
        .first()
    )
    if existing is not None:
        raise DuplicateWatchlistItemError("Movie is already in your watchlist")

    item = WatchlistItem(
        user_id=user_id,
        movie_id=movie.id,
        tmdb_movie_id=movie.tmdb_id,
        priority=payload.priority,
        notes=payload.notes,
        status=payload.status,
        user_rating=payload.user_rating,
        tags=payload.tags,
        is_public=payload.is_public,
        reminder_enabled=payload.reminder_enabled,
        reminder_date=payload.reminder_date,
    )
    _require_rating_when_watched(item)
    stamp_watched_date(item)
    db.add(item)

    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateWatchlistItemError("Movie is already in your watchlist") from exc

    db.commit()
    db.refresh(item)
    logger.info("User %s added movie %s to watchlist", user_id, movie.id)
    return build_watchlist_dict(item, movie)


def update_watchlist_item(
    db: Session,
    user_id: UUID,
    item_id: UUID,
    payload: UpdateWatchlistRequest,
) -> dict:
    """Owner-only partial update. Status may jump between any two values."""
    item = _owned_item_or_raise(db, user_id, item_id)

    changes = payload.model_dump(exclude_unset=True)
    # None for a required column means "leave it alone"
    for required in ("priority", "status", "tags", "is_public", "reminder_enabled"):
        if changes.get(required, ...) is None:
            changes.pop(required)

    for field, value in changes.items():
        setattr(item, field, value)

    try:
        _require_rating_when_watched(item)
    except InvalidWatchlistUpdateError:
        db.rollback()
        raise
    stamp_watched_date(item)

    db.add(item)
    db.commit()
    db.refresh(item)
    return _hydrate(db, item)


def mark_as_watched(
    db: Session,
    user_id: UUID,
    item_id: UUID,
    rating: int | None = None,
) -> dict:
    """Set status WATCHED, stamp watched_date if absent, record rating if given."""
    item = _owned_item_or_raise(db, user_id, item_id)

    item.status = WatchStatusEnum.WATCHED
    if rating is not None:
        item.user_rating = rating
    stamp_watched_date(item)

    db.add(item)
    db.commit()
    db.refresh(item)
    return _hydrate(db, item)


def remove_from_watchlist(db: Session, user_id: UUID, item_id: UUID) -> bool:
    item = _owned_item_or_raise(db, user_id, item_id)
    db.delete(item)
    db.commit()
    logger.info("User %s removed watchlist item %s", user_id, item_id)
    return True

"""
Watchlist API — /watchlist
──────────────────────────
Endpoints:
  GET    /watchlist                  — My watchlist (filter, sort, paginate)
  GET    /watchlist/stats            — My per-status counts
  GET    /watchlist/reminders        — My due reminders
  GET    /watchlist/popular          — Movies most often on want_to_watch lists
  GET    /watchlist/check/{tmdb_id}  — Is this TMDB movie on my watchlist?
  POST   /watchlist                  — Add a movie
  PUT    /watchlist/{item_id}        — Update an entry
  DELETE /watchlist/{item_id}        — Remove an entry
  POST   /watchlist/{item_id}/watched — Mark as watched
"""
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models import PriorityEnum, User, WatchStatusEnum
from app.db.session import get_db
from app.deps.auth import get_current_user
from app.schemas.common import Envelope, MessageResponse, SortOrder
from app.schemas.watchlist import (
    AddWatchlistRequest,
    MarkWatchedRequest,
    PopularWatchlistData,
    UpdateWatchlistRequest,
    WatchlistCheckData,
    WatchlistItemData,
    WatchlistListData,
    WatchlistSortField,
    WatchlistStatsData,
)
from app.services.movie_service import MovieNotFoundError
from app.services.watchlist_service import (
    DuplicateWatchlistItemError,
    InvalidWatchlistUpdateError,
    NotWatchlistOwnerError,
    WatchlistItemNotFoundError,
    add_to_watchlist,
    check_in_watchlist,
    get_due_reminders,
    get_popular_watchlist_movies,
    get_watchlist_stats,
    list_watchlist,
    mark_as_watched,
    remove_from_watchlist,
    update_watchlist_item,
)

router = APIRouter()


def _item_envelope(item: dict, message: str) -> dict:
    return {"success": True, "message": message, "data": {"watchlist_item": item}}


# ── Reads ─────────────────────────────────────────────────────────────────────

@router.get("", response_model=Envelope[WatchlistListData])
def get_my_watchlist(
    status_filter: WatchStatusEnum | None = Query(None, alias="status"),
    priority: PriorityEnum | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    sort: WatchlistSortField = Query(WatchlistSortField.DATE_ADDED),
    order: SortOrder = Query(SortOrder.DESC),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    items, pagination = list_watchlist(
        db,
        current_user.id,
        viewer_id=current_user.id,
        status=status_filter,
        priority=priority,
        sort=sort,
        order=order,
        page=page,
        limit=limit,
    )
    return {"success": True, "data": {"watchlist": items, "pagination": pagination}}


@router.get("/stats", response_model=Envelope[WatchlistStatsData])
def get_my_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return {"success": True, "data": {"stats": get_watchlist_stats(db, current_user.id)}}


@router.get("/reminders", response_model=Envelope[WatchlistListData])
def get_my_reminders(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return {"success": True, "data": {"watchlist": get_due_reminders(db, current_user.id)}}


@router.get("/popular", response_model=Envelope[PopularWatchlistData])
def get_popular(
    limit: int = Query(10, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
) -> dict:
    return {"success": True, "data": {"movies": get_popular_watchlist_movies(db, limit=limit)}}


@router.get("/check/{tmdb_id}", response_model=Envelope[WatchlistCheckData])
def check_watchlist(
    tmdb_id: int = Path(..., ge=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return {"success": True, "data": check_in_watchlist(db, current_user.id, tmdb_id)}


# ── Mutations ─────────────────────────────────────────────────────────────────

@router.post("", response_model=Envelope[WatchlistItemData], status_code=status.HTTP_201_CREATED)
def add_item(
    payload: AddWatchlistRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        item = add_to_watchlist(db, current_user.id, payload)
    except MovieNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (DuplicateWatchlistItemError, InvalidWatchlistUpdateError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _item_envelope(item, "Movie added to watchlist")


@router.put("/{item_id}", response_model=Envelope[WatchlistItemData])
def update_item(
    item_id: UUID,
    payload: UpdateWatchlistRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        item = update_watchlist_item(db, current_user.id, item_id, payload)
    except WatchlistItemNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except NotWatchlistOwnerError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except InvalidWatchlistUpdateError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _item_envelope(item, "Watchlist item updated")


@router.delete("/{item_id}", response_model=MessageResponse)
def remove_item(
    item_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        remove_from_watchlist(db, current_user.id, item_id)
    except WatchlistItemNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except NotWatchlistOwnerError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    return {"success": True, "message": "Movie removed from watchlist"}


@router.post("/{item_id}/watched", response_model=Envelope[WatchlistItemData])
def mark_watched(
    item_id: UUID,
    payload: MarkWatchedRequest | None = Body(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    rating = payload.rating if payload is not None else None
    try:
        item = mark_as_watched(db, current_user.id, item_id, rating=rating)
    except WatchlistItemNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except NotWatchlistOwnerError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    return _item_envelope(item, "Movie marked as watched")

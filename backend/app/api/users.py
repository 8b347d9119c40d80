"""
Users API — /users
───────────────────
Endpoints:
  GET /users                      — Search active users
  GET /users/stats/top-reviewers  — Most prolific approved reviewers
  GET /users/{user_id}            — Public profile with counts
  GET /users/{user_id}/reviews    — A user's approved reviews
  GET /users/{user_id}/watchlist  — A user's watchlist (public entries unless owner)
"""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models import User, WatchStatusEnum
from app.db.session import get_db
from app.deps.auth import get_optional_user
from app.schemas.common import Envelope
from app.schemas.reviews import ReviewListData
from app.schemas.users import TopReviewersData, UserListData, UserProfileData
from app.schemas.watchlist import WatchlistListData
from app.services.review_service import list_reviews
from app.services.user_service import (
    UserNotFoundError,
    get_active_user_or_raise,
    get_top_reviewers,
    get_user_profile,
    search_users,
)
from app.services.watchlist_service import list_watchlist

router = APIRouter()


def _viewer_id(viewer: User | None) -> UUID | None:
    return viewer.id if viewer is not None else None


@router.get("", response_model=Envelope[UserListData])
def list_users(
    search: str | None = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
) -> dict:
    users, pagination = search_users(db, search=search, page=page, limit=limit)
    return {"success": True, "data": {"users": users, "pagination": pagination}}


@router.get("/stats/top-reviewers", response_model=Envelope[TopReviewersData])
def top_reviewers(
    limit: int = Query(10, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
) -> dict:
    return {"success": True, "data": {"top_reviewers": get_top_reviewers(db, limit=limit)}}


@router.get("/{user_id}", response_model=Envelope[UserProfileData])
def get_profile(
    user_id: UUID,
    viewer: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        profile = get_user_profile(db, user_id, viewer_id=_viewer_id(viewer))
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"success": True, "data": {"user": profile}}


@router.get("/{user_id}/reviews", response_model=Envelope[ReviewListData])
def get_reviews_by_user(
    user_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
) -> dict:
    try:
        get_active_user_or_raise(db, user_id)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    reviews, pagination = list_reviews(db, user_id=user_id, page=page, limit=limit)
    return {"success": True, "data": {"reviews": reviews, "pagination": pagination}}


@router.get("/{user_id}/watchlist", response_model=Envelope[WatchlistListData])
def get_watchlist_by_user(
    user_id: UUID,
    status_filter: WatchStatusEnum | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    viewer: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> dict:
    """Owners see every entry; everyone else sees only entries marked public."""
    try:
        get_active_user_or_raise(db, user_id)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    items, pagination = list_watchlist(
        db,
        user_id,
        viewer_id=_viewer_id(viewer),
        status=status_filter,
        page=page,
        limit=limit,
    )
    return {"success": True, "data": {"watchlist": items, "pagination": pagination}}

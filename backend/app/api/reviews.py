"""
Reviews API — /reviews
──────────────────────
Endpoints:
  GET    /reviews                     — Approved reviews, filtered + paginated
  GET    /reviews/movie/{movie_id}    — Approved reviews for a movie
  GET    /reviews/user/{user_id}      — Approved reviews by a user
  GET    /reviews/recent              — Newest approved reviews
  POST   /reviews                     — Create a review (one per movie)
  PUT    /reviews/{review_id}         — Update own review
  DELETE /reviews/{review_id}         — Delete own review
  POST   /reviews/{review_id}/helpful — Toggle helpful vote
  PATCH  /reviews/{review_id}/status  — Moderate (admin)
"""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models import User
from app.db.session import get_db
from app.deps.auth import get_current_admin, get_current_user
from app.schemas.common import Envelope, MessageResponse, SortOrder
from app.schemas.reviews import (
    CreateReviewRequest,
    HelpfulVoteData,
    ReviewData,
    ReviewListData,
    ReviewSortField,
    ReviewStatusRequest,
    UpdateReviewRequest,
)
from app.services.movie_service import MovieNotFoundError
from app.services.review_service import (
    DuplicateReviewError,
    NotReviewOwnerError,
    ReviewNotFoundError,
    SelfVoteError,
    create_review,
    delete_review,
    get_recent_reviews,
    list_reviews,
    set_review_status,
    toggle_helpful_vote,
    update_review,
)

router = APIRouter()


def _review_list(reviews: list[dict], pagination: dict | None = None) -> dict:
    return {"success": True, "data": {"reviews": reviews, "pagination": pagination}}


# ── Listings ──────────────────────────────────────────────────────────────────

@router.get("", response_model=Envelope[ReviewListData])
def list_reviews_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=settings.MAX_PAGE_SIZE),
    movie_id: UUID | None = Query(None, alias="movieId"),
    user_id: UUID | None = Query(None, alias="userId"),
    min_rating: int | None = Query(None, alias="minRating", ge=1, le=5),
    max_rating: int | None = Query(None, alias="maxRating", ge=1, le=5),
    sort: ReviewSortField = Query(ReviewSortField.CREATED_AT),
    order: SortOrder = Query(SortOrder.DESC),
    db: Session = Depends(get_db),
) -> dict:
    reviews, pagination = list_reviews(
        db,
        movie_id=movie_id,
        user_id=user_id,
        min_rating=min_rating,
        max_rating=max_rating,
        sort=sort,
        order=order,
        page=page,
        limit=limit,
    )
    return _review_list(reviews, pagination)


@router.get("/movie/{movie_id}", response_model=Envelope[ReviewListData])
def get_movie_reviews(
    movie_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=settings.MAX_PAGE_SIZE),
    min_rating: int | None = Query(None, alias="minRating", ge=1, le=5),
    max_rating: int | None = Query(None, alias="maxRating", ge=1, le=5),
    sort: ReviewSortField = Query(ReviewSortField.CREATED_AT),
    order: SortOrder = Query(SortOrder.DESC),
    db: Session = Depends(get_db),
) -> dict:
    reviews, pagination = list_reviews(
        db,
        movie_id=movie_id,
        min_rating=min_rating,
        max_rating=max_rating,
        sort=sort,
        order=order,
        page=page,
        limit=limit,
    )
    return _review_list(reviews, pagination)


@router.get("/user/{user_id}", response_model=Envelope[ReviewListData])
def get_user_reviews(
    user_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
) -> dict:
    reviews, pagination = list_reviews(db, user_id=user_id, page=page, limit=limit)
    return _review_list(reviews, pagination)


@router.get("/recent", response_model=Envelope[ReviewListData])
def recent_reviews(
    limit: int = Query(10, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
) -> dict:
    return _review_list(get_recent_reviews(db, limit=limit))


# ── Mutations ─────────────────────────────────────────────────────────────────

@router.post("", response_model=Envelope[ReviewData], status_code=status.HTTP_201_CREATED)
def create_review_endpoint(
    payload: CreateReviewRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        review = create_review(db, current_user.id, payload)
    except MovieNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except DuplicateReviewError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"success": True, "message": "Review created successfully", "data": {"review": review}}


@router.put("/{review_id}", response_model=Envelope[ReviewData])
def update_review_endpoint(
    review_id: UUID,
    payload: UpdateReviewRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        review = update_review(db, current_user.id, review_id, payload)
    except ReviewNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except NotReviewOwnerError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    return {"success": True, "message": "Review updated successfully", "data": {"review": review}}


@router.delete("/{review_id}", response_model=MessageResponse)
def delete_review_endpoint(
    review_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        delete_review(db, current_user.id, review_id)
    except ReviewNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except NotReviewOwnerError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    return {"success": True, "message": "Review deleted successfully"}


@router.post("/{review_id}/helpful", response_model=Envelope[HelpfulVoteData])
def toggle_helpful(
    review_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        result = toggle_helpful_vote(db, current_user.id, review_id)
    except ReviewNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except SelfVoteError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    message = "Helpful vote added" if result["user_voted"] else "Helpful vote removed"
    return {"success": True, "message": message, "data": result}


@router.patch("/{review_id}/status", response_model=Envelope[ReviewData])
def moderate_review(
    review_id: UUID,
    payload: ReviewStatusRequest,
    _admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
) -> dict:
    try:
        review = set_review_status(db, review_id, payload.status)
    except ReviewNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"success": True, "message": "Review status updated", "data": {"review": review}}

"""
Movies API — /movies
─────────────────────
Endpoints:
  GET  /movies                       — Filtered, sorted, paginated listing
  GET  /movies/trending              — By popularity, then platform rating
  GET  /movies/top-rated             — Best average among movies with >= 5 reviews
  GET  /movies/tmdb/{tmdb_id}        — Single movie by TMDB id
  POST /movies/tmdb/{tmdb_id}/sync   — Pull details from TMDB and upsert
  GET  /movies/{movie_id}            — Single movie by id
  POST /movies                       — Create (201) or refresh (200) by tmdbId
"""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.schemas.common import Envelope, SortOrder
from app.schemas.movies import MovieData, MovieListData, MovieSortField, MovieUpsertRequest
from app.services.movie_service import (
    InvalidMoviePayloadError,
    MovieNotFoundError,
    get_movie_by_id,
    get_movie_by_tmdb_id,
    get_top_rated,
    get_trending,
    list_movies,
    map_movie_response,
    sync_movie_from_tmdb,
    upsert_movie,
)
from app.services.tmdb_sync import TMDBConfigError, TMDBUpstreamError

router = APIRouter()


def _movie_list(rows) -> dict:
    return {"success": True, "data": {"movies": [map_movie_response(r) for r in rows]}}


def _upsert_envelope(movie, created: bool, response: Response) -> dict:
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return {
        "success": True,
        "message": "Movie created successfully" if created else "Movie updated successfully",
        "data": {"movie": map_movie_response(movie)},
    }


# ── Routes ────────────────────────────────────────────────────────────────────

@router.get("", response_model=Envelope[MovieListData])
def list_movies_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    genre: str | None = Query(None, max_length=100, description="Case-insensitive genre substring"),
    year: int | None = Query(None, ge=1900, le=2100, description="Release year"),
    search: str | None = Query(None, max_length=200, description="Title/overview/cast/director text"),
    sort: MovieSortField = Query(MovieSortField.POPULARITY),
    order: SortOrder = Query(SortOrder.DESC),
    db: Session = Depends(get_db),
) -> dict:
    rows, pagination = list_movies(
        db,
        genre=genre,
        year=year,
        search=search,
        sort=sort,
        order=order,
        page=page,
        limit=limit,
    )
    return {
        "success": True,
        "data": {
            "movies": [map_movie_response(r) for r in rows],
            "pagination": pagination,
        },
    }


@router.get("/trending", response_model=Envelope[MovieListData])
def trending_movies(
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
) -> dict:
    return _movie_list(get_trending(db, limit=limit))


@router.get("/top-rated", response_model=Envelope[MovieListData])
def top_rated_movies(
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
) -> dict:
    return _movie_list(get_top_rated(db, limit=limit))


@router.get("/tmdb/{tmdb_id}", response_model=Envelope[MovieData])
def get_movie_by_tmdb(
    tmdb_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> dict:
    movie = get_movie_by_tmdb_id(db, tmdb_id)
    if movie is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Movie not found")
    return {"success": True, "data": {"movie": map_movie_response(movie)}}


@router.post("/tmdb/{tmdb_id}/sync", response_model=Envelope[MovieData])
async def sync_movie(
    response: Response,
    tmdb_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> dict:
    """Fetch full details from TMDB and create or refresh the local movie."""
    try:
        movie, created = await sync_movie_from_tmdb(db, tmdb_id)
    except MovieNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except TMDBConfigError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Movie metadata sync is not configured",
        ) from exc
    except TMDBUpstreamError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except InvalidMoviePayloadError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return _upsert_envelope(movie, created, response)


@router.get("/{movie_id}", response_model=Envelope[MovieData])
def get_movie(movie_id: UUID, db: Session = Depends(get_db)) -> dict:
    movie = get_movie_by_id(db, movie_id)
    if movie is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Movie not found")
    return {"success": True, "data": {"movie": map_movie_response(movie)}}


@router.post("", response_model=Envelope[MovieData])
def create_or_update_movie(
    payload: MovieUpsertRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> dict:
    """Create a movie from TMDB metadata, or refresh it if the tmdbId is known."""
    try:
        movie, created = upsert_movie(db, payload)
    except InvalidMoviePayloadError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _upsert_envelope(movie, created, response)

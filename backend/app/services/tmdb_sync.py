"""
TMDB Sync Service
─────────────────
Wraps the TMDB v3 REST API.

Flow:
  1. The client browses TMDB directly and picks a movie.
  2. POST /movies/tmdb/{tmdb_id}/sync calls get_movie_details() here.
  3. movie_service.upsert_movie() stores the result keyed by tmdb_id.
"""
import logging

import httpx

from app.core.config import settings
from app.db.models import ReleaseStatusEnum

logger = logging.getLogger(__name__)

TMDB_CAST_LIMIT = 10

_RELEASE_STATUSES = {s.value for s in ReleaseStatusEnum}


class TMDBConfigError(Exception):
    """Raised when TMDB client is used without an API key."""


class TMDBUpstreamError(Exception):
    """Raised for non-recoverable TMDB request/response errors."""


class TMDBService:
    """
    Thin async wrapper around TMDB v3 API.
    Uses httpx for HTTP — non-blocking in async FastAPI context.
    """

    def __init__(self, api_key: str | None = None, base_url: str | None = None) -> None:
        self.api_key = api_key or settings.TMDB_API_KEY
        self.base_url = base_url or settings.TMDB_BASE_URL
        if not self.api_key:
            raise TMDBConfigError(
                "TMDB_API_KEY is not set. "
                "Add it to your .env file or pass it explicitly."
            )

    async def get_movie_details(self, tmdb_id: int) -> dict | None:
        """
        Fetch full details for a single movie including credits.

        Returns a dict in the POST /movies payload shape, or None if TMDB
        does not know the movie.
        """
        params = {
            "api_key": self.api_key,
            "language": "en-US",
            "append_to_response": "credits",
        }

        try:
            async with httpx.AsyncClient(timeout=settings.TMDB_TIMEOUT_SECONDS) as client:
                response = await client.get(
                    f"{self.base_url}/movie/{tmdb_id}",
                    params=params,
                )
                if response.status_code == 404:
                    return None
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("TMDB details for %s failed: HTTP %s", tmdb_id, exc.response.status_code)
            raise TMDBUpstreamError(
                f"TMDB details failed with status {exc.response.status_code}"
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("TMDB details request for %s failed: %s", tmdb_id, exc)
            raise TMDBUpstreamError("TMDB details request failed") from exc

        return map_movie_details(response.json())


def _positive_or_none(value: object) -> int | None:
    if isinstance(value, (int, float)) and value > 0:
        return int(value)
    return None


def map_movie_details(raw: dict) -> dict:
    """Normalize a TMDB /movie/{id}?append_to_response=credits payload."""
    genres = [
        {"id": g.get("id"), "name": g.get("name")}
        for g in raw.get("genres", [])
        if g.get("name")
    ]

    credits = raw.get("credits") or {}
    director = next(
        (p.get("name") for p in credits.get("crew", []) if p.get("job") == "Director"),
        None,
    )
    cast = [
        {
            "id": p.get("id"),
            "name": p.get("name"),
            "character": p.get("character"),
            "profilePath": p.get("profile_path"),
            "order": p.get("order"),
        }
        for p in credits.get("cast", [])[:TMDB_CAST_LIMIT]
        if p.get("name")
    ]

    status = raw.get("status")
    vote_average = raw.get("vote_average") or 0.0

    return {
        "tmdbId": int(raw["id"]),
        "title": (raw.get("title") or raw.get("original_title") or "")[:200],
        "originalTitle": raw.get("original_title"),
        "overview": (raw.get("overview") or "")[:2000] or None,
        "genres": genres,
        "releaseDate": raw.get("release_date") or None,
        "runtime": _positive_or_none(raw.get("runtime")),
        "director": director,
        "cast": cast,
        "posterPath": raw.get("poster_path"),
        "backdropPath": raw.get("backdrop_path"),
        "tagline": raw.get("tagline") or None,
        "status": status if status in _RELEASE_STATUSES else None,
        "budget": raw.get("budget") or None,
        "revenue": raw.get("revenue") or None,
        "originalLanguage": raw.get("original_language"),
        "adult": bool(raw.get("adult", False)),
        "tmdbVoteAverage": max(0.0, min(10.0, float(vote_average))),
        "tmdbVoteCount": int(raw.get("vote_count") or 0),
        "popularity": float(raw.get("popularity") or 0.0),
    }

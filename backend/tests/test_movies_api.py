import unittest
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, patch
from uuid import uuid4

from fastapi.testclient import TestClient

from app.db.models import Movie
from app.db.session import get_db
from app.main import app
from app.services.movie_service import MovieNotFoundError
from app.services.tmdb_sync import TMDBConfigError, TMDBUpstreamError


def _movie(title: str = "Arrival", tmdb_id: int = 329865) -> Movie:
    now = datetime.now(timezone.utc)
    return Movie(
        id=uuid4(),
        tmdb_id=tmdb_id,
        title=title,
        genres=[{"id": 878, "name": "Science Fiction"}],
        release_date=date(2016, 11, 11),
        cast=[],
        average_rating=4.0,
        review_count=1,
        popularity=12.5,
        last_sync_date=now,
        created_at=now,
        updated_at=now,
    )


class TestMoviesApi(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(app)
        app.dependency_overrides[get_db] = lambda: iter([object()])

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def test_list_envelope_and_camel_case(self) -> None:
        pagination = {"current": 1, "pages": 1, "total": 1, "limit": 20}
        with patch("app.api.movies.list_movies", return_value=([_movie()], pagination)) as mocked:
            response = self.client.get("/movies?genre=drama&sort=averageRating&order=asc")

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertEqual(payload["data"]["pagination"], pagination)
        movie = payload["data"]["movies"][0]
        self.assertEqual(movie["tmdbId"], 329865)
        self.assertEqual(movie["averageRating"], 4.0)
        self.assertEqual(mocked.call_args.kwargs["genre"], "drama")
        self.assertEqual(mocked.call_args.kwargs["sort"].value, "averageRating")

    def test_unknown_sort_field_is_400_with_errors(self) -> None:
        with patch("app.api.movies.list_movies") as mocked:
            response = self.client.get("/movies?sort=budget")

        self.assertEqual(response.status_code, 400)
        payload = response.json()
        self.assertFalse(payload["success"])
        self.assertEqual(payload["message"], "Validation failed")
        self.assertEqual(payload["errors"][0]["field"], "sort")
        mocked.assert_not_called()

    def test_limit_above_max_is_400(self) -> None:
        response = self.client.get("/movies?limit=51")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"][0]["field"], "limit")

    def test_get_movie_404(self) -> None:
        with patch("app.api.movies.get_movie_by_id", return_value=None):
            response = self.client.get(f"/movies/{uuid4()}")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"success": False, "message": "Movie not found"})

    def test_trending_is_not_captured_by_id_route(self) -> None:
        with patch("app.api.movies.get_trending", return_value=[_movie()]):
            response = self.client.get("/movies/trending")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["data"]["movies"]), 1)

    def test_upsert_status_codes(self) -> None:
        body = {"tmdbId": 329865, "title": "Arrival"}
        with patch("app.api.movies.upsert_movie", return_value=(_movie(), True)):
            created = self.client.post("/movies", json=body)
        with patch("app.api.movies.upsert_movie", return_value=(_movie(), False)):
            updated = self.client.post("/movies", json=body)

        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["message"], "Movie created successfully")
        self.assertEqual(updated.status_code, 200)

    def test_upsert_rejects_blank_title(self) -> None:
        response = self.client.post("/movies", json={"tmdbId": 1, "title": "   "})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"][0]["field"], "title")

    def test_sync_error_mapping(self) -> None:
        cases = [
            (MovieNotFoundError("missing"), 404),
            (TMDBConfigError("no key"), 503),
            (TMDBUpstreamError("boom"), 502),
        ]
        for exc, expected in cases:
            with self.subTest(exc=type(exc).__name__):
                with patch("app.api.movies.sync_movie_from_tmdb", side_effect=exc):
                    response = self.client.post("/movies/tmdb/603/sync")
                self.assertEqual(response.status_code, expected)
                self.assertFalse(response.json()["success"])

    def test_sync_with_unusable_tmdb_record_is_502(self) -> None:
        with patch("app.services.movie_service.TMDBService") as tmdb:
            tmdb.return_value.get_movie_details = AsyncMock(return_value={"tmdbId": 7, "title": ""})
            response = self.client.post("/movies/tmdb/7/sync")

        self.assertEqual(response.status_code, 502)
        self.assertFalse(response.json()["success"])

    def test_unhandled_error_is_generic_500(self) -> None:
        client = TestClient(app, raise_server_exceptions=False)
        with patch("app.api.movies.get_trending", side_effect=RuntimeError("db exploded")):
            response = client.get("/movies/trending")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"success": False, "message": "Server error"})

    def test_health(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")

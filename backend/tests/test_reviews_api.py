import unittest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import patch
from uuid import uuid4

from fastapi.testclient import TestClient

from app.db.models import ReviewStatusEnum
from app.db.session import get_db
from app.deps.auth import get_current_user
from app.main import app
from app.services.movie_service import MovieNotFoundError
from app.services.review_service import (
    DuplicateReviewError,
    NotReviewOwnerError,
    ReviewNotFoundError,
    SelfVoteError,
)


def _review(**overrides) -> dict:
    now = datetime.now(timezone.utc)
    review = {
        "id": uuid4(),
        "user_id": uuid4(),
        "movie_id": uuid4(),
        "tmdb_movie_id": 329865,
        "user": {"id": uuid4(), "username": "alice", "profile_picture": None, "join_date": now},
        "movie": None,
        "rating": 4.0,
        "review_text": "A patient, moving film.",
        "title": None,
        "helpful_votes": 0,
        "status": ReviewStatusEnum.APPROVED,
        "contains_spoilers": False,
        "last_edited_at": None,
        "created_at": now,
        "updated_at": now,
    }
    review.update(overrides)
    return review


class TestReviewsApi(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(app)
        app.dependency_overrides[get_db] = lambda: iter([object()])
        self.user_id = uuid4()

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def _login(self, is_admin: bool = False) -> None:
        app.dependency_overrides[get_current_user] = lambda: SimpleNamespace(
            id=self.user_id, is_admin=is_admin,
        )

    def _create_body(self, **overrides) -> dict:
        body = {"movieId": str(uuid4()), "rating": 4, "reviewText": "A patient, moving film."}
        body.update(overrides)
        return body

    def test_create_requires_auth(self) -> None:
        response = self.client.post("/reviews", json=self._create_body())
        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.json()["success"])

    def test_create_success(self) -> None:
        self._login()
        with patch("app.api.reviews.create_review", return_value=_review()) as mocked:
            response = self.client.post("/reviews", json=self._create_body(rating=4.5))

        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertEqual(payload["data"]["review"]["reviewText"], "A patient, moving film.")
        self.assertEqual(payload["data"]["review"]["status"], "approved")
        self.assertEqual(mocked.call_args.args[1], self.user_id)
        self.assertEqual(mocked.call_args.args[2].rating, 4.5)

    def test_create_rejects_bad_rating_and_short_text(self) -> None:
        self._login()
        with patch("app.api.reviews.create_review") as mocked:
            quarter = self.client.post("/reviews", json=self._create_body(rating=3.25))
            short = self.client.post("/reviews", json=self._create_body(reviewText="  too short "))

        self.assertEqual(quarter.status_code, 400)
        self.assertEqual(quarter.json()["errors"][0]["field"], "rating")
        self.assertEqual(short.status_code, 400)
        self.assertEqual(short.json()["errors"][0]["field"], "reviewText")
        mocked.assert_not_called()

    def test_create_error_mapping(self) -> None:
        self._login()
        cases = [
            (MovieNotFoundError("Movie not found"), 404),
            (DuplicateReviewError("You have already reviewed this movie"), 400),
        ]
        for exc, expected in cases:
            with self.subTest(exc=type(exc).__name__):
                with patch("app.api.reviews.create_review", side_effect=exc):
                    response = self.client.post("/reviews", json=self._create_body())
                self.assertEqual(response.status_code, expected)
                self.assertEqual(response.json()["message"], str(exc))

    def test_update_and_delete_ownership(self) -> None:
        self._login()
        with patch("app.api.reviews.update_review", side_effect=NotReviewOwnerError("nope")):
            update = self.client.put(f"/reviews/{uuid4()}", json={"rating": 2})
        with patch("app.api.reviews.delete_review", side_effect=ReviewNotFoundError("missing")):
            delete = self.client.delete(f"/reviews/{uuid4()}")

        self.assertEqual(update.status_code, 403)
        self.assertEqual(delete.status_code, 404)

    def test_helpful_toggle(self) -> None:
        self._login()
        with patch(
            "app.api.reviews.toggle_helpful_vote",
            return_value={"helpful_votes": 3, "user_voted": True},
        ):
            response = self.client.post(f"/reviews/{uuid4()}/helpful")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"], {"helpfulVotes": 3, "userVoted": True})

    def test_helpful_on_own_review_is_400(self) -> None:
        self._login()
        with patch("app.api.reviews.toggle_helpful_vote", side_effect=SelfVoteError("own")):
            response = self.client.post(f"/reviews/{uuid4()}/helpful")
        self.assertEqual(response.status_code, 400)

    def test_list_forwards_filters(self) -> None:
        movie_id = uuid4()
        pagination = {"current": 2, "pages": 3, "total": 25, "limit": 10}
        with patch("app.api.reviews.list_reviews", return_value=([_review()], pagination)) as mocked:
            response = self.client.get(
                f"/reviews?movieId={movie_id}&minRating=3&sort=helpfulVotes&page=2",
            )

        self.assertEqual(response.status_code, 200)
        kwargs = mocked.call_args.kwargs
        self.assertEqual(kwargs["movie_id"], movie_id)
        self.assertEqual(kwargs["min_rating"], 3)
        self.assertEqual(kwargs["page"], 2)
        self.assertEqual(response.json()["data"]["pagination"]["total"], 25)

    def test_recent_route_is_not_an_id(self) -> None:
        with patch("app.api.reviews.get_recent_reviews", return_value=[_review()]):
            response = self.client.get("/reviews/recent?limit=5")
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()["data"]["pagination"])

    def test_moderation_requires_admin(self) -> None:
        self._login(is_admin=False)
        response = self.client.patch(f"/reviews/{uuid4()}/status", json={"status": "rejected"})
        self.assertEqual(response.status_code, 403)

        self._login(is_admin=True)
        with patch(
            "app.api.reviews.set_review_status",
            return_value=_review(status=ReviewStatusEnum.REJECTED),
        ) as mocked:
            response = self.client.patch(f"/reviews/{uuid4()}/status", json={"status": "rejected"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(mocked.call_args.args[2], ReviewStatusEnum.REJECTED)

import unittest
from unittest.mock import MagicMock, patch
from uuid import uuid4

from db_fixtures import SQLiteTestCase

from app.db.models import Review, ReviewStatusEnum
from app.schemas.reviews import CreateReviewRequest, UpdateReviewRequest
from app.services import review_service
from app.services.movie_service import MovieNotFoundError, get_movie_by_id
from app.services.rating_service import compute_rating_summary, round_rating
from app.services.review_service import (
    DuplicateReviewError,
    NotReviewOwnerError,
    ReviewNotFoundError,
    SelfVoteError,
    create_review,
    delete_review,
    list_reviews,
    set_review_status,
    toggle_helpful_vote,
    update_review,
)

LONG_TEXT = "A patient, moving film about language and time."


def _payload(movie_id, rating: float, text: str = LONG_TEXT) -> CreateReviewRequest:
    return CreateReviewRequest(movie_id=movie_id, rating=rating, review_text=text)


class TestRatingMath(unittest.TestCase):
    def test_round_rating_is_half_up(self) -> None:
        self.assertEqual(round_rating(3.25), 3.3)
        self.assertEqual(round_rating(3.35), 3.4)
        self.assertEqual(round_rating(4.0), 4.0)

    def test_compute_rating_summary(self) -> None:
        self.assertEqual(compute_rating_summary([]), (0.0, 0))
        self.assertEqual(compute_rating_summary([4, 3, 3]), (3.3, 3))
        self.assertEqual(compute_rating_summary([3.5, 3.0]), (3.3, 2))


class TestReviewAggregate(SQLiteTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice = self.make_user("alice")
        self.bob = self.make_user("bob")
        self.movie = self.make_movie(329865)

    def _movie(self):
        self.db.expire_all()
        return get_movie_by_id(self.db, self.movie.id)

    def test_create_recomputes_average_and_count(self) -> None:
        create_review(self.db, self.alice.id, _payload(self.movie.id, 4))
        movie = self._movie()
        self.assertEqual(movie.average_rating, 4.0)
        self.assertEqual(movie.review_count, 1)

        create_review(self.db, self.bob.id, _payload(self.movie.id, 2))
        movie = self._movie()
        self.assertEqual(movie.average_rating, 3.0)
        self.assertEqual(movie.review_count, 2)

    def test_review_copies_tmdb_id_from_movie(self) -> None:
        review = create_review(self.db, self.alice.id, _payload(self.movie.id, 4.5))
        self.assertEqual(review["tmdb_movie_id"], 329865)
        self.assertEqual(review["user"]["username"], "alice")
        self.assertEqual(review["movie"]["title"], "Arrival")

    def test_unknown_movie_raises(self) -> None:
        with self.assertRaises(MovieNotFoundError):
            create_review(self.db, self.alice.id, _payload(uuid4(), 4))

    def test_second_review_for_same_movie_is_rejected(self) -> None:
        create_review(self.db, self.alice.id, _payload(self.movie.id, 4))
        with self.assertRaises(DuplicateReviewError):
            create_review(self.db, self.alice.id, _payload(self.movie.id, 5))
        self.assertEqual(self.db.query(Review).count(), 1)

    def test_only_approved_reviews_count(self) -> None:
        create_review(self.db, self.alice.id, _payload(self.movie.id, 4))
        pending = create_review(self.db, self.bob.id, _payload(self.movie.id, 2))

        set_review_status(self.db, pending["id"], ReviewStatusEnum.PENDING)
        movie = self._movie()
        self.assertEqual(movie.average_rating, 4.0)
        self.assertEqual(movie.review_count, 1)

        reviews, meta = list_reviews(self.db, movie_id=self.movie.id)
        self.assertEqual([r["user"]["username"] for r in reviews], ["alice"])
        self.assertEqual(meta["total"], 1)

    def test_update_and_delete_refresh_aggregate(self) -> None:
        review = create_review(self.db, self.alice.id, _payload(self.movie.id, 4))

        updated = update_review(
            self.db, self.alice.id, review["id"], UpdateReviewRequest(rating=2.5),
        )
        self.assertIsNotNone(updated["last_edited_at"])
        self.assertEqual(self._movie().average_rating, 2.5)

        delete_review(self.db, self.alice.id, review["id"])
        movie = self._movie()
        self.assertEqual(movie.average_rating, 0.0)
        self.assertEqual(movie.review_count, 0)

    def test_update_without_rating_change_skips_refresh(self) -> None:
        review = create_review(self.db, self.alice.id, _payload(self.movie.id, 4))
        refresh = MagicMock()

        update_review(
            self.db,
            self.alice.id,
            review["id"],
            UpdateReviewRequest(review_text="Even better on a second viewing."),
            refresh=refresh,
        )
        refresh.assert_not_called()

    def test_create_calls_injected_refresh(self) -> None:
        refresh = MagicMock()
        create_review(self.db, self.alice.id, _payload(self.movie.id, 4), refresh=refresh)
        refresh.assert_called_once_with(self.db, self.movie.id)

    def test_only_owner_may_modify(self) -> None:
        review = create_review(self.db, self.alice.id, _payload(self.movie.id, 4))
        with self.assertRaises(NotReviewOwnerError):
            update_review(self.db, self.bob.id, review["id"], UpdateReviewRequest(rating=1))
        with self.assertRaises(NotReviewOwnerError):
            delete_review(self.db, self.bob.id, review["id"])

    def test_missing_review_raises(self) -> None:
        with self.assertRaises(ReviewNotFoundError):
            delete_review(self.db, self.alice.id, uuid4())


class TestHelpfulVotes(SQLiteTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.author = self.make_user("author")
        self.reader = self.make_user("reader")
        movie = self.make_movie(603)
        self.review = create_review(self.db, self.author.id, _payload(movie.id, 5))

    def test_toggle_twice_restores_count(self) -> None:
        first = toggle_helpful_vote(self.db, self.reader.id, self.review["id"])
        self.assertEqual(first, {"helpful_votes": 1, "user_voted": True})

        second = toggle_helpful_vote(self.db, self.reader.id, self.review["id"])
        self.assertEqual(second, {"helpful_votes": 0, "user_voted": False})

    def test_concurrent_duplicate_vote_keeps_stored_state(self) -> None:
        toggle_helpful_vote(self.db, self.reader.id, self.review["id"])
        self.db.expunge_all()

        real_find_vote = review_service._find_vote
        lookups = []

        def stale_then_real(db, user_id, review_id):
            lookups.append(review_id)
            if len(lookups) == 1:
                return None
            return real_find_vote(db, user_id, review_id)

        with patch.object(review_service, "_find_vote", side_effect=stale_then_real):
            result = toggle_helpful_vote(self.db, self.reader.id, self.review["id"])

        self.assertEqual(result, {"helpful_votes": 1, "user_voted": True})
        stored = self.db.query(Review).filter(Review.id == self.review["id"]).one()
        self.assertEqual(stored.helpful_votes, 1)

    def test_own_review_vote_rejected_without_mutation(self) -> None:
        with self.assertRaises(SelfVoteError):
            toggle_helpful_vote(self.db, self.author.id, self.review["id"])

        stored = self.db.query(Review).filter(Review.id == self.review["id"]).one()
        self.assertEqual(stored.helpful_votes, 0)

    def test_vote_on_missing_review(self) -> None:
        with self.assertRaises(ReviewNotFoundError):
            toggle_helpful_vote(self.db, self.reader.id, uuid4())

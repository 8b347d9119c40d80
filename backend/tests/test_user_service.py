from uuid import uuid4

from db_fixtures import SQLiteTestCase

from app.db.models import Review, ReviewStatusEnum, WatchlistItem
from app.services.user_service import (
    UserNotFoundError,
    get_top_reviewers,
    get_user_profile,
    search_users,
)


class TestUserService(SQLiteTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice = self.make_user("alice", bio="Sci-fi first.")
        self.bob = self.make_user("bob")
        self.ghost = self.make_user("ghost", is_active=False)
        self.movies = [self.make_movie(100 + i, f"Movie {i}") for i in range(3)]

    def _review(self, user, movie, rating: float, status=ReviewStatusEnum.APPROVED) -> None:
        self.db.add(Review(
            user_id=user.id,
            movie_id=movie.id,
            tmdb_movie_id=movie.tmdb_id,
            rating=rating,
            review_text="Long enough review text.",
            status=status,
        ))
        self.db.commit()

    def _watch(self, user, movie, is_public: bool = True) -> None:
        self.db.add(WatchlistItem(
            user_id=user.id,
            movie_id=movie.id,
            tmdb_movie_id=movie.tmdb_id,
            is_public=is_public,
        ))
        self.db.commit()

    def test_search_skips_inactive_users(self) -> None:
        users, meta = search_users(self.db, search="bo")
        self.assertEqual([u["username"] for u in users], ["bob"])
        self.assertEqual(meta["total"], 1)

        everyone, _ = search_users(self.db)
        self.assertEqual({u["username"] for u in everyone}, {"alice", "bob"})

    def test_profile_counts_respect_visibility(self) -> None:
        self._review(self.alice, self.movies[0], 4)
        self._review(self.alice, self.movies[1], 2, status=ReviewStatusEnum.REJECTED)
        self._watch(self.alice, self.movies[0])
        self._watch(self.alice, self.movies[1], is_public=False)

        as_owner = get_user_profile(self.db, self.alice.id, viewer_id=self.alice.id)
        self.assertEqual(as_owner["review_count"], 1)
        self.assertEqual(as_owner["watchlist_count"], 2)
        self.assertEqual(as_owner["bio"], "Sci-fi first.")

        as_stranger = get_user_profile(self.db, self.alice.id, viewer_id=self.bob.id)
        self.assertEqual(as_stranger["watchlist_count"], 1)

    def test_profile_of_missing_or_inactive_user(self) -> None:
        with self.assertRaises(UserNotFoundError):
            get_user_profile(self.db, uuid4())
        with self.assertRaises(UserNotFoundError):
            get_user_profile(self.db, self.ghost.id)

    def test_top_reviewers_ranked_by_approved_count(self) -> None:
        self._review(self.alice, self.movies[0], 4)
        self._review(self.alice, self.movies[1], 3.5)
        self._review(self.bob, self.movies[0], 5)
        self._review(self.bob, self.movies[1], 1, status=ReviewStatusEnum.PENDING)

        top = get_top_reviewers(self.db)
        self.assertEqual([t["user"]["username"] for t in top], ["alice", "bob"])
        self.assertEqual(top[0]["review_count"], 2)
        self.assertEqual(top[0]["average_rating"], 3.8)
        self.assertEqual(top[1]["review_count"], 1)

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from db_fixtures import SQLiteTestCase

from app.db.models import PriorityEnum, WatchlistItem, WatchStatusEnum
from app.schemas.common import SortOrder
from app.schemas.watchlist import AddWatchlistRequest, UpdateWatchlistRequest, WatchlistSortField
from app.services.movie_service import MovieNotFoundError
from app.services.watchlist_service import (
    DuplicateWatchlistItemError,
    InvalidWatchlistUpdateError,
    NotWatchlistOwnerError,
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


class TestWatchlistService(SQLiteTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.owner = self.make_user("owner")
        self.viewer = self.make_user("viewer")
        self.arrival = self.make_movie(329865, "Arrival")
        self.matrix = self.make_movie(603, "The Matrix")
        self.heat = self.make_movie(949, "Heat")

    def _add(self, movie, user=None, **fields) -> dict:
        payload = AddWatchlistRequest(movie_id=movie.id, **fields)
        return add_to_watchlist(self.db, (user or self.owner).id, payload)

    def test_add_copies_tmdb_id_and_defaults(self) -> None:
        item = self._add(self.arrival)
        self.assertEqual(item["tmdb_movie_id"], 329865)
        self.assertEqual(item["priority"], PriorityEnum.MEDIUM)
        self.assertEqual(item["status"], WatchStatusEnum.WANT_TO_WATCH)
        self.assertTrue(item["is_public"])
        self.assertIsNone(item["watched_date"])

    def test_duplicate_add_is_rejected(self) -> None:
        self._add(self.arrival)
        with self.assertRaises(DuplicateWatchlistItemError):
            self._add(self.arrival)
        self.assertEqual(self.db.query(WatchlistItem).count(), 1)

    def test_add_unknown_movie(self) -> None:
        with self.assertRaises(MovieNotFoundError):
            add_to_watchlist(self.db, self.owner.id, AddWatchlistRequest(movie_id=uuid4()))

    def test_add_as_watched_requires_rating(self) -> None:
        with self.assertRaises(InvalidWatchlistUpdateError):
            self._add(self.arrival, status=WatchStatusEnum.WATCHED)

        item = self._add(self.arrival, status=WatchStatusEnum.WATCHED, user_rating=4)
        self.assertIsNotNone(item["watched_date"])

    def test_mark_as_watched_never_overwrites_watched_date(self) -> None:
        item = self._add(self.arrival)

        first = mark_as_watched(self.db, self.owner.id, item["id"], rating=5)
        self.assertEqual(first["status"], WatchStatusEnum.WATCHED)
        self.assertEqual(first["user_rating"], 5)
        self.assertIsNotNone(first["watched_date"])

        second = mark_as_watched(self.db, self.owner.id, item["id"])
        self.assertEqual(second["watched_date"], first["watched_date"])
        self.assertEqual(second["user_rating"], 5)

    def test_update_into_watched_uses_existing_rating(self) -> None:
        item = self._add(self.arrival, user_rating=3)
        updated = update_watchlist_item(
            self.db,
            self.owner.id,
            item["id"],
            UpdateWatchlistRequest(status=WatchStatusEnum.WATCHED, notes="  finally  "),
        )
        self.assertEqual(updated["status"], WatchStatusEnum.WATCHED)
        self.assertEqual(updated["notes"], "finally")
        self.assertIsNotNone(updated["watched_date"])

    def test_only_owner_may_modify(self) -> None:
        item = self._add(self.arrival)
        with self.assertRaises(NotWatchlistOwnerError):
            update_watchlist_item(
                self.db, self.viewer.id, item["id"], UpdateWatchlistRequest(notes="mine now"),
            )
        with self.assertRaises(NotWatchlistOwnerError):
            remove_from_watchlist(self.db, self.viewer.id, item["id"])

    def test_visibility_of_private_entries(self) -> None:
        self._add(self.arrival)
        self._add(self.matrix, is_public=False)

        own, own_meta = list_watchlist(self.db, self.owner.id, viewer_id=self.owner.id)
        self.assertEqual(own_meta["total"], 2)

        public, public_meta = list_watchlist(self.db, self.owner.id, viewer_id=self.viewer.id)
        self.assertEqual(public_meta["total"], 1)
        self.assertEqual(public[0]["movie"]["title"], "Arrival")

        anonymous, _ = list_watchlist(self.db, self.owner.id, viewer_id=None)
        self.assertEqual(len(anonymous), 1)

    def test_priority_sort_and_filters(self) -> None:
        self._add(self.arrival, priority=PriorityEnum.LOW)
        self._add(self.matrix, priority=PriorityEnum.HIGH)
        self._add(self.heat, priority=PriorityEnum.MEDIUM, status=WatchStatusEnum.WATCHING)

        items, _ = list_watchlist(
            self.db,
            self.owner.id,
            viewer_id=self.owner.id,
            sort=WatchlistSortField.PRIORITY,
            order=SortOrder.DESC,
        )
        self.assertEqual([i["movie"]["title"] for i in items], ["The Matrix", "Heat", "Arrival"])

        watching, meta = list_watchlist(
            self.db,
            self.owner.id,
            viewer_id=self.owner.id,
            status=WatchStatusEnum.WATCHING,
        )
        self.assertEqual(meta["total"], 1)
        self.assertEqual(watching[0]["movie"]["title"], "Heat")

    def test_pagination_meta(self) -> None:
        for movie in (self.arrival, self.matrix, self.heat):
            self._add(movie)
        items, meta = list_watchlist(
            self.db, self.owner.id, viewer_id=self.owner.id, page=2, limit=2,
        )
        self.assertEqual(len(items), 1)
        self.assertEqual(meta, {"current": 2, "pages": 2, "total": 3, "limit": 2})

    def test_stats_and_check(self) -> None:
        self._add(self.arrival)
        self._add(self.matrix, status=WatchStatusEnum.DROPPED)

        stats = get_watchlist_stats(self.db, self.owner.id)
        self.assertEqual(
            stats,
            {"want_to_watch": 1, "watching": 0, "watched": 0, "dropped": 1, "total": 2},
        )

        hit = check_in_watchlist(self.db, self.owner.id, 603)
        self.assertTrue(hit["in_watchlist"])
        self.assertEqual(hit["item"]["status"], WatchStatusEnum.DROPPED)
        self.assertEqual(check_in_watchlist(self.db, self.owner.id, 949), {"in_watchlist": False, "item": None})

    def test_due_reminders(self) -> None:
        now = datetime.now(timezone.utc)
        self._add(self.arrival, reminder_enabled=True, reminder_date=now - timedelta(days=1))
        self._add(self.matrix, reminder_enabled=True, reminder_date=now + timedelta(days=3))
        self._add(self.heat, reminder_enabled=False, reminder_date=now - timedelta(days=1))

        due = get_due_reminders(self.db, self.owner.id, now=now)
        self.assertEqual([i["movie"]["title"] for i in due], ["Arrival"])

    def test_popular_watchlist_movies(self) -> None:
        self._add(self.matrix)
        self._add(self.matrix, user=self.viewer)
        self._add(self.arrival, user=self.viewer)

        popular = get_popular_watchlist_movies(self.db, limit=5)
        self.assertEqual(popular[0]["movie"]["title"], "The Matrix")
        self.assertEqual(popular[0]["watchlist_count"], 2)
        self.assertEqual(popular[1]["watchlist_count"], 1)

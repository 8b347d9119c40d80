"""Initial schema — users, movies, reviews, review_helpful_votes, watchlist_items

Revision ID: 0001
Revises: —
Create Date: 2026-10-17 00:00:00
"""
from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True),
                  nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True),
                  nullable=False, server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────────
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # ── Trigger function (auto-update updated_at) ─────────────────────────────
    op.execute("""
        CREATE OR REPLACE FUNCTION set_updated_at()
        RETURNS trigger
        LANGUAGE plpgsql
        AS $$
        BEGIN
          NEW.updated_at = now();
          RETURN NEW;
        END;
        $$
    """)

    # ── users ─────────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True,
                  server_default=sa.text("gen_random_uuid()")),
        sa.Column("username", sa.String(32), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String, nullable=False),
        sa.Column("profile_picture", sa.String(500), nullable=True),
        sa.Column("bio", sa.String(280), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("is_admin", sa.Boolean, nullable=False, server_default="false"),
        *_timestamps(),
        sa.CheckConstraint(
            r"username ~ '^[a-z0-9_]{3,32}$'",
            name="chk_username_format",
        ),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ── movies ────────────────────────────────────────────────────────────────
    op.create_table(
        "movies",
        sa.Column("id", UUID(as_uuid=True), primary_key=True,
                  server_default=sa.text("gen_random_uuid()")),
        sa.Column("tmdb_id", sa.Integer, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("original_title", sa.String(200), nullable=True),
        sa.Column("overview", sa.Text, nullable=True),
        sa.Column("genres", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("genre_names", sa.String(500), nullable=False, server_default=""),
        sa.Column("release_date", sa.Date, nullable=True),
        sa.Column("runtime", sa.Integer, nullable=True),
        sa.Column("director", sa.String(200), nullable=True),
        sa.Column("cast", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("cast_names", sa.Text, nullable=False, server_default=""),
        sa.Column("poster_path", sa.String(300), nullable=True),
        sa.Column("backdrop_path", sa.String(300), nullable=True),
        sa.Column("tagline", sa.String(500), nullable=True),
        # release_status values: Rumored / Planned / In Production / ...
        sa.Column("status", sa.String(20), nullable=True),
        sa.Column("budget", sa.BigInteger, nullable=True),
        sa.Column("revenue", sa.BigInteger, nullable=True),
        sa.Column("original_language", sa.String(10), nullable=True),
        sa.Column("adult", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("tmdb_vote_average", sa.Float, nullable=False, server_default="0"),
        sa.Column("tmdb_vote_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("average_rating", sa.Float, nullable=False, server_default="0"),
        sa.Column("review_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("popularity", sa.Float, nullable=False, server_default="0"),
        sa.Column("last_sync_date", sa.DateTime(timezone=True),
                  nullable=False, server_default=sa.text("now()")),
        *_timestamps(),
        sa.CheckConstraint("runtime IS NULL OR runtime >= 1", name="chk_movie_runtime"),
        sa.CheckConstraint(
            "tmdb_vote_average >= 0 AND tmdb_vote_average <= 10",
            name="chk_movie_tmdb_vote_average",
        ),
        sa.CheckConstraint(
            "average_rating >= 0 AND average_rating <= 5",
            name="chk_movie_average_rating",
        ),
        sa.CheckConstraint("review_count >= 0", name="chk_movie_review_count"),
        sa.CheckConstraint(
            "(budget IS NULL OR budget >= 0) AND (revenue IS NULL OR revenue >= 0)",
            name="chk_movie_money",
        ),
    )
    op.create_index("ix_movies_tmdb_id", "movies", ["tmdb_id"], unique=True)
    op.create_index("ix_movies_title", "movies", ["title"])
    op.create_index("ix_movies_release_date", "movies", ["release_date"])
    op.create_index("ix_movies_popularity", "movies", ["popularity"])
    op.create_index("idx_movies_release_rating", "movies", ["release_date", "average_rating"])

    # ── reviews ───────────────────────────────────────────────────────────────
    op.create_table(
        "reviews",
        sa.Column("id", UUID(as_uuid=True), primary_key=True,
                  server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", UUID(as_uuid=True),
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("movie_id", UUID(as_uuid=True),
                  sa.ForeignKey("movies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tmdb_movie_id", sa.Integer, nullable=False),
        sa.Column("rating", sa.Float, nullable=False),
        sa.Column("review_text", sa.Text, nullable=False),
        sa.Column("title", sa.String(100), nullable=True),
        sa.Column("helpful_votes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="approved"),
        sa.Column("contains_spoilers", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("last_edited_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "movie_id", name="uq_review_user_movie"),
        sa.UniqueConstraint("user_id", "tmdb_movie_id", name="uq_review_user_tmdb"),
        sa.CheckConstraint(
            "rating >= 1 AND rating <= 5 AND rating * 2 = round(rating * 2)",
            name="chk_review_rating",
        ),
        sa.CheckConstraint(
            "length(trim(review_text)) >= 10 AND length(trim(review_text)) <= 2000",
            name="chk_review_text_len",
        ),
        sa.CheckConstraint("helpful_votes >= 0", name="chk_review_helpful_votes"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'flagged')",
            name="chk_review_status",
        ),
    )
    op.create_index("ix_reviews_user_id", "reviews", ["user_id"])
    op.create_index("ix_reviews_movie_id", "reviews", ["movie_id"])
    op.create_index("ix_reviews_tmdb_movie_id", "reviews", ["tmdb_movie_id"])
    op.create_index("ix_reviews_created_at", "reviews", ["created_at"])
    op.create_index("idx_reviews_status_created", "reviews", ["status", "created_at"])

    # ── review_helpful_votes ──────────────────────────────────────────────────
    op.create_table(
        "review_helpful_votes",
        sa.Column("review_id", UUID(as_uuid=True),
                  sa.ForeignKey("reviews.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True),
                  sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True),
                  nullable=False, server_default=sa.text("now()")),
    )

    # ── watchlist_items ───────────────────────────────────────────────────────
    op.create_table(
        "watchlist_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True,
                  server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", UUID(as_uuid=True),
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("movie_id", UUID(as_uuid=True),
                  sa.ForeignKey("movies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tmdb_movie_id", sa.Integer, nullable=False),
        sa.Column("date_added", sa.DateTime(timezone=True),
                  nullable=False, server_default=sa.text("now()")),
        sa.Column("priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="want_to_watch"),
        sa.Column("watched_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("user_rating", sa.Integer, nullable=True),
        sa.Column("reminder_enabled", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("reminder_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tags", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "movie_id", name="uq_watchlist_user_movie"),
        sa.UniqueConstraint("user_id", "tmdb_movie_id", name="uq_watchlist_user_tmdb"),
        sa.CheckConstraint(
            "user_rating IS NULL OR (user_rating >= 1 AND user_rating <= 5)",
            name="chk_watchlist_user_rating",
        ),
        sa.CheckConstraint(
            "priority IN ('low', 'medium', 'high')",
            name="chk_watchlist_priority",
        ),
        sa.CheckConstraint(
            "status IN ('want_to_watch', 'watching', 'watched', 'dropped')",
            name="chk_watchlist_status",
        ),
    )
    op.create_index("ix_watchlist_items_user_id", "watchlist_items", ["user_id"])
    op.create_index("ix_watchlist_items_movie_id", "watchlist_items", ["movie_id"])
    op.create_index("ix_watchlist_items_tmdb_movie_id", "watchlist_items", ["tmdb_movie_id"])
    op.create_index("ix_watchlist_items_date_added", "watchlist_items", ["date_added"])
    op.create_index(
        "idx_watchlist_user_status_added",
        "watchlist_items",
        ["user_id", "status", "date_added"],
    )
    op.create_index(
        "idx_watchlist_user_priority_added",
        "watchlist_items",
        ["user_id", "priority", "date_added"],
    )
    op.create_index(
        "idx_watchlist_reminders",
        "watchlist_items",
        ["reminder_enabled", "reminder_date"],
    )

    for table in ("users", "movies", "reviews", "watchlist_items"):
        op.execute(f"""
            CREATE TRIGGER trg_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW EXECUTE FUNCTION set_updated_at()
        """)


def downgrade() -> None:
    for table in ("watchlist_items", "reviews", "movies", "users"):
        op.execute(f"DROP TRIGGER IF EXISTS trg_{table}_updated_at ON {table}")

    op.drop_table("watchlist_items")
    op.drop_table("review_helpful_votes")
    op.drop_table("reviews")
    op.drop_table("movies")
    op.drop_table("users")
    op.execute("DROP FUNCTION IF EXISTS set_updated_at()")

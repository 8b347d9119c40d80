"""
SQLAlchemy ORM models.

Column names, constraints and indexes mirror alembic/versions/0001 exactly.
Types are the portable SQLAlchemy ones (Uuid, JSON with a JSONB variant,
non-native enums) so the same models run on Postgres and on the SQLite
database used by the test-suite.

Derived fields (Movie.average_rating / review_count, Movie.genre_names /
cast_names) are never written by handlers directly; see rating_service and
movie_service.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, relationship


# ── Base ──────────────────────────────────────────────────────────────────────

class Base(DeclarativeBase):
    pass


# ── Enums ─────────────────────────────────────────────────────────────────────

class ReviewStatusEnum(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FLAGGED = "flagged"


class WatchStatusEnum(str, PyEnum):
    WANT_TO_WATCH = "want_to_watch"
    WATCHING = "watching"
    WATCHED = "watched"
    DROPPED = "dropped"


class PriorityEnum(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ReleaseStatusEnum(str, PyEnum):
    RUMORED = "Rumored"
    PLANNED = "Planned"
    IN_PRODUCTION = "In Production"
    POST_PRODUCTION = "Post Production"
    RELEASED = "Released"
    CANCELED = "Canceled"


def _enum_type(enum_cls: type[PyEnum], name: str) -> SAEnum:
    """Store enum *values* (not member names) in a plain VARCHAR column."""
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


JSONType = JSON().with_variant(JSONB(), "postgresql")


# ── Timestamp helper ──────────────────────────────────────────────────────────

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Models ────────────────────────────────────────────────────────────────────

class User(Base):
    """
    Application user.

    Usernames are stored lower-case; lookups normalise before comparing.
    """
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(32), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    profile_picture = Column(String(500), nullable=True)
    bio = Column(String(280), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    reviews = relationship(
        "Review",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )
    watchlist_items = relationship(
        "WatchlistItem",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"


class Movie(Base):
    """
    A movie synced from TMDB, keyed externally by tmdb_id.

    genres / cast are JSON lists of small records:
        genres: [{"id": 878, "name": "Science Fiction"}, ...]
        cast:   [{"id": 1, "name": "...", "character": "...",
                  "profilePath": "/x.jpg", "order": 0}, ...]

    genre_names / cast_names are pipe-joined copies of the names, kept in
    sync by movie_service so filters stay plain ILIKE predicates.
    """
    __tablename__ = "movies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tmdb_id = Column(Integer, unique=True, nullable=False, index=True)
    title = Column(String(200), nullable=False, index=True)
    original_title = Column(String(200), nullable=True)
    overview = Column(Text, nullable=True)
    genres = Column(JSONType, nullable=False, default=list)
    genre_names = Column(String(500), nullable=False, default="")
    release_date = Column(Date, nullable=True, index=True)
    runtime = Column(Integer, nullable=True)
    director = Column(String(200), nullable=True)
    cast = Column(JSONType, nullable=False, default=list)
    cast_names = Column(Text, nullable=False, default="")
    poster_path = Column(String(300), nullable=True)
    backdrop_path = Column(String(300), nullable=True)
    tagline = Column(String(500), nullable=True)
    status = Column(_enum_type(ReleaseStatusEnum, "release_status"), nullable=True)
    budget = Column(BigInteger, nullable=True)
    revenue = Column(BigInteger, nullable=True)
    original_language = Column(String(10), nullable=True)
    adult = Column(Boolean, default=False, nullable=False)
    # TMDB's own rating (0-10)
    tmdb_vote_average = Column(Float, default=0.0, nullable=False)
    tmdb_vote_count = Column(Integer, default=0, nullable=False)
    # Platform rating (0-5), derived from approved reviews
    average_rating = Column(Float, default=0.0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)
    popularity = Column(Float, default=0.0, nullable=False, index=True)
    last_sync_date = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("runtime IS NULL OR runtime >= 1", name="chk_movie_runtime"),
        CheckConstraint(
            "tmdb_vote_average >= 0 AND tmdb_vote_average <= 10",
            name="chk_movie_tmdb_vote_average",
        ),
        CheckConstraint(
            "average_rating >= 0 AND average_rating <= 5",
            name="chk_movie_average_rating",
        ),
        CheckConstraint("review_count >= 0", name="chk_movie_review_count"),
        CheckConstraint(
            "(budget IS NULL OR budget >= 0) AND (revenue IS NULL OR revenue >= 0)",
            name="chk_movie_money",
        ),
        Index("idx_movies_release_rating", "release_date", "average_rating"),
    )

    reviews = relationship("Review", back_populates="movie", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Movie id={self.id} tmdb_id={self.tmdb_id} title={self.title!r}>"


class Review(Base):
    """
    One user's review of one movie (unique per pair).

    rating is 1-5 in half steps. Only APPROVED reviews count toward the
    movie aggregate and public listings.
    """
    __tablename__ = "reviews"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    movie_id = Column(
        Uuid,
        ForeignKey("movies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tmdb_movie_id = Column(Integer, nullable=False, index=True)
    rating = Column(Float, nullable=False)
    review_text = Column(Text, nullable=False)
    title = Column(String(100), nullable=True)
    helpful_votes = Column(Integer, default=0, nullable=False)
    status = Column(
        _enum_type(ReviewStatusEnum, "review_status"),
        nullable=False,
        default=ReviewStatusEnum.APPROVED,
    )
    contains_spoilers = Column(Boolean, default=False, nullable=False)
    last_edited_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="uq_review_user_movie"),
        UniqueConstraint("user_id", "tmdb_movie_id", name="uq_review_user_tmdb"),
        CheckConstraint(
            "rating >= 1 AND rating <= 5 AND rating * 2 = round(rating * 2)",
            name="chk_review_rating",
        ),
        CheckConstraint(
            "length(trim(review_text)) >= 10 AND length(trim(review_text)) <= 2000",
            name="chk_review_text_len",
        ),
        CheckConstraint("helpful_votes >= 0", name="chk_review_helpful_votes"),
        Index("idx_reviews_status_created", "status", "created_at"),
    )

    user = relationship("User", back_populates="reviews")
    movie = relationship("Movie", back_populates="reviews")
    helpful_voters = relationship(
        "ReviewHelpfulVote",
        back_populates="review",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Review user={self.user_id} movie={self.movie_id} rating={self.rating}>"


class ReviewHelpfulVote(Base):
    """One helpful vote per user per review."""
    __tablename__ = "review_helpful_votes"

    review_id = Column(
        Uuid,
        ForeignKey("reviews.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    review = relationship("Review", back_populates="helpful_voters")
    user = relationship("User")


class WatchlistItem(Base):
    """
    A per-user, per-movie watchlist entry.

    watched_date is stamped the first time the entry reaches WATCHED and is
    never overwritten afterwards.
    """
    __tablename__ = "watchlist_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    movie_id = Column(
        Uuid,
        ForeignKey("movies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tmdb_movie_id = Column(Integer, nullable=False, index=True)
    date_added = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    priority = Column(
        _enum_type(PriorityEnum, "watchlist_priority"),
        nullable=False,
        default=PriorityEnum.MEDIUM,
    )
    notes = Column(String(500), nullable=True)
    status = Column(
        _enum_type(WatchStatusEnum, "watch_status"),
        nullable=False,
        default=WatchStatusEnum.WANT_TO_WATCH,
    )
    watched_date = Column(DateTime(timezone=True), nullable=True)
    user_rating = Column(Integer, nullable=True)
    reminder_enabled = Column(Boolean, default=False, nullable=False)
    reminder_date = Column(DateTime(timezone=True), nullable=True)
    tags = Column(JSONType, nullable=False, default=list)
    is_public = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="uq_watchlist_user_movie"),
        UniqueConstraint("user_id", "tmdb_movie_id", name="uq_watchlist_user_tmdb"),
        CheckConstraint(
            "user_rating IS NULL OR (user_rating >= 1 AND user_rating <= 5)",
            name="chk_watchlist_user_rating",
        ),
        Index("idx_watchlist_user_status_added", "user_id", "status", "date_added"),
        Index("idx_watchlist_user_priority_added", "user_id", "priority", "date_added"),
        Index("idx_watchlist_reminders", "reminder_enabled", "reminder_date"),
    )

    user = relationship("User", back_populates="watchlist_items")
    movie = relationship("Movie")

    def __repr__(self) -> str:
        return f"<WatchlistItem user={self.user_id} movie={self.movie_id} status={self.status}>"

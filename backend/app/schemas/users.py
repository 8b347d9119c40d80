"""
Public user profile schemas.
"""
from datetime import datetime
from uuid import UUID

from app.schemas.common import CamelModel, PaginationMeta


class PublicUser(CamelModel):
    """What anyone may see about a user."""

    id: UUID
    username: str
    profile_picture: str | None = None
    bio: str | None = None
    join_date: datetime


class UserProfile(PublicUser):
    review_count: int = 0
    watchlist_count: int = 0


class UserProfileData(CamelModel):
    user: UserProfile


class UserListData(CamelModel):
    users: list[PublicUser]
    pagination: PaginationMeta


class TopReviewer(CamelModel):
    user: PublicUser
    review_count: int
    average_rating: float


class TopReviewersData(CamelModel):
    top_reviewers: list[TopReviewer]

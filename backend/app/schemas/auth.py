"""
Account schemas — signup, login token, own profile.
"""
import re
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.common import CamelModel

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,32}$")
MIN_PASSWORD_LENGTH = 8


class SignupRequest(BaseModel):
    """Payload for POST /auth/signup."""

    username: str
    email: EmailStr
    password: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not USERNAME_PATTERN.match(v):
            raise ValueError(
                "Username must be 3-32 characters of letters, digits and underscores"
            )
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return v


class ProfileUpdateRequest(CamelModel):
    """PUT /auth/me; omitted fields are left alone, null clears them."""

    profile_picture: str | None = Field(default=None, max_length=500)
    bio: str | None = Field(default=None, max_length=280)

    @field_validator("profile_picture", "bio")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class TokenResponse(BaseModel):
    """Returned by /auth/login in the plain OAuth2 shape."""

    access_token: str
    token_type: str = "bearer"


class UserResponse(CamelModel):
    """The authenticated user's own account."""

    id: UUID
    username: str
    email: str
    profile_picture: str | None = None
    bio: str | None = None
    is_admin: bool = False
    created_at: datetime


class SignupData(CamelModel):
    user: UserResponse
    token: str


class MeData(CamelModel):
    user: UserResponse

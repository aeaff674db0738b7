"""Account, authentication, and follow request/response schemas."""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import Field

from domugrauds.models.account import Account
from domugrauds.schemas.common import CamelModel, UTCDateTime


class RegisterRequest(CamelModel):
    """Registration payload; business rules are enforced by the account service."""

    username: str = Field(min_length=1, max_length=64)
    display_name: str = Field(min_length=1, max_length=128)
    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=256)
    bio: str | None = Field(default=None, max_length=1000)
    avatar: str | None = Field(default=None, max_length=512)


class LoginRequest(CamelModel):
    """Password login payload."""

    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=256)


class ProfileUpdateRequest(CamelModel):
    """Partial update of the caller's own profile."""

    username: str | None = Field(default=None, max_length=64)
    display_name: str | None = Field(default=None, max_length=128)
    bio: str | None = Field(default=None, max_length=1000)
    avatar: str | None = Field(default=None, max_length=512)


class FollowRequest(CamelModel):
    """Follow or unfollow another account."""

    user_id: UUID
    action: Literal["follow", "unfollow"]


class AccountOut(CamelModel):
    """Public account representation; never includes credential material."""

    id: UUID
    username: str
    display_name: str
    email: str
    avatar: str | None = None
    bio: str | None = None
    role: str
    following: list[str] = Field(default_factory=list)
    followers: list[str] = Field(default_factory=list)
    created_at: UTCDateTime

    @classmethod
    def from_account(
        cls,
        account: Account,
        following: list[str] | None = None,
        followers: list[str] | None = None,
    ) -> AccountOut:
        """Build the public view of an account with its follow sets."""
        return cls(
            id=account.id,
            username=account.username,
            display_name=account.display_name,
            email=account.email,
            avatar=account.avatar,
            bio=account.bio,
            role=account.role,
            following=following or [],
            followers=followers or [],
            created_at=account.created_at,
        )


class AccountResponse(CamelModel):
    """Single-account envelope used by auth and profile endpoints."""

    success: Literal[True] = True
    user: AccountOut
    message: str | None = None


class AccountListResponse(CamelModel):
    """Account search and admin listing envelope."""

    success: Literal[True] = True
    users: list[AccountOut]


class FollowResponse(CamelModel):
    """Both sides of a follow change after it is applied."""

    success: Literal[True] = True
    current_user: AccountOut
    target_user: AccountOut
    message: str


class FollowListResponse(CamelModel):
    """Followers or following listing."""

    success: Literal[True] = True
    users: list[AccountOut]

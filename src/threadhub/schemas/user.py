"""User-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

FollowListType = Literal["followers", "following"]


class UserSummary(BaseModel):
    """Minimal public identity embedded in posts and lists."""

    id: int
    username: str
    display_name: str | None = None
    avatar_url: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserPrivate(UserSummary):
    """The authenticated user's own account, as returned by auth endpoints."""

    email: str
    bio: str | None = None
    website: str | None = None
    role: str
    created_at: datetime


class ProfileDetail(UserSummary):
    """Public profile plus the viewer's relationship to it."""

    bio: str | None = None
    website: str | None = None
    role: str
    created_at: datetime
    last_seen_at: datetime | None = None
    followers_count: int = 0
    following_count: int = 0
    likes_count: int = 0
    liked_by_me: bool = False
    you_follow_them: bool = False
    they_follow_you: bool = False
    is_mutual: bool = False
    mutual_followers_count: int = 0
    mutual_followers_preview: list[UserSummary] = Field(
        default_factory=list,
        description="Up to two people the viewer follows who also follow this profile",
    )
    activity: Literal["myProfile", "otherProfile"] = "otherProfile"


class ProfileSearchItem(UserSummary):
    bio: str | None = None
    followers_count: int = 0
    following_count: int = 0
    is_followed: bool = False


class ProfileSearchResult(BaseModel):
    users: list[ProfileSearchItem] = Field(default_factory=list)
    total: int = 0


class FollowListEntry(UserSummary):
    """A follower or followee with the profile-like flags between them and the viewer."""

    bio: str | None = None
    liked_by_me: bool = False
    liked_me: bool = False


class FollowList(BaseModel):
    type: FollowListType
    users: list[FollowListEntry] = Field(default_factory=list)
    total: int = 0


class FollowToggleResult(BaseModel):
    following: bool = Field(..., description="True if the viewer now follows the target")
    followers_count: int
    following_count: int


class ProfileLikeResult(BaseModel):
    liked: bool
    likes_count: int

"""Post-related Pydantic schemas.

Each listing has its own read model so an endpoint never reshapes a shared
one by dropping fields.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .user import UserSummary


class MediaItem(BaseModel):
    url: str
    public_id: str


class PostSummary(BaseModel):
    """Fields shared by every post read model."""

    id: int
    kind: str = Field(..., description="original, reply or repost")
    author: UserSummary
    content: str | None = None
    quote_content: str | None = None
    media: list[MediaItem] = Field(default_factory=list)
    parent_id: int | None = None
    original_id: int | None = None
    like_count: int = 0
    repost_count: int = 0
    reply_count: int = 0
    visibility: str = "public"
    is_deleted: bool = False
    deleted_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReplyItem(PostSummary):
    """A direct reply as listed under its parent."""


class FeedItem(PostSummary):
    """Feed entry with its edges resolved."""

    likes: list[int] = Field(default_factory=list, description="Ids of users who liked the post")
    reposts: list[int] = Field(default_factory=list, description="Ids of users who reposted it")
    replies: list[ReplyItem] = Field(default_factory=list, description="First-level replies")
    original: PostSummary | None = Field(None, description="Embedded original for reposts")
    liked_by_me: bool = False


class PostDetail(FeedItem):
    parent: PostSummary | None = None


class UserReplyItem(PostSummary):
    """A user's reply together with the post it answers."""

    parent: PostSummary | None = None


class UserRepostItem(PostSummary):
    """A user's repost; ``original`` is null once the original is gone."""

    original: PostSummary | None = None


class ThreadNode(PostSummary):
    """A post and its full nested reply subtree."""

    replies: list[ThreadNode] = Field(default_factory=list)


class ReceivedReplies(BaseModel):
    """Replies other users left under one of a user's posts."""

    post: PostSummary
    replies: list[ReplyItem] = Field(default_factory=list)


class LikeResponse(BaseModel):
    liked: bool
    like_count: int


class DeleteResponse(BaseModel):
    post_id: int
    mode: str
    removed_reply_ids: list[int] = Field(default_factory=list)
    tombstoned_repost_ids: list[int] = Field(default_factory=list)

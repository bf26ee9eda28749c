"""SQLAlchemy models for the threadhub application."""

from .post import Post, PostHidden, PostKind, PostLike, Visibility
from .user import Follow, ProfileLike, User, UserSession

__all__ = [
    "Follow", "ProfileLike", "User", "UserSession",
    "Post", "PostHidden", "PostKind", "PostLike", "Visibility",
]

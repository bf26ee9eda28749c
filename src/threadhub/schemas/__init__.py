"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .auth import AuthResponse, LoginRequest, RefreshRequest, RegisterRequest, SessionInfo, TokenResponse
from .common import ErrorResponse, Page, error_responses
from .post import (
    DeleteResponse,
    FeedItem,
    LikeResponse,
    MediaItem,
    PostDetail,
    PostSummary,
    ReceivedReplies,
    ReplyItem,
    ThreadNode,
    UserReplyItem,
    UserRepostItem,
)
from .user import (
    FollowList,
    FollowListEntry,
    FollowToggleResult,
    ProfileDetail,
    ProfileLikeResult,
    ProfileSearchItem,
    ProfileSearchResult,
    UserPrivate,
    UserSummary,
)

__all__ = [
    "AuthResponse", "LoginRequest", "RefreshRequest", "RegisterRequest", "SessionInfo", "TokenResponse",
    "ErrorResponse", "Page", "error_responses",
    "DeleteResponse", "FeedItem", "LikeResponse", "MediaItem", "PostDetail", "PostSummary",
    "ReceivedReplies", "ReplyItem", "ThreadNode", "UserReplyItem", "UserRepostItem",
    "FollowList", "FollowListEntry", "FollowToggleResult", "ProfileDetail", "ProfileLikeResult",
    "ProfileSearchItem", "ProfileSearchResult", "UserPrivate", "UserSummary",
]

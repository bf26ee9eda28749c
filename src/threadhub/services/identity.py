"""Account, profile and social-edge operations."""
from __future__ import annotations

import logging
import re

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from threadhub.core.errors import Conflict, InvalidArgument, NotFound, Unauthorized
from threadhub.core.security import PasswordHasher
from threadhub.models import User
from threadhub.models.user import ROLE_USER
from threadhub.repositories import UserRepository
from threadhub.schemas.user import (
    FollowList,
    FollowListEntry,
    FollowToggleResult,
    ProfileDetail,
    ProfileLikeResult,
    ProfileSearchItem,
    ProfileSearchResult,
    UserSummary,
)
from threadhub.services.blob_store import AVATAR_FOLDER, BlobStore, BlobStoreError, Upload

logger = logging.getLogger(__name__)

__all__ = ["IdentityService"]

USERNAME_RE = re.compile(r"^[a-z0-9_.-]{3,50}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
WEBSITE_RE = re.compile(r"^(https?://)?([\w-]+\.)+[a-z]{2,}(/\S*)?$", re.IGNORECASE)

MIN_PASSWORD_LENGTH = 8
MIN_DISPLAY_NAME_LENGTH = 3
MAX_DISPLAY_NAME_LENGTH = 50
MAX_BIO_LENGTH = 160
SEARCH_LIMIT = 10
MUTUAL_PREVIEW_SIZE = 2


class IdentityService:
    """Registration, authentication, profiles and follow / profile-like edges."""

    def __init__(
        self,
        session: Session,
        hasher: PasswordHasher,
        blob_store: BlobStore | None = None,
        *,
        max_avatar_bytes: int = 2 * 1024 * 1024,
    ) -> None:
        self.session = session
        self.users = UserRepository(session)
        self.hasher = hasher
        self.blob_store = blob_store
        self.max_avatar_bytes = max_avatar_bytes

    # -- accounts --

    def register(self, username: str, email: str, password: str) -> User:
        """Create an account.

        Raises:
            InvalidArgument: If a field is missing or malformed.
            Conflict: If the username or email is already taken.
        """
        username = (username or "").strip().lower()
        email = (email or "").strip().lower()
        if not username or not email or not password:
            raise InvalidArgument("All fields are required.")
        if not USERNAME_RE.match(username):
            raise InvalidArgument(
                "Username must be 3-50 characters of letters, numbers, dots, dashes or underscores."
            )
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidArgument(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
            )
        if not EMAIL_RE.match(email):
            raise InvalidArgument("Invalid email format.")
        if self.users.exists_with(username=username, email=email):
            raise Conflict("Username or email already in use.")

        user = User(
            username=username,
            email=email,
            password_hash=self.hasher.hash(password),
            role=ROLE_USER,
        )
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as err:
            self.session.rollback()
            raise Conflict("Username or email already in use.") from err
        logger.info("Registered user %s (%s)", user.id, user.username)
        return user

    def authenticate(self, identifier: str, password: str) -> User:
        """Return the user matching ``identifier`` (username or email) and ``password``."""
        if not identifier or not password:
            raise InvalidArgument("Identifier and password are required.")
        user = self.users.get_by_identifier(identifier)
        if user is None or not self.hasher.verify(password, user.password_hash):
            logger.info("Failed login for identifier %r", identifier)
            raise Unauthorized("Invalid credentials")
        return user

    def _user_or_404(self, username: str) -> User:
        user = self.users.get_by_username(username)
        if user is None:
            raise NotFound("User not found.")
        return user

    # -- profiles --

    def get_profile(self, username: str, viewer: User) -> ProfileDetail:
        """Return a profile with the viewer's relationship flags."""
        target = self._user_or_404(username)
        follower_ids = self.users.follower_ids(target.id)
        following_ids = self.users.following_ids(target.id)

        profile = ProfileDetail.model_validate(target)
        profile.followers_count = len(follower_ids)
        profile.following_count = len(following_ids)
        profile.likes_count = self.users.count_profile_likes(target.id)

        if viewer.id == target.id:
            profile.activity = "myProfile"
            return profile

        profile.activity = "otherProfile"
        profile.you_follow_them = viewer.id in follower_ids
        profile.they_follow_you = viewer.id in following_ids
        profile.is_mutual = profile.you_follow_them and profile.they_follow_you
        profile.liked_by_me = self.users.has_liked_profile(viewer.id, target.id)

        viewer_following = set(self.users.following_ids(viewer.id))
        mutual_ids = [
            user_id
            for user_id in follower_ids
            if user_id in viewer_following and user_id not in (viewer.id, target.id)
        ]
        profile.mutual_followers_count = len(mutual_ids)
        preview = {user.id: user for user in self.users.get_many(mutual_ids[:MUTUAL_PREVIEW_SIZE])}
        profile.mutual_followers_preview = [
            UserSummary.model_validate(preview[user_id])
            for user_id in mutual_ids[:MUTUAL_PREVIEW_SIZE]
            if user_id in preview
        ]
        return profile

    async def update_profile(
        self,
        user: User,
        *,
        display_name: str | None = None,
        bio: str | None = None,
        website: str | None = None,
        avatar: Upload | None = None,
    ) -> User:
        """Apply a partial profile update.

        An empty ``website`` clears it. A new avatar replaces the previous one,
        whose blob is purged on a best-effort basis.

        Raises:
            InvalidArgument: If nothing is supplied or a field is invalid.
        """
        if display_name is None and bio is None and website is None and avatar is None:
            raise InvalidArgument("Nothing to update.")

        changes: dict[str, str | None] = {}
        if display_name is not None:
            display_name = display_name.strip()
            if len(display_name) < MIN_DISPLAY_NAME_LENGTH:
                raise InvalidArgument(
                    f"Display name must be at least {MIN_DISPLAY_NAME_LENGTH} characters."
                )
            if len(display_name) > MAX_DISPLAY_NAME_LENGTH:
                raise InvalidArgument(
                    f"Display name can't exceed {MAX_DISPLAY_NAME_LENGTH} characters."
                )
            changes["display_name"] = display_name
        if bio is not None:
            bio = bio.strip()
            if len(bio) > MAX_BIO_LENGTH:
                raise InvalidArgument(f"Bio can't exceed {MAX_BIO_LENGTH} characters.")
            changes["bio"] = bio
        if website is not None:
            website = website.strip()
            if website and not WEBSITE_RE.match(website):
                raise InvalidArgument("Invalid website URL.")
            changes["website"] = website or None

        previous_avatar = user.avatar_public_id
        if avatar is not None:
            if self.blob_store is None:
                raise InvalidArgument("Avatar uploads are not enabled.")
            if not avatar.content_type.startswith("image/"):
                raise InvalidArgument("Only image files are allowed.")
            if len(avatar.data) > self.max_avatar_bytes:
                raise InvalidArgument("Avatar image is too large.")
            try:
                stored = await self.blob_store.store(avatar.data, AVATAR_FOLDER, avatar.content_type)
            except BlobStoreError as err:
                logger.error("Avatar upload failed for user %s: %s", user.id, err)
                raise InvalidArgument("Failed to upload avatar.") from err
            changes["avatar_url"] = stored.url
            changes["avatar_public_id"] = stored.public_id

        for key, value in changes.items():
            setattr(user, key, value)
        self.session.add(user)
        self.session.commit()

        if avatar is not None and previous_avatar and self.blob_store is not None:
            try:
                await self.blob_store.delete(previous_avatar)
            except BlobStoreError as err:
                logger.warning("Failed to purge old avatar %s: %s", previous_avatar, err)
        return user

    def search_profiles(self, query: str, viewer: User) -> ProfileSearchResult:
        """Case-insensitive search on username and display name, viewer excluded."""
        if not query or not query.strip():
            raise InvalidArgument("Search query is required.")
        matches = self.users.search(query, exclude_id=viewer.id, limit=SEARCH_LIMIT)
        viewer_following = set(self.users.following_ids(viewer.id))
        items = []
        for user in matches:
            item = ProfileSearchItem.model_validate(user)
            item.followers_count = self.users.count_followers(user.id)
            item.following_count = self.users.count_following(user.id)
            item.is_followed = user.id in viewer_following
            items.append(item)
        return ProfileSearchResult(users=items, total=len(items))

    def list_follows(self, username: str, list_type: str, viewer: User) -> FollowList:
        """Return a user's followers or followees with profile-like flags for the viewer."""
        if list_type not in ("followers", "following"):
            raise InvalidArgument("Invalid type. Use 'followers' or 'following'.")
        target = self._user_or_404(username)
        ids = (
            self.users.follower_ids(target.id)
            if list_type == "followers"
            else self.users.following_ids(target.id)
        )
        by_id = {user.id: user for user in self.users.get_many(ids)}
        liked_by_me = self.users.profiles_liked_among(viewer.id, ids)
        liked_me = self.users.profile_likers_among(viewer.id, ids)

        entries = []
        for user_id in ids:
            user = by_id.get(user_id)
            if user is None:
                continue
            entry = FollowListEntry.model_validate(user)
            entry.liked_by_me = user_id in liked_by_me
            entry.liked_me = user_id in liked_me
            entries.append(entry)
        return FollowList(type=list_type, users=entries, total=len(entries))  # type: ignore[arg-type]

    # -- edges --

    def toggle_follow(self, viewer: User, username: str) -> FollowToggleResult:
        """Follow ``username`` or stop following them.

        One ``follow`` row is both sides of the relation, so the follower's
        ``following`` and the followee's ``followers`` always agree.
        """
        target = self._user_or_404(username)
        if target.id == viewer.id:
            raise InvalidArgument("You cannot follow yourself.")

        if self.users.is_following(viewer.id, target.id):
            self.users.remove_follow(viewer.id, target.id)
            following = False
        else:
            self.users.add_follow(viewer.id, target.id)
            following = True
        try:
            self.session.commit()
        except IntegrityError:
            # A concurrent request created the same edge.
            self.session.rollback()
            following = True

        return FollowToggleResult(
            following=following,
            followers_count=self.users.count_followers(target.id),
            following_count=self.users.count_following(viewer.id),
        )

    def toggle_profile_like(self, viewer: User, username: str) -> ProfileLikeResult:
        target = self._user_or_404(username)
        if target.id == viewer.id:
            raise InvalidArgument("You cannot like your own profile.")

        if self.users.has_liked_profile(viewer.id, target.id):
            self.users.remove_profile_like(viewer.id, target.id)
            liked = False
        else:
            self.users.add_profile_like(viewer.id, target.id)
            liked = True
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            liked = True

        return ProfileLikeResult(liked=liked, likes_count=self.users.count_profile_likes(target.id))

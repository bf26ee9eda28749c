"""Data access helpers for accounts and their edges."""
from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from threadhub.models import Follow, ProfileLike, User

__all__ = ["UserRepository"]


class UserRepository:
    """Thin wrapper around database access for users, follows and profile likes."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_id(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def get_by_username(self, username: str) -> User | None:
        return self.session.scalars(
            select(User).where(User.username == username.strip().lower())
        ).first()

    def get_by_identifier(self, identifier: str) -> User | None:
        """Return the user whose username or email equals ``identifier``."""
        value = identifier.strip().lower()
        return self.session.scalars(
            select(User).where(or_(User.username == value, User.email == value))
        ).first()

    def exists_with(self, *, username: str, email: str) -> bool:
        stmt = select(User.id).where(or_(User.username == username, User.email == email))
        return self.session.scalars(stmt).first() is not None

    def get_many(self, user_ids: Sequence[int]) -> list[User]:
        if not user_ids:
            return []
        return list(self.session.scalars(select(User).where(User.id.in_(user_ids))))

    def search(self, query: str, *, exclude_id: int | None, limit: int = 10) -> list[User]:
        """Case-insensitive substring search on username and display name."""
        pattern = f"%{query.strip().lower()}%"
        stmt = select(User).where(
            or_(
                func.lower(User.username).like(pattern),
                func.lower(User.display_name).like(pattern),
            )
        )
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return list(self.session.scalars(stmt.order_by(User.username).limit(limit)))

    # -- follow edges --

    def is_following(self, follower_id: int, followee_id: int) -> bool:
        return self.session.get(Follow, (follower_id, followee_id)) is not None

    def add_follow(self, follower_id: int, followee_id: int) -> None:
        self.session.add(Follow(follower_id=follower_id, followee_id=followee_id))

    def remove_follow(self, follower_id: int, followee_id: int) -> None:
        self.session.execute(
            delete(Follow).where(
                Follow.follower_id == follower_id,
                Follow.followee_id == followee_id,
            )
        )

    def follower_ids(self, user_id: int) -> list[int]:
        stmt = (
            select(Follow.follower_id)
            .where(Follow.followee_id == user_id)
            .order_by(Follow.created_at)
        )
        return list(self.session.scalars(stmt))

    def following_ids(self, user_id: int) -> list[int]:
        stmt = (
            select(Follow.followee_id)
            .where(Follow.follower_id == user_id)
            .order_by(Follow.created_at)
        )
        return list(self.session.scalars(stmt))

    def count_followers(self, user_id: int) -> int:
        stmt = select(func.count()).select_from(Follow).where(Follow.followee_id == user_id)
        return int(self.session.scalar(stmt) or 0)

    def count_following(self, user_id: int) -> int:
        stmt = select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
        return int(self.session.scalar(stmt) or 0)

    # -- profile like edges --

    def has_liked_profile(self, liker_id: int, liked_id: int) -> bool:
        return self.session.get(ProfileLike, (liker_id, liked_id)) is not None

    def add_profile_like(self, liker_id: int, liked_id: int) -> None:
        self.session.add(ProfileLike(liker_id=liker_id, liked_id=liked_id))

    def remove_profile_like(self, liker_id: int, liked_id: int) -> None:
        self.session.execute(
            delete(ProfileLike).where(
                ProfileLike.liker_id == liker_id,
                ProfileLike.liked_id == liked_id,
            )
        )

    def count_profile_likes(self, user_id: int) -> int:
        stmt = select(func.count()).select_from(ProfileLike).where(ProfileLike.liked_id == user_id)
        return int(self.session.scalar(stmt) or 0)

    def profile_likers_among(self, liked_id: int, candidate_ids: Sequence[int]) -> set[int]:
        """Return which of ``candidate_ids`` liked ``liked_id``'s profile."""
        if not candidate_ids:
            return set()
        stmt = select(ProfileLike.liker_id).where(
            ProfileLike.liked_id == liked_id,
            ProfileLike.liker_id.in_(candidate_ids),
        )
        return set(self.session.scalars(stmt))

    def profiles_liked_among(self, liker_id: int, candidate_ids: Sequence[int]) -> set[int]:
        """Return which of ``candidate_ids`` have their profile liked by ``liker_id``."""
        if not candidate_ids:
            return set()
        stmt = select(ProfileLike.liked_id).where(
            ProfileLike.liker_id == liker_id,
            ProfileLike.liked_id.in_(candidate_ids),
        )
        return set(self.session.scalars(stmt))

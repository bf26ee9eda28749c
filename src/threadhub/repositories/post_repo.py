"""Data access helpers for working with posts."""
from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from typing import Any

from sqlalchemy import ColumnElement, Select, case, delete, func, or_, select, update
from sqlalchemy.orm import Session

from threadhub.models import Post, PostHidden, PostKind, PostLike, Visibility

__all__ = ["PostRepository", "visible_to"]


def visible_to(viewer_id: int | None, entity: Any = Post) -> ColumnElement[bool]:
    """SQL form of :meth:`Post.is_visible_to` for ``entity`` (``Post`` or an alias of it)."""
    public = entity.visibility == Visibility.PUBLIC.value
    if viewer_id is None:
        return public
    return or_(public, entity.author_id == viewer_id)


def _floored_decrement(column):  # type: ignore[no-untyped-def]
    return case((column > 0, column - 1), else_=0)


class PostRepository:
    """Thin wrapper around database access for post entities.

    Counter updates are issued as single ``UPDATE ... SET n = n + 1``
    statements so concurrent writers never lose an increment.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, post_id: int) -> Post | None:
        """Return a post by identifier, tombstoned or not."""
        return self.session.get(Post, post_id)

    def get_active(self, post_id: int) -> Post | None:
        """Return a post unless it is missing or tombstoned."""
        post = self.get_by_id(post_id)
        if post is None or post.is_deleted:
            return None
        return post

    def get_many(self, post_ids: Sequence[int]) -> dict[int, Post]:
        if not post_ids:
            return {}
        rows = self.session.scalars(select(Post).where(Post.id.in_(post_ids)))
        return {post.id: post for post in rows}

    def find_repost(self, author_id: int, original_id: int) -> Post | None:
        return self.session.scalars(
            select(Post).where(
                Post.kind == PostKind.REPOST.value,
                Post.original_id == original_id,
                Post.author_id == author_id,
            )
        ).first()

    def add(self, post: Post) -> Post:
        """Insert a new post and flush so it receives an id."""
        self.session.add(post)
        self.session.flush()
        return post

    # -- denormalized counters --

    def link_reply(self, parent_id: int) -> None:
        self.session.execute(
            update(Post)
            .where(Post.id == parent_id)
            .values(reply_count=Post.reply_count + 1)
        )

    def unlink_reply(self, parent_id: int) -> None:
        self.session.execute(
            update(Post)
            .where(Post.id == parent_id)
            .values(reply_count=_floored_decrement(Post.reply_count))
        )

    def link_repost(self, original_id: int) -> None:
        self.session.execute(
            update(Post)
            .where(Post.id == original_id)
            .values(repost_count=Post.repost_count + 1)
        )

    def unlink_repost(self, original_id: int) -> None:
        self.session.execute(
            update(Post)
            .where(Post.id == original_id)
            .values(repost_count=_floored_decrement(Post.repost_count))
        )

    def refresh_counters(self, post: Post) -> Post:
        """Reload the counter columns after an atomic update."""
        self.session.refresh(post, attribute_names=["like_count", "repost_count", "reply_count"])
        return post

    # -- likes --

    def has_liked(self, post_id: int, user_id: int) -> bool:
        return self.session.get(PostLike, (post_id, user_id)) is not None

    def add_like(self, post_id: int, user_id: int) -> None:
        self.session.add(PostLike(post_id=post_id, user_id=user_id))
        self.session.flush()
        self.session.execute(
            update(Post).where(Post.id == post_id).values(like_count=Post.like_count + 1)
        )

    def remove_like(self, post_id: int, user_id: int) -> None:
        self.session.execute(
            delete(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user_id)
        )
        self.session.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(like_count=_floored_decrement(Post.like_count))
        )

    def liker_ids(self, post_ids: Sequence[int]) -> dict[int, list[int]]:
        """Return ``post_id -> [user ids]`` for the likes of each post."""
        result: dict[int, list[int]] = defaultdict(list)
        if not post_ids:
            return result
        stmt = (
            select(PostLike.post_id, PostLike.user_id)
            .where(PostLike.post_id.in_(post_ids))
            .order_by(PostLike.created_at)
        )
        for post_id, user_id in self.session.execute(stmt):
            result[post_id].append(user_id)
        return result

    def liked_by(self, user_id: int, post_ids: Sequence[int]) -> set[int]:
        """Return the subset of ``post_ids`` liked by ``user_id``."""
        if not post_ids:
            return set()
        stmt = select(PostLike.post_id).where(
            PostLike.user_id == user_id,
            PostLike.post_id.in_(post_ids),
        )
        return set(self.session.scalars(stmt))

    # -- per-viewer hiding --

    def is_hidden_for(self, post_id: int, user_id: int) -> bool:
        return self.session.get(PostHidden, (post_id, user_id)) is not None

    def hide_for(self, post_id: int, user_id: int) -> bool:
        """Hide a post for one user; returns False if it was already hidden."""
        if self.is_hidden_for(post_id, user_id):
            return False
        self.session.add(PostHidden(post_id=post_id, user_id=user_id))
        return True

    # -- graph traversal --

    def reply_ids_of(self, parent_ids: Sequence[int]) -> list[int]:
        """Return ids of direct replies to any of ``parent_ids``, oldest first."""
        if not parent_ids:
            return []
        stmt = (
            select(Post.id)
            .where(Post.parent_id.in_(parent_ids))
            .order_by(Post.created_at, Post.id)
        )
        return list(self.session.scalars(stmt))

    def replies_of(
        self,
        parent_ids: Sequence[int],
        *,
        viewer_id: int | None,
        include_deleted: bool = False,
    ) -> list[Post]:
        """Return the direct replies of ``parent_ids`` that ``viewer_id`` may see, oldest first."""
        if not parent_ids:
            return []
        stmt = select(Post).where(Post.parent_id.in_(parent_ids), visible_to(viewer_id))
        if not include_deleted:
            stmt = stmt.where(Post.is_deleted.is_(False))
        return list(self.session.scalars(stmt.order_by(Post.created_at, Post.id)))

    def reposts_of(self, original_ids: Sequence[int]) -> list[Post]:
        """Return every repost referencing one of ``original_ids``."""
        if not original_ids:
            return []
        stmt = select(Post).where(
            Post.kind == PostKind.REPOST.value,
            Post.original_id.in_(original_ids),
        )
        return list(self.session.scalars(stmt.order_by(Post.created_at, Post.id)))

    def reposter_ids(self, original_ids: Sequence[int]) -> dict[int, list[int]]:
        """Return ``original_id -> [author ids]`` of the reposts of each post."""
        result: dict[int, list[int]] = defaultdict(list)
        for repost in self.reposts_of(original_ids):
            if repost.original_id is not None:
                result[repost.original_id].append(repost.author_id)
        return result

    def hard_delete(self, post: Post) -> None:
        """Remove a post row together with its like and hide edges."""
        self.session.execute(delete(PostLike).where(PostLike.post_id == post.id))
        self.session.execute(delete(PostHidden).where(PostHidden.post_id == post.id))
        self.session.delete(post)
        self.session.flush()

    # -- listing --

    def page(self, stmt: Select[tuple[Post]], *, skip: int, limit: int) -> tuple[list[Post], int]:
        """Return one page of ``stmt`` plus the total row count of the filter."""
        total = self.session.scalar(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        )
        rows = self.session.scalars(stmt.offset(skip).limit(limit))
        return list(rows), int(total or 0)

    # -- reconciliation --

    def recount(self, post_id: int) -> tuple[int, int, int]:
        """Return ``(likes, reposts, replies)`` counted from the edge rows."""
        likes = self.session.scalar(
            select(func.count()).select_from(PostLike).where(PostLike.post_id == post_id)
        )
        reposts = self.session.scalar(
            select(func.count())
            .select_from(Post)
            .where(Post.kind == PostKind.REPOST.value, Post.original_id == post_id)
        )
        replies = self.session.scalar(
            select(func.count()).select_from(Post).where(Post.parent_id == post_id)
        )
        return int(likes or 0), int(reposts or 0), int(replies or 0)

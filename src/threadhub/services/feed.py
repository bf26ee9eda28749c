"""Read-only listings over the post graph."""
from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, and_, exists, or_, select
from sqlalchemy.orm import Session, aliased

from threadhub.core.errors import InvalidArgument, NotFound
from threadhub.models import Post, PostHidden, PostKind, User, Visibility
from threadhub.repositories import PostRepository, UserRepository, visible_to
from threadhub.schemas.common import Page
from threadhub.schemas.post import (
    FeedItem,
    PostDetail,
    PostSummary,
    ReceivedReplies,
    ReplyItem,
    ThreadNode,
    UserReplyItem,
    UserRepostItem,
)

__all__ = ["FeedService", "PageRequest"]

TIMELINE_KINDS = (PostKind.ORIGINAL.value, PostKind.REPOST.value)


@dataclass(frozen=True)
class PageRequest:
    """Validated offset-pagination window."""

    page: int
    limit: int

    @classmethod
    def of(cls, page: int, limit: int, *, max_limit: int = 50) -> PageRequest:
        if page < 1:
            raise InvalidArgument("page must be at least 1.")
        if limit < 1 or limit > max_limit:
            raise InvalidArgument(f"limit must be between 1 and {max_limit}.")
        return cls(page=page, limit=limit)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def wrap(self, items: list, total: int) -> Page:  # type: ignore[type-arg]
        return Page(
            items=items,
            total=total,
            current_page=self.page,
            total_pages=math.ceil(total / self.limit),
        )


def _project(post: Post, model_cls: type[PostSummary] = PostSummary) -> Any:
    """Build a read model from the shared post fields only.

    Going through :class:`PostSummary` keeps ORM relationships such as
    ``Post.replies`` from being loaded into the richer models.
    """
    return model_cls.model_validate(PostSummary.model_validate(post).model_dump())


def _viewer_id(viewer: User | None) -> int | None:
    return viewer.id if viewer is not None else None


def _summary(post: Post | None, viewer: User | None) -> PostSummary | None:
    """Summarize a referenced post, or None when it is gone or private to someone else."""
    if post is None or not post.is_visible_to(_viewer_id(viewer)):
        return None
    return PostSummary.model_validate(post)


class FeedService:
    """Compose feed, profile and thread read models."""

    def __init__(self, session: Session, *, max_page_size: int = 50) -> None:
        self.session = session
        self.posts = PostRepository(session)
        self.users = UserRepository(session)
        self.max_page_size = max_page_size

    def page_request(self, page: int, limit: int) -> PageRequest:
        return PageRequest.of(page, limit, max_limit=self.max_page_size)

    # -- query building blocks --

    @staticmethod
    def _not_hidden_for(stmt: Select[tuple[Post]], viewer: User | None) -> Select[tuple[Post]]:
        if viewer is None:
            return stmt
        hidden = exists(
            select(PostHidden.post_id).where(
                PostHidden.post_id == Post.id,
                PostHidden.user_id == viewer.id,
            )
        )
        return stmt.where(~hidden)

    @staticmethod
    def _visible_to(stmt: Select[tuple[Post]], author: User, viewer: User | None) -> Select[tuple[Post]]:
        if viewer is not None and viewer.id == author.id:
            return stmt
        return stmt.where(Post.visibility == Visibility.PUBLIC.value)

    def _user_or_404(self, username: str) -> User:
        user = self.users.get_by_username(username)
        if user is None:
            raise NotFound("User not found.")
        return user

    def _active_or_404(self, post_id: int, viewer: User | None) -> Post:
        post = self.posts.get_active(post_id)
        if post is None or not post.is_visible_to(_viewer_id(viewer)):
            raise NotFound("Thread not found.")
        return post

    def _feed_items(self, posts: Sequence[Post], viewer: User | None, item_cls: type[FeedItem] = FeedItem) -> list:  # type: ignore[type-arg]
        """Resolve likes, reposts, first-level replies and originals in batches."""
        ids = [post.id for post in posts]
        likers = self.posts.liker_ids(ids)
        reposters = self.posts.reposter_ids(ids)
        replies_by_parent: dict[int, list[ReplyItem]] = {}
        for reply in self.posts.replies_of(ids, viewer_id=_viewer_id(viewer)):
            if reply.parent_id is not None:
                replies_by_parent.setdefault(reply.parent_id, []).append(_project(reply, ReplyItem))
        originals = self.posts.get_many(
            [post.original_id for post in posts if post.original_id is not None]
        )
        liked = self.posts.liked_by(viewer.id, ids) if viewer is not None else set()

        items = []
        for post in posts:
            original = originals.get(post.original_id) if post.original_id is not None else None
            item = _project(post, item_cls)
            item.likes = likers.get(post.id, [])
            item.reposts = reposters.get(post.id, [])
            item.replies = replies_by_parent.get(post.id, [])
            item.original = _summary(original, viewer) if original is not None and not original.is_deleted else None
            item.liked_by_me = post.id in liked
            items.append(item)
        return items

    # -- listings --

    def global_feed(self, viewer: User | None, page: int = 1, limit: int = 10) -> Page[FeedItem]:
        """Public originals and reposts, newest first.

        Reposts whose original is missing or tombstoned are left out, as are
        posts the viewer has hidden.
        """
        window = self.page_request(page, limit)
        original = aliased(Post)
        stmt = (
            select(Post)
            .outerjoin(original, Post.original_id == original.id)
            .where(
                Post.is_deleted.is_(False),
                Post.visibility == Visibility.PUBLIC.value,
                Post.kind.in_(TIMELINE_KINDS),
                or_(
                    Post.kind == PostKind.ORIGINAL.value,
                    and_(
                        original.id.is_not(None),
                        original.is_deleted.is_(False),
                        visible_to(_viewer_id(viewer), original),
                    ),
                ),
            )
        )
        stmt = self._not_hidden_for(stmt, viewer).order_by(Post.created_at.desc(), Post.id.desc())
        posts, total = self.posts.page(stmt, skip=window.skip, limit=window.limit)
        return window.wrap(self._feed_items(posts, viewer), total)

    def user_posts(
        self,
        username: str,
        viewer: User | None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[FeedItem]:
        """A user's originals and reposts; private ones only for the user."""
        window = self.page_request(page, limit)
        author = self._user_or_404(username)
        stmt = select(Post).where(
            Post.author_id == author.id,
            Post.is_deleted.is_(False),
            Post.kind.in_(TIMELINE_KINDS),
        )
        stmt = self._visible_to(stmt, author, viewer)
        stmt = self._not_hidden_for(stmt, viewer).order_by(Post.created_at.desc(), Post.id.desc())
        posts, total = self.posts.page(stmt, skip=window.skip, limit=window.limit)
        return window.wrap(self._feed_items(posts, viewer), total)

    def user_replies(
        self,
        username: str,
        viewer: User | None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[UserReplyItem]:
        window = self.page_request(page, limit)
        author = self._user_or_404(username)
        stmt = select(Post).where(
            Post.author_id == author.id,
            Post.is_deleted.is_(False),
            Post.kind == PostKind.REPLY.value,
        )
        stmt = self._visible_to(stmt, author, viewer)
        stmt = self._not_hidden_for(stmt, viewer).order_by(Post.created_at.desc(), Post.id.desc())
        posts, total = self.posts.page(stmt, skip=window.skip, limit=window.limit)

        parents = self.posts.get_many([post.parent_id for post in posts if post.parent_id is not None])
        items = []
        for post in posts:
            item = _project(post, UserReplyItem)
            item.parent = _summary(parents.get(post.parent_id), viewer) if post.parent_id is not None else None
            items.append(item)
        return window.wrap(items, total)

    def user_reposts(
        self,
        username: str,
        viewer: User | None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[UserRepostItem]:
        window = self.page_request(page, limit)
        author = self._user_or_404(username)
        stmt = select(Post).where(
            Post.author_id == author.id,
            Post.is_deleted.is_(False),
            Post.kind == PostKind.REPOST.value,
        )
        stmt = self._visible_to(stmt, author, viewer)
        stmt = self._not_hidden_for(stmt, viewer).order_by(Post.created_at.desc(), Post.id.desc())
        posts, total = self.posts.page(stmt, skip=window.skip, limit=window.limit)

        originals = self.posts.get_many(
            [post.original_id for post in posts if post.original_id is not None]
        )
        items = []
        for post in posts:
            item = _project(post, UserRepostItem)
            original = originals.get(post.original_id) if post.original_id is not None else None
            item.original = _summary(original, viewer) if original is not None and not original.is_deleted else None
            items.append(item)
        return window.wrap(items, total)

    # -- single posts --

    def get_post(self, post_id: int, viewer: User | None = None) -> PostDetail:
        """Return one active post with its edges and parent summary."""
        post = self._active_or_404(post_id, viewer)
        (item,) = self._feed_items([post], viewer, item_cls=PostDetail)
        if post.parent_id is not None:
            item.parent = _summary(self.posts.get_by_id(post.parent_id), viewer)
        return item

    def post_replies(
        self,
        post_id: int,
        viewer: User | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[ReplyItem]:
        """Direct replies of an active post, oldest first."""
        window = self.page_request(page, limit)
        post = self._active_or_404(post_id, viewer)
        stmt = (
            select(Post)
            .where(
                Post.parent_id == post.id,
                Post.is_deleted.is_(False),
                visible_to(_viewer_id(viewer)),
            )
            .order_by(Post.created_at, Post.id)
        )
        replies, total = self.posts.page(stmt, skip=window.skip, limit=window.limit)
        return window.wrap([_project(reply, ReplyItem) for reply in replies], total)

    def get_thread(self, post_id: int, viewer: User | None = None) -> ThreadNode:
        """Return the post and its full nested reply subtree.

        Tombstoned replies stay in the tree as placeholders so their live
        descendants remain reachable.
        """
        root = self._active_or_404(post_id, viewer)
        nodes: dict[int, ThreadNode] = {root.id: _project(root, ThreadNode)}
        frontier = [root.id]
        while frontier:
            level = self.posts.replies_of(frontier, viewer_id=_viewer_id(viewer), include_deleted=True)
            for reply in level:
                node = _project(reply, ThreadNode)
                nodes[reply.id] = node
                if reply.parent_id in nodes:
                    nodes[reply.parent_id].replies.append(node)
            frontier = [reply.id for reply in level]
        return nodes[root.id]

    def replies_to_user_posts(self, username: str, viewer: User | None = None) -> list[ReceivedReplies]:
        """For each of a user's active originals, its active replies newest first."""
        author = self._user_or_404(username)
        stmt = select(Post).where(
            Post.author_id == author.id,
            Post.is_deleted.is_(False),
            Post.kind == PostKind.ORIGINAL.value,
        )
        stmt = self._visible_to(stmt, author, viewer).order_by(Post.created_at.desc(), Post.id.desc())
        originals = list(self.session.scalars(stmt))

        grouped: dict[int, list[ReplyItem]] = {}
        for reply in reversed(self.posts.replies_of(
            [post.id for post in originals], viewer_id=_viewer_id(viewer)
        )):
            if reply.parent_id is not None:
                grouped.setdefault(reply.parent_id, []).append(_project(reply, ReplyItem))
        return [
            ReceivedReplies(post=PostSummary.model_validate(post), replies=grouped[post.id])
            for post in originals
            if post.id in grouped
        ]

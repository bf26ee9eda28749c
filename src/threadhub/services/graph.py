"""Mutations on the post graph: create, delete, like and counter repair.

Every mutation that touches more than one row (a post plus its parent's
counter, a cascade over a reply subtree) runs inside one database
transaction, and counters move through atomic ``UPDATE`` statements.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from threadhub.core.errors import (
    Conflict,
    Forbidden,
    Gone,
    Internal,
    InvalidArgument,
    NotFound,
)
from threadhub.db.time import utcnow
from threadhub.models import Post, PostKind, User, Visibility
from threadhub.models.post import MAX_MEDIA_ITEMS
from threadhub.repositories import PostRepository
from threadhub.services.blob_store import MEDIA_FOLDER, BlobStore, BlobStoreError, StoredBlob, Upload

logger = logging.getLogger(__name__)

__all__ = [
    "CounterRepair",
    "DeleteMode",
    "DeleteOutcome",
    "GraphMutationEngine",
    "LikeResult",
]


class DeleteMode(str, Enum):
    """How a post is removed."""

    SELF_ONLY = "selfOnly"
    SOFT = "soft"
    FULL = "full"
    ADMIN_FORCE = "adminForce"

    @classmethod
    def parse(cls, value: DeleteMode | str) -> DeleteMode:
        try:
            return cls(value)
        except ValueError as err:
            raise InvalidArgument("Invalid delete mode.") from err


@dataclass(frozen=True)
class LikeResult:
    liked: bool
    like_count: int


@dataclass(frozen=True)
class DeleteOutcome:
    """What a delete call changed."""

    post_id: int
    mode: DeleteMode
    removed_reply_ids: list[int] = field(default_factory=list)
    tombstoned_repost_ids: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class CounterRepair:
    """Counter values of one post before and after reconciliation."""

    post_id: int
    before: tuple[int, int, int]
    after: tuple[int, int, int]

    @property
    def changed(self) -> bool:
        return self.before != self.after


class GraphMutationEngine:
    """Apply graph mutations while keeping counters and back-references consistent."""

    def __init__(
        self,
        session: Session,
        blob_store: BlobStore,
        *,
        max_media_bytes: int = 10 * 1024 * 1024,
    ) -> None:
        self.session = session
        self.posts = PostRepository(session)
        self.blob_store = blob_store
        self.max_media_bytes = max_media_bytes

    # -- create --

    async def create_post(
        self,
        author: User,
        *,
        kind: PostKind | str = PostKind.ORIGINAL,
        content: str | None = None,
        parent_id: int | None = None,
        original_id: int | None = None,
        quote_content: str | None = None,
        visibility: Visibility | str = Visibility.PUBLIC,
        uploads: Sequence[Upload] = (),
    ) -> Post:
        """Create an original post, a reply or a repost.

        Args:
            author: Account creating the post.
            kind: One of ``original``, ``reply`` or ``repost``.
            content: Body text; required unless ``kind`` is ``repost``.
            parent_id: Post being answered; required iff ``kind`` is ``reply``.
            original_id: Post being reposted; required iff ``kind`` is ``repost``.
            quote_content: Optional quote text attached to a repost.
            visibility: ``public`` or ``private``.
            uploads: Media files to store and attach, at most four.

        Returns:
            The persisted post with its counters loaded.

        Raises:
            InvalidArgument: If kind-specific fields are missing or malformed.
            NotFound: If the parent or original is missing, tombstoned, or
                private to another user.
            Conflict: If ``author`` already reposted ``original_id``.
            Internal: If a media upload fails.
        """
        # Validates kind-specific fields before anything is looked up or stored.
        post = Post.build(
            author_id=author.id,
            kind=kind,
            content=content,
            quote_content=quote_content,
            parent_id=parent_id,
            original_id=original_id,
            visibility=visibility,
        )
        self._validate_uploads(uploads)

        if post.post_kind is PostKind.REPLY and post.parent_id is not None:
            parent = self.posts.get_active(post.parent_id)
            if parent is None or not parent.is_visible_to(author.id):
                raise NotFound("Parent thread not found or deleted.")
        elif post.post_kind is PostKind.REPOST and post.original_id is not None:
            original = self.posts.get_active(post.original_id)
            if original is None or not original.is_visible_to(author.id):
                raise NotFound("Original thread not found or has been deleted.")
            if self.posts.find_repost(author.id, post.original_id) is not None:
                raise Conflict("You have already reposted this thread.")

        stored = await self._store_uploads(uploads)
        post.media = [blob.as_media() for blob in stored]

        try:
            self.posts.add(post)
            if post.post_kind is PostKind.REPLY and post.parent_id is not None:
                self.posts.link_reply(post.parent_id)
            elif post.post_kind is PostKind.REPOST and post.original_id is not None:
                self.posts.link_repost(post.original_id)
            self.session.commit()
        except IntegrityError as err:
            self.session.rollback()
            await self._purge([blob.public_id for blob in stored], context="create rollback")
            if post.post_kind is PostKind.REPOST:
                raise Conflict("You have already reposted this thread.") from err
            raise
        except Exception:
            self.session.rollback()
            await self._purge([blob.public_id for blob in stored], context="create rollback")
            raise

        logger.info("User %s created %s post %s", author.id, post.kind, post.id)
        return post

    def _validate_uploads(self, uploads: Sequence[Upload]) -> None:
        if len(uploads) > MAX_MEDIA_ITEMS:
            raise InvalidArgument(f"You can only upload up to {MAX_MEDIA_ITEMS} media files.")
        for upload in uploads:
            if not upload.content_type.startswith("image/"):
                raise InvalidArgument("Only image files are allowed.")
            if len(upload.data) > self.max_media_bytes:
                raise InvalidArgument(f"File {upload.filename!r} is too large.")

    async def _store_uploads(self, uploads: Sequence[Upload]) -> list[StoredBlob]:
        stored: list[StoredBlob] = []
        for upload in uploads:
            try:
                stored.append(
                    await self.blob_store.store(upload.data, MEDIA_FOLDER, upload.content_type)
                )
            except BlobStoreError as err:
                logger.error("Media upload failed: %s", err)
                await self._purge([blob.public_id for blob in stored], context="failed upload")
                raise Internal("Failed to upload media files.") from err
        return stored

    # -- delete --

    async def delete_post(
        self,
        post_id: int,
        user: User,
        mode: DeleteMode | str = DeleteMode.SOFT,
    ) -> DeleteOutcome:
        """Delete ``post_id`` on behalf of ``user`` using ``mode``.

        ``adminForce`` skips the authorship check; callers must have verified
        the admin role before passing it.

        Raises:
            InvalidArgument: If ``mode`` is unknown.
            NotFound: If the post does not exist.
            Forbidden: If ``user`` is not the author for ``soft`` or ``full``.
        """
        mode = DeleteMode.parse(mode)
        post = self.posts.get_by_id(post_id)
        if post is None:
            raise NotFound("Thread not found.")

        if mode is DeleteMode.SELF_ONLY:
            if self.posts.hide_for(post.id, user.id):
                self.session.commit()
            return DeleteOutcome(post_id=post.id, mode=mode)

        if mode is not DeleteMode.ADMIN_FORCE and post.author_id != user.id:
            raise Forbidden("You can only delete your own threads.")

        if mode is DeleteMode.SOFT:
            if not post.is_deleted:
                post.tombstone(utcnow())
                self.session.commit()
                logger.info("User %s soft-deleted post %s", user.id, post.id)
            return DeleteOutcome(post_id=post.id, mode=mode)

        outcome = await self._cascade(post, mode)
        logger.info(
            "User %s removed post %s (%s): %d replies removed, %d reposts tombstoned",
            user.id,
            post.id,
            mode.value,
            len(outcome.removed_reply_ids),
            len(outcome.tombstoned_repost_ids),
        )
        return outcome

    async def _cascade(self, post: Post, mode: DeleteMode) -> DeleteOutcome:
        # Collect the whole reply subtree level by level.
        levels: list[list[int]] = []
        frontier = [post.id]
        while frontier:
            frontier = self.posts.reply_ids_of(frontier)
            if frontier:
                levels.append(frontier)
        removed_ids = [reply_id for level in levels for reply_id in level]
        reposts = self.posts.reposts_of([post.id, *removed_ids])

        # 1. Replies, deepest level first so no reply outlives its parent row.
        for level in reversed(levels):
            for reply in self.posts.get_many(level).values():
                await self._purge(reply.media_public_ids, context=f"reply {reply.id}")
                self.posts.hard_delete(reply)
        logger.debug("Removed %d replies under post %s", len(removed_ids), post.id)

        # 2. Reposts of any removed post become tombstones without an original.
        now = utcnow()
        tombstoned: list[int] = []
        for repost in reposts:
            if not repost.is_deleted:
                repost.tombstone(now)
            repost.original_id = None
            tombstoned.append(repost.id)
        self.session.flush()

        # 3. / 4. Unlink from the parent or original.
        if post.post_kind is PostKind.REPLY and post.parent_id is not None:
            self.posts.unlink_reply(post.parent_id)
        elif post.post_kind is PostKind.REPOST and post.original_id is not None:
            self.posts.unlink_repost(post.original_id)

        # 5. / 6. Own media, then the row itself.
        await self._purge(post.media_public_ids, context=f"post {post.id}")
        post_id = post.id
        self.posts.hard_delete(post)
        self.session.commit()

        return DeleteOutcome(
            post_id=post_id,
            mode=mode,
            removed_reply_ids=removed_ids,
            tombstoned_repost_ids=tombstoned,
        )

    async def _purge(self, public_ids: Sequence[str], *, context: str) -> None:
        """Delete blobs, logging and swallowing storage failures."""
        for public_id in public_ids:
            try:
                await self.blob_store.delete(public_id)
            except BlobStoreError as err:
                logger.warning("Failed to purge blob %s (%s): %s", public_id, context, err)

    # -- likes --

    def toggle_like(self, post_id: int, user: User) -> LikeResult:
        """Like ``post_id`` if ``user`` has not, otherwise remove the like.

        Raises:
            NotFound: If the post does not exist or is private to another user.
            Gone: If the post is tombstoned.
        """
        post = self.posts.get_by_id(post_id)
        if post is None or not post.is_visible_to(user.id):
            raise NotFound("Thread not found.")
        if post.is_deleted:
            raise Gone("Cannot like a deleted thread.")

        if self.posts.has_liked(post.id, user.id):
            self.posts.remove_like(post.id, user.id)
            liked = False
        else:
            try:
                self.posts.add_like(post.id, user.id)
            except IntegrityError:
                # A concurrent request already inserted the same like.
                self.session.rollback()
            liked = True
        self.session.commit()
        self.posts.refresh_counters(post)
        return LikeResult(liked=liked, like_count=post.like_count)

    # -- reconciliation --

    def reconcile_counters(self, post_id: int) -> CounterRepair:
        """Recompute one post's counters from its edge rows and store them."""
        post = self.posts.get_by_id(post_id)
        if post is None:
            raise NotFound("Thread not found.")
        before = (post.like_count, post.repost_count, post.reply_count)
        after = self.posts.recount(post.id)
        if before != after:
            post.like_count, post.repost_count, post.reply_count = after
            self.session.commit()
            logger.warning("Repaired counters of post %s: %s -> %s", post.id, before, after)
        return CounterRepair(post_id=post.id, before=before, after=after)

    def reconcile_all(self) -> list[CounterRepair]:
        """Reconcile every post and return the repairs that changed something."""
        post_ids = list(self.session.scalars(select(Post.id).order_by(Post.id)))
        repairs = [self.reconcile_counters(post_id) for post_id in post_ids]
        return [repair for repair in repairs if repair.changed]

"""SQLAlchemy models for posts and their edge tables.

A single ``Post`` row represents an original post, a reply or a repost; the
``kind`` column is the discriminant and :meth:`Post.build` enforces the
fields each kind requires.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threadhub.core.errors import InvalidArgument
from threadhub.db.session import Base
from threadhub.db.time import utcnow

from .user import User

MAX_CONTENT_LENGTH = 500
MAX_QUOTE_LENGTH = 300
MAX_MEDIA_ITEMS = 4


class PostKind(str, Enum):
    """Discriminant for the polymorphic post row."""

    ORIGINAL = "original"
    REPLY = "reply"
    REPOST = "repost"


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class PostLike(Base):
    """Membership of a user in a post's ``likes`` set."""

    __tablename__ = "post_like"

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class PostHidden(Base):
    """A user hiding a post from their own view only."""

    __tablename__ = "post_hidden"

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )


class Post(Base):
    """Original post, reply or repost."""

    __tablename__ = "post"
    __table_args__ = (
        # A user cannot repost the same original twice.
        UniqueConstraint("original_id", "author_id", name="uq_post_repost_author"),
        Index("ix_post_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    kind: Mapped[str] = mapped_column(String(16), nullable=False, default=PostKind.ORIGINAL.value)

    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    quote_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Ordered list of {"url": ..., "public_id": ...} blob references.
    media: Mapped[list[dict[str, str]]] = mapped_column(JSON, nullable=False, default=list)

    # Set iff kind == reply.
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("post.id"),
        nullable=True,
        index=True,
    )
    # Set iff kind == repost; cleared when the original is hard-deleted.
    original_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Denormalized caches of the edge-table sizes.
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    repost_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reply_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    visibility: Mapped[str] = mapped_column(
        String(16), nullable=False, default=Visibility.PUBLIC.value
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    author: Mapped[User] = relationship("User", lazy="joined")
    parent: Mapped[Post | None] = relationship(
        "Post",
        remote_side=[id],
        foreign_keys=[parent_id],
        viewonly=True,
    )
    original: Mapped[Post | None] = relationship(
        "Post",
        remote_side=[id],
        foreign_keys=[original_id],
        viewonly=True,
    )
    replies: Mapped[list[Post]] = relationship(
        "Post",
        foreign_keys=[parent_id],
        order_by="Post.created_at",
        viewonly=True,
    )
    likers: Mapped[list[User]] = relationship(
        "User",
        secondary="post_like",
        order_by="PostLike.created_at",
        viewonly=True,
    )
    hidden_by: Mapped[list[User]] = relationship(
        "User",
        secondary="post_hidden",
        viewonly=True,
    )

    @classmethod
    def build(
        cls,
        *,
        author_id: int,
        kind: PostKind | str,
        content: str | None = None,
        quote_content: str | None = None,
        parent_id: int | None = None,
        original_id: int | None = None,
        media: list[dict[str, str]] | None = None,
        visibility: Visibility | str = Visibility.PUBLIC,
    ) -> Post:
        """Construct a post after validating the fields its kind requires.

        Raises:
            InvalidArgument: If the kind is unknown or a kind-specific field
                is missing, present where forbidden, or too long.
        """
        kind = _coerce(PostKind, kind, "post kind")
        visibility = _coerce(Visibility, visibility, "visibility")
        content = content.strip() if content is not None else None
        quote_content = quote_content.strip() if quote_content else None
        media = list(media or [])

        if kind is PostKind.REPOST:
            if original_id is None:
                raise InvalidArgument("Repost must include the original post id.")
            # Repost content is null by convention; quote text goes in quote_content.
            content = None
        else:
            if not content:
                raise InvalidArgument("Content is required for posts and replies.")
            if original_id is not None:
                raise InvalidArgument("Only reposts may reference an original post.")
            quote_content = None

        if kind is PostKind.REPLY and parent_id is None:
            raise InvalidArgument("Reply must include the parent post id.")
        if kind is not PostKind.REPLY and parent_id is not None:
            raise InvalidArgument("Only replies may reference a parent post.")

        if content is not None and len(content) > MAX_CONTENT_LENGTH:
            raise InvalidArgument(f"Content can't exceed {MAX_CONTENT_LENGTH} characters.")
        if quote_content is not None and len(quote_content) > MAX_QUOTE_LENGTH:
            raise InvalidArgument(f"Quote can't exceed {MAX_QUOTE_LENGTH} characters.")
        if len(media) > MAX_MEDIA_ITEMS:
            raise InvalidArgument(f"You can only upload up to {MAX_MEDIA_ITEMS} media files.")

        return cls(
            author_id=author_id,
            kind=kind.value,
            content=content,
            quote_content=quote_content,
            parent_id=parent_id,
            original_id=original_id,
            media=media,
            visibility=visibility.value,
            like_count=0,
            repost_count=0,
            reply_count=0,
            is_deleted=False,
        )

    @property
    def post_kind(self) -> PostKind:
        return PostKind(self.kind)

    def is_visible_to(self, viewer_id: int | None) -> bool:
        """Return False only for a private post read by someone other than its author."""
        return self.visibility == Visibility.PUBLIC.value or self.author_id == viewer_id

    @property
    def media_public_ids(self) -> list[str]:
        """Return the blob ids referenced by ``media``."""
        return [item["public_id"] for item in self.media or [] if item.get("public_id")]

    def tombstone(self, when: datetime) -> None:
        """Mark the post deleted and drop its content, keeping edges and counters."""
        self.is_deleted = True
        self.deleted_at = when
        self.content = None
        self.media = []


def _coerce(enum_cls: type[Enum], value: Any, label: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError as err:
        allowed = ", ".join(repr(member.value) for member in enum_cls)
        raise InvalidArgument(f"Invalid {label}. Must be one of {allowed}.") from err

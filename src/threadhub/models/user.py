"""SQLAlchemy models for accounts, follow edges and device sessions."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threadhub.db.session import Base
from threadhub.db.time import utcnow

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class Follow(Base):
    """Directed follow edge.

    One row is both ``follower.following`` and ``followee.followers``, so the
    two sides of the relation cannot disagree.
    """

    __tablename__ = "follow"

    follower_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    followee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class ProfileLike(Base):
    """A user liking another user's profile (``likes_given`` / ``liked_by``)."""

    __tablename__ = "profile_like"

    liker_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    liked_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class User(Base):
    """Registered account and public profile."""

    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(254), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    display_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    bio: Mapped[str | None] = mapped_column(String(160), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_public_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    website: Mapped[str | None] = mapped_column(Text, nullable=True)

    role: Mapped[str] = mapped_column(String(16), nullable=False, default=ROLE_USER)
    last_seen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    followers: Mapped[list[User]] = relationship(
        "User",
        secondary="follow",
        primaryjoin="User.id == Follow.followee_id",
        secondaryjoin="User.id == Follow.follower_id",
        viewonly=True,
        order_by="Follow.created_at",
    )
    following: Mapped[list[User]] = relationship(
        "User",
        secondary="follow",
        primaryjoin="User.id == Follow.follower_id",
        secondaryjoin="User.id == Follow.followee_id",
        viewonly=True,
        order_by="Follow.created_at",
    )
    liked_by: Mapped[list[User]] = relationship(
        "User",
        secondary="profile_like",
        primaryjoin="User.id == ProfileLike.liked_id",
        secondaryjoin="User.id == ProfileLike.liker_id",
        viewonly=True,
    )
    likes_given: Mapped[list[User]] = relationship(
        "User",
        secondary="profile_like",
        primaryjoin="User.id == ProfileLike.liker_id",
        secondaryjoin="User.id == ProfileLike.liked_id",
        viewonly=True,
    )

    sessions: Mapped[list[UserSession]] = relationship(
        "UserSession",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="UserSession.created_at",
    )

    @property
    def is_admin(self) -> bool:
        """Return True if the account may force-delete other users' posts."""
        return self.role == ROLE_ADMIN


class UserSession(Base):
    """One logged-in device, keyed by the HMAC of its refresh token.

    The raw refresh token is never stored.
    """

    __tablename__ = "user_session"
    __table_args__ = (Index("ix_user_session_user_token", "user_id", "token_hash"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
    )
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    last_used_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    user: Mapped[User] = relationship("User", back_populates="sessions")

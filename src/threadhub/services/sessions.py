"""Refresh-token session bookkeeping with rotation on use."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from threadhub.core.errors import ExpiredOrRevoked
from threadhub.core.security import hmac_digest
from threadhub.db.time import utcnow
from threadhub.models import User, UserSession
from threadhub.services.tokens import PURPOSE_REFRESH, TokenPair, TokenService

logger = logging.getLogger(__name__)

__all__ = ["ClientMeta", "SessionManager"]


@dataclass(frozen=True)
class ClientMeta:
    """Request metadata recorded alongside a session."""

    ip: str | None = None
    user_agent: str | None = None


class SessionManager:
    """Issue, rotate and revoke refresh-token sessions for users.

    Only the HMAC of a refresh token is persisted, so a leaked table cannot be
    replayed without the server secret.
    """

    def __init__(self, session: Session, tokens: TokenService, hmac_secret: str) -> None:
        self.session = session
        self.tokens = tokens
        self._hmac_secret = hmac_secret

    def _digest(self, token: str) -> str:
        return hmac_digest(token, self._hmac_secret)

    def record_session(
        self,
        user: User,
        refresh_token: str,
        client_meta: ClientMeta | None = None,
    ) -> UserSession:
        """Append a session record for ``refresh_token`` to ``user``."""
        meta = client_meta or ClientMeta()
        now = utcnow()
        record = UserSession(
            user_id=user.id,
            token_hash=self._digest(refresh_token),
            expires_at=now + self.tokens.refresh_ttl,
            created_at=now,
            last_used_at=now,
            ip=meta.ip,
            user_agent=meta.user_agent,
        )
        self.session.add(record)
        return record

    def purge_expired(self, user_id: int) -> int:
        """Drop the user's expired session records and return how many went."""
        # SQLite hands back naive timestamps, so the expiry predicate must not
        # be re-evaluated in Python against already loaded records.
        result = self.session.execute(
            delete(UserSession)
            .where(
                UserSession.user_id == user_id,
                UserSession.expires_at <= utcnow(),
            )
            .execution_options(synchronize_session="fetch")
        )
        return int(result.rowcount or 0)

    def start_session(self, user: User, client_meta: ClientMeta | None = None) -> TokenPair:
        """Issue a token pair for a freshly authenticated user and persist it."""
        self.purge_expired(user.id)
        pair = self.tokens.issue_token_pair(user.id)
        self.record_session(user, pair.refresh_token, client_meta)
        user.last_seen_at = utcnow()
        self.session.commit()
        return pair

    def rotate_refresh(
        self,
        presented_token: str,
        client_meta: ClientMeta | None = None,
    ) -> tuple[User, TokenPair]:
        """Consume ``presented_token`` and return a fresh token pair.

        Raises:
            InvalidToken: If the token is malformed, expired or not a refresh token.
            ExpiredOrRevoked: If no live session record matches the token.
        """
        user_id = self.tokens.subject(presented_token, PURPOSE_REFRESH)
        user = self.session.get(User, user_id)
        if user is None:
            raise ExpiredOrRevoked("Session expired or revoked")

        self.purge_expired(user.id)
        record = self.session.scalars(
            select(UserSession).where(
                UserSession.user_id == user.id,
                UserSession.token_hash == self._digest(presented_token),
                UserSession.expires_at > utcnow(),
            )
        ).first()
        if record is None:
            logger.warning("Rejected refresh token with no live session for user %s", user.id)
            self.session.commit()
            raise ExpiredOrRevoked("Session expired or revoked")

        self.session.delete(record)
        pair = self.tokens.issue_token_pair(user.id)
        self.record_session(user, pair.refresh_token, client_meta)
        user.last_seen_at = utcnow()
        self.session.commit()
        logger.info("Rotated refresh token for user %s", user.id)
        return user, pair

    def revoke_session(self, user_id: int, presented_token: str | None) -> None:
        """Remove the session matching ``presented_token``; missing ones are ignored."""
        if not presented_token:
            return
        self.session.execute(
            delete(UserSession).where(
                UserSession.user_id == user_id,
                UserSession.token_hash == self._digest(presented_token),
            )
        )
        self.session.commit()

    def revoke_all_sessions(self, user_id: int) -> None:
        self.session.execute(delete(UserSession).where(UserSession.user_id == user_id))
        self.session.commit()
        logger.info("Revoked all sessions for user %s", user_id)

    def list_sessions(self, user_id: int) -> list[UserSession]:
        """Return the user's live sessions, oldest first."""
        stmt = (
            select(UserSession)
            .where(UserSession.user_id == user_id, UserSession.expires_at > utcnow())
            .order_by(UserSession.created_at, UserSession.id)
        )
        return list(self.session.scalars(stmt))

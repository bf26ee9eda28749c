"""Signed access/refresh token capability built on python-jose."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Final

from jose import ExpiredSignatureError, JWTError, jwt

from threadhub.core.errors import InvalidToken
from threadhub.core.settings import Settings
from threadhub.db.time import utcnow

PURPOSE_ACCESS: Final = "access"
PURPOSE_REFRESH: Final = "refresh"


@dataclass(frozen=True)
class TokenPair:
    """Access and refresh token minted together."""

    access_token: str
    refresh_token: str


class TokenService:
    """Issue and verify purpose-scoped JWTs.

    Access and refresh tokens are signed with different secrets, and each
    carries a ``purpose`` claim, so one can never be replayed as the other.
    """

    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        access_ttl: timedelta,
        refresh_ttl: timedelta,
    ) -> None:
        self._secrets = {PURPOSE_ACCESS: access_secret, PURPOSE_REFRESH: refresh_secret}
        self._ttls = {PURPOSE_ACCESS: access_ttl, PURPOSE_REFRESH: refresh_ttl}
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenService:
        return cls(
            access_secret=settings.jwt_access_secret,
            refresh_secret=settings.jwt_refresh_secret,
            algorithm=settings.jwt_algorithm,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
        )

    @property
    def refresh_ttl(self) -> timedelta:
        return self._ttls[PURPOSE_REFRESH]

    def sign(self, user_id: int, purpose: str, ttl: timedelta | None = None) -> str:
        """Return a signed token for ``user_id`` scoped to ``purpose``."""
        issued_at = utcnow()
        claims: dict[str, Any] = {
            "sub": str(user_id),
            "purpose": purpose,
            "iat": int(issued_at.timestamp()),
            "exp": issued_at + (ttl if ttl is not None else self._ttls[purpose]),
            # Unique per token so two tokens minted in the same second differ.
            "jti": secrets.token_urlsafe(12),
        }
        encoded: str = jwt.encode(claims, self._secrets[purpose], algorithm=self.algorithm)
        return encoded

    def issue_token_pair(self, user_id: int) -> TokenPair:
        return TokenPair(
            access_token=self.sign(user_id, PURPOSE_ACCESS),
            refresh_token=self.sign(user_id, PURPOSE_REFRESH),
        )

    def verify(self, token: str, purpose: str) -> dict[str, Any]:
        """Return the claims of a valid token.

        Raises:
            InvalidToken: If the signature is invalid, the token expired, the
                purpose does not match, or the subject is missing.
        """
        try:
            claims: dict[str, Any] = jwt.decode(
                token,
                self._secrets[purpose],
                algorithms=[self.algorithm],
            )
        except ExpiredSignatureError as err:
            raise InvalidToken("Token expired", details={"code": "AUTH_TOKEN_EXPIRED"}) from err
        except JWTError as err:
            raise InvalidToken("Invalid token", details={"code": "AUTH_TOKEN_INVALID"}) from err

        if claims.get("purpose") != purpose:
            raise InvalidToken("Wrong token type", details={"code": "AUTH_TOKEN_INVALID"})
        if not claims.get("sub"):
            raise InvalidToken("Token has no subject", details={"code": "AUTH_TOKEN_INVALID"})
        return claims

    def subject(self, token: str, purpose: str) -> int:
        """Verify ``token`` and return its subject as a user id."""
        claims = self.verify(token, purpose)
        try:
            return int(claims["sub"])
        except (TypeError, ValueError) as err:
            raise InvalidToken("Invalid token subject") from err

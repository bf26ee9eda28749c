"""Tests for the token, password and keyed-hash capabilities."""

from datetime import timedelta

import pytest

from threadhub.core.errors import InvalidToken
from threadhub.core.security import PasswordHasher, hmac_digest
from threadhub.services.tokens import PURPOSE_ACCESS, PURPOSE_REFRESH, TokenService


@pytest.fixture()
def tokens() -> TokenService:
    return TokenService(
        access_secret="a-secret",
        refresh_secret="r-secret",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=7),
    )


def test_issue_token_pair_round_trips_subject(tokens: TokenService) -> None:
    pair = tokens.issue_token_pair(42)
    assert tokens.subject(pair.access_token, PURPOSE_ACCESS) == 42
    assert tokens.subject(pair.refresh_token, PURPOSE_REFRESH) == 42


def test_tokens_minted_together_differ(tokens: TokenService) -> None:
    first = tokens.issue_token_pair(1)
    second = tokens.issue_token_pair(1)
    assert first.refresh_token != second.refresh_token
    assert first.access_token != second.access_token


def test_access_token_is_not_accepted_as_refresh(tokens: TokenService) -> None:
    access = tokens.sign(1, PURPOSE_ACCESS)
    with pytest.raises(InvalidToken):
        tokens.verify(access, PURPOSE_REFRESH)


def test_refresh_token_is_not_accepted_as_access(tokens: TokenService) -> None:
    refresh = tokens.sign(1, PURPOSE_REFRESH)
    with pytest.raises(InvalidToken):
        tokens.verify(refresh, PURPOSE_ACCESS)


def test_expired_token_is_rejected(tokens: TokenService) -> None:
    expired = tokens.sign(1, PURPOSE_ACCESS, ttl=timedelta(seconds=-5))
    with pytest.raises(InvalidToken) as excinfo:
        tokens.verify(expired, PURPOSE_ACCESS)
    assert excinfo.value.details == {"code": "AUTH_TOKEN_EXPIRED"}


def test_garbage_token_is_rejected(tokens: TokenService) -> None:
    with pytest.raises(InvalidToken, match="Invalid token"):
        tokens.verify("not-a-jwt", PURPOSE_ACCESS)


def test_password_hasher_verifies_only_the_original() -> None:
    hasher = PasswordHasher(rounds=4)
    digest = hasher.hash("password1")
    assert digest != "password1"
    assert hasher.verify("password1", digest)
    assert not hasher.verify("password2", digest)
    assert not hasher.verify("password1", "not-a-bcrypt-digest")


def test_hmac_digest_is_deterministic_and_keyed() -> None:
    assert hmac_digest("token", "k1") == hmac_digest("token", "k1")
    assert hmac_digest("token", "k1") != hmac_digest("token", "k2")
    assert len(hmac_digest("token", "k1")) == 64

# tests/conftest.py
from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Generator, Iterator
from itertools import count
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

os.environ.setdefault("JWT_ACCESS_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")
os.environ.setdefault("HMAC_REFRESH_SALT", "test-hmac-salt")

from threadhub.api.v1.dependencies import get_db as app_get_session  # noqa: E402
from threadhub.core.context import AppContext, build_context  # noqa: E402
from threadhub.core.settings import Settings  # noqa: E402
from threadhub.db.session import create_tables, drop_tables  # noqa: E402
from threadhub.main import create_app  # noqa: E402
from threadhub.models import Post, User  # noqa: E402
from threadhub.models.user import ROLE_ADMIN  # noqa: E402
from threadhub.services import FeedService, GraphMutationEngine, IdentityService, LocalBlobStore  # noqa: E402
from threadhub.services.tokens import PURPOSE_ACCESS  # noqa: E402

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "password1"

_USER_COUNTER = count(1)


@pytest.fixture()
def test_settings() -> Settings:
    """Settings for an in-memory database with cheap password hashing."""
    return Settings(
        database_url=TEST_DB_URL,
        auto_create_tables=False,
        password_hash_rounds=4,
        environment="development",
    )


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    try:
        yield engine
    finally:
        drop_tables(engine)
        engine.dispose()


@pytest.fixture()
def blob_store(tmp_path: Path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "media", base_url="/media")


@pytest.fixture()
def context(test_settings: Settings, engine: Engine, blob_store: LocalBlobStore) -> AppContext:
    return build_context(test_settings, engine=engine, blob_store=blob_store)


@pytest.fixture()
def db_session(context: AppContext) -> Iterator[Session]:
    session = context.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def app(context: AppContext, db_session: Session) -> Iterator[FastAPI]:
    """Application sharing the test session with every request."""
    fastapi_app = create_app(context)

    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    fastapi_app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def identity(context: AppContext, db_session: Session) -> IdentityService:
    return IdentityService(db_session, context.hasher, context.blob_store, max_avatar_bytes=1024)


@pytest.fixture()
def graph(context: AppContext, db_session: Session) -> GraphMutationEngine:
    return GraphMutationEngine(db_session, context.blob_store, max_media_bytes=1024)


@pytest.fixture()
def feed(db_session: Session) -> FeedService:
    return FeedService(db_session)


@pytest.fixture()
def make_user(identity: IdentityService, db_session: Session) -> Callable[..., User]:
    """Return a factory that registers users."""

    def _make(username: str | None = None, *, role: str | None = None) -> User:
        name = username or f"user{next(_USER_COUNTER)}"
        user = identity.register(name, f"{name}@example.com", TEST_PASSWORD)
        if role is not None:
            user.role = role
            db_session.commit()
        return user

    return _make


@pytest.fixture()
def alice(make_user: Callable[..., User]) -> User:
    return make_user("alice")


@pytest.fixture()
def bob(make_user: Callable[..., User]) -> User:
    return make_user("bob")


@pytest.fixture()
def carol(make_user: Callable[..., User]) -> User:
    return make_user("carol")


@pytest.fixture()
def admin(make_user: Callable[..., User]) -> User:
    return make_user("admin", role=ROLE_ADMIN)


@pytest.fixture()
def auth_headers(context: AppContext) -> Callable[[User], dict[str, str]]:
    """Return a helper building authorization headers for a user."""

    def _headers(user: User) -> dict[str, str]:
        token = context.tokens.sign(user.id, PURPOSE_ACCESS)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def alice_headers(alice: User, auth_headers: Callable[[User], dict[str, str]]) -> dict[str, str]:
    return auth_headers(alice)


@pytest.fixture()
def bob_headers(bob: User, auth_headers: Callable[[User], dict[str, str]]) -> dict[str, str]:
    return auth_headers(bob)


@pytest.fixture()
def make_post(graph: GraphMutationEngine) -> Callable[..., Post]:
    """Return a factory creating posts through the mutation engine."""

    def _make(author: User, content: str | None = "hello", **kwargs: Any) -> Post:
        return asyncio.run(graph.create_post(author, content=content, **kwargs))

    return _make


@pytest.fixture()
def alice_post(make_post: Callable[..., Post], alice: User) -> Post:
    """A public original post by alice."""
    return make_post(alice, "hello")

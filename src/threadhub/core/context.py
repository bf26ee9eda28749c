"""Explicitly constructed application context.

Everything a request needs beyond its own input (settings, database handles
and the external capabilities) lives on one :class:`AppContext` created at
startup and torn down at shutdown.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from threadhub.core.security import PasswordHasher
from threadhub.core.settings import Settings
from threadhub.db.session import build_engine, build_session_factory
from threadhub.services.blob_store import BlobStore, LocalBlobStore
from threadhub.services.tokens import TokenService

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker[Session]
    tokens: TokenService
    hasher: PasswordHasher
    blob_store: BlobStore
    # False when the engine was handed in by the caller, who then disposes it.
    owns_engine: bool = True

    def close(self) -> None:
        """Release pooled database connections."""
        if self.owns_engine:
            self.engine.dispose()
            logger.debug("Disposed database engine")


def build_context(
    settings: Settings,
    *,
    engine: Engine | None = None,
    blob_store: BlobStore | None = None,
) -> AppContext:
    """Create the context for ``settings``.

    Args:
        settings: Loaded application settings.
        engine: Pre-built engine, e.g. an in-memory database in tests.
        blob_store: Storage backend; defaults to a local store under ``MEDIA_ROOT``.

    Returns:
        A ready-to-use :class:`AppContext`.
    """
    owns_engine = engine is None
    engine = engine or build_engine(settings.database_url, echo=settings.sql_debug)
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=build_session_factory(engine),
        tokens=TokenService.from_settings(settings),
        hasher=PasswordHasher(rounds=settings.password_hash_rounds),
        blob_store=blob_store or LocalBlobStore(settings.media_root, settings.media_base_url),
        owns_engine=owns_engine,
    )

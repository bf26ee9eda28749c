"""Shared API dependencies for authentication and common functionality."""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, Request, UploadFile
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from threadhub.core.context import AppContext
from threadhub.core.errors import Unauthorized
from threadhub.models import User
from threadhub.services import (
    ClientMeta,
    FeedService,
    GraphMutationEngine,
    IdentityService,
    SessionManager,
)
from threadhub.services.blob_store import Upload
from threadhub.services.tokens import PURPOSE_ACCESS

# HTTP Bearer scheme for JWT authentication; missing credentials are reported
# through our own error body rather than FastAPI's default 403.
bearer_scheme = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    """Return the context stored on the application at startup."""
    context: AppContext = request.app.state.context
    return context


ContextDep = Annotated[AppContext, Depends(get_context)]


def get_db(context: ContextDep) -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = context.session_factory()
    try:
        yield db
    finally:
        db.close()


# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    context: ContextDep,
    db: SessionDep,
) -> User:
    """Get the current authenticated user from the access token.

    Args:
        credentials: HTTP Bearer token credentials, if any were sent
        context: Application context holding the token service
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        Unauthorized: If the token is missing, invalid or its user is gone
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Not authenticated")
    user_id = context.tokens.subject(credentials.credentials, PURPOSE_ACCESS)
    user = db.get(User, user_id)
    if user is None:
        raise Unauthorized("User not found")
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_client_meta(request: Request) -> ClientMeta:
    """Capture the caller's address and user agent for session records."""
    return ClientMeta(
        ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


ClientMetaDep = Annotated[ClientMeta, Depends(get_client_meta)]


def get_identity_service(context: ContextDep, db: SessionDep) -> IdentityService:
    return IdentityService(
        db,
        context.hasher,
        context.blob_store,
        max_avatar_bytes=context.settings.max_avatar_bytes,
    )


def get_session_manager(context: ContextDep, db: SessionDep) -> SessionManager:
    return SessionManager(db, context.tokens, context.settings.hmac_refresh_salt)


def get_graph_engine(context: ContextDep, db: SessionDep) -> GraphMutationEngine:
    return GraphMutationEngine(
        db,
        context.blob_store,
        max_media_bytes=context.settings.max_media_bytes,
    )


def get_feed_service(context: ContextDep, db: SessionDep) -> FeedService:
    return FeedService(db, max_page_size=context.settings.max_page_size)


IdentityServiceDep = Annotated[IdentityService, Depends(get_identity_service)]
SessionManagerDep = Annotated[SessionManager, Depends(get_session_manager)]
GraphEngineDep = Annotated[GraphMutationEngine, Depends(get_graph_engine)]
FeedServiceDep = Annotated[FeedService, Depends(get_feed_service)]


async def read_upload(upload: UploadFile | None) -> Upload | None:
    """Read a multipart file into memory; empty parts count as absent."""
    if upload is None or not upload.filename:
        return None
    data = await upload.read()
    return Upload(
        filename=upload.filename,
        content_type=upload.content_type or "application/octet-stream",
        data=data,
    )

"""Authentication endpoints for the threadhub API."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Body, Request, Response, status

from threadhub.core.errors import Unauthorized
from threadhub.core.settings import Settings
from threadhub.models import User
from threadhub.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    SessionInfo,
    TokenResponse,
)
from threadhub.schemas.common import error_responses
from threadhub.schemas.user import UserPrivate
from threadhub.services.tokens import TokenPair

from ..dependencies import (
    ClientMetaDep,
    ContextDep,
    CurrentUserDep,
    IdentityServiceDep,
    SessionManagerDep,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["authentication"],
    responses=error_responses(400, 401, 409),
)

OptionalRefreshBody = Annotated[RefreshRequest | None, Body()]


def _set_refresh_cookie(response: Response, settings: Settings, refresh_token: str) -> None:
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=refresh_token,
        max_age=settings.refresh_max_age_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.refresh_cookie_samesite,  # type: ignore[arg-type]
        path="/",
    )


def _clear_refresh_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.refresh_cookie_samesite,  # type: ignore[arg-type]
        path="/",
    )


def _presented_refresh_token(
    request: Request,
    settings: Settings,
    payload: RefreshRequest | None,
) -> str | None:
    """Return the refresh token from the JSON body or, failing that, the cookie."""
    if payload is not None and payload.refresh_token:
        return payload.refresh_token
    return request.cookies.get(settings.refresh_cookie_name)


def _auth_response(user: User, pair: TokenPair) -> AuthResponse:
    return AuthResponse(
        user=UserPrivate.model_validate(user),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
    )


@router.post(
    "/register",
    summary="Register a new account",
    status_code=status.HTTP_201_CREATED,
    response_model=AuthResponse,
)
async def register_user(
    payload: RegisterRequest,
    response: Response,
    context: ContextDep,
    identity: IdentityServiceDep,
    sessions: SessionManagerDep,
    client_meta: ClientMetaDep,
) -> AuthResponse:
    """Create an account and sign it in.

    Returns:
        The new account with an access token and a refresh token. The refresh
        token is also set as an httpOnly cookie.
    """
    user = identity.register(payload.username, payload.email, payload.password)
    pair = sessions.start_session(user, client_meta)
    _set_refresh_cookie(response, context.settings, pair.refresh_token)
    return _auth_response(user, pair)


@router.post(
    "/login",
    summary="Authenticate with username or email",
    status_code=status.HTTP_200_OK,
    response_model=AuthResponse,
)
async def login_user(
    payload: LoginRequest,
    response: Response,
    context: ContextDep,
    identity: IdentityServiceDep,
    sessions: SessionManagerDep,
    client_meta: ClientMetaDep,
) -> AuthResponse:
    """Verify credentials and open a new session for this device."""
    user = identity.authenticate(payload.identifier, payload.password)
    pair = sessions.start_session(user, client_meta)
    _set_refresh_cookie(response, context.settings, pair.refresh_token)
    logger.info("User %s logged in", user.id)
    return _auth_response(user, pair)


@router.post(
    "/refresh",
    summary="Rotate the refresh token",
    response_model=TokenResponse,
)
async def refresh_tokens(
    request: Request,
    response: Response,
    context: ContextDep,
    sessions: SessionManagerDep,
    client_meta: ClientMetaDep,
    payload: OptionalRefreshBody = None,
) -> TokenResponse:
    """Exchange a refresh token for a new pair.

    The presented token is consumed; presenting it again fails with
    ``ExpiredOrRevoked``.
    """
    token = _presented_refresh_token(request, context.settings, payload)
    if not token:
        raise Unauthorized("Refresh token missing")
    _, pair = sessions.rotate_refresh(token, client_meta)
    _set_refresh_cookie(response, context.settings, pair.refresh_token)
    return TokenResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post(
    "/logout",
    summary="End the current session",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def logout(
    request: Request,
    response: Response,
    current_user: CurrentUserDep,
    context: ContextDep,
    sessions: SessionManagerDep,
    payload: OptionalRefreshBody = None,
) -> None:
    """Revoke the session of the presented refresh token, if any."""
    token = _presented_refresh_token(request, context.settings, payload)
    sessions.revoke_session(current_user.id, token)
    _clear_refresh_cookie(response, context.settings)


@router.post(
    "/logout-all",
    summary="End every session of the current user",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def logout_all(
    response: Response,
    current_user: CurrentUserDep,
    context: ContextDep,
    sessions: SessionManagerDep,
) -> None:
    sessions.revoke_all_sessions(current_user.id)
    _clear_refresh_cookie(response, context.settings)


@router.get(
    "/sessions",
    summary="List the current user's active sessions",
    response_model=list[SessionInfo],
)
async def list_sessions(
    current_user: CurrentUserDep,
    sessions: SessionManagerDep,
) -> list[SessionInfo]:
    return [SessionInfo.model_validate(record) for record in sessions.list_sessions(current_user.id)]

"""Profile, follow and profile-like endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, File, Form, Query, UploadFile

from threadhub.schemas.common import error_responses
from threadhub.schemas.user import (
    FollowList,
    FollowListType,
    FollowToggleResult,
    ProfileDetail,
    ProfileLikeResult,
    ProfileSearchResult,
    UserPrivate,
)

from ..dependencies import CurrentUserDep, IdentityServiceDep, read_upload

router = APIRouter(
    prefix="/profiles",
    tags=["profiles"],
    responses=error_responses(400, 401, 404, 409),
)


@router.get("/search", response_model=ProfileSearchResult)
async def search_profiles(
    current_user: CurrentUserDep,
    identity: IdentityServiceDep,
    query: str = Query(..., description="Substring of a username or display name"),
) -> ProfileSearchResult:
    """Search profiles by username or display name (at most 10, excluding you)."""
    return identity.search_profiles(query, current_user)


@router.put("/me", response_model=UserPrivate)
async def update_my_profile(
    current_user: CurrentUserDep,
    identity: IdentityServiceDep,
    display_name: Annotated[str | None, Form()] = None,
    bio: Annotated[str | None, Form()] = None,
    website: Annotated[str | None, Form()] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
) -> UserPrivate:
    """Update the current user's profile.

    Args:
        current_user: Authenticated user
        identity: Identity service
        display_name: New display name, 3-50 characters after trimming
        bio: New bio, up to 160 characters
        website: New website URL; an empty value clears it
        avatar: New avatar image

    Returns:
        The updated account
    """
    user = await identity.update_profile(
        current_user,
        display_name=display_name,
        bio=bio,
        website=website,
        avatar=await read_upload(avatar),
    )
    return UserPrivate.model_validate(user)


@router.get("/{username}", response_model=ProfileDetail)
async def get_profile(
    username: str,
    current_user: CurrentUserDep,
    identity: IdentityServiceDep,
) -> ProfileDetail:
    """Return a profile with follow and mutual-follower information."""
    return identity.get_profile(username, current_user)


@router.patch("/{username}/follow", response_model=FollowToggleResult)
async def toggle_follow(
    username: str,
    current_user: CurrentUserDep,
    identity: IdentityServiceDep,
) -> FollowToggleResult:
    """Follow the user, or unfollow them if already following."""
    return identity.toggle_follow(current_user, username)


@router.post("/{username}/like", response_model=ProfileLikeResult)
async def toggle_profile_like(
    username: str,
    current_user: CurrentUserDep,
    identity: IdentityServiceDep,
) -> ProfileLikeResult:
    return identity.toggle_profile_like(current_user, username)


@router.get("/{username}/{list_type}", response_model=FollowList)
async def get_follow_list(
    username: str,
    list_type: FollowListType,
    current_user: CurrentUserDep,
    identity: IdentityServiceDep,
) -> FollowList:
    """List a user's followers or the users they follow."""
    return identity.list_follows(username, list_type, current_user)

"""Tests for profiles and the follow / profile-like edges."""

from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.orm import Session

from threadhub.core.errors import Conflict, InvalidArgument, NotFound, Unauthorized
from threadhub.models import User
from threadhub.core.context import AppContext
from threadhub.services import BlobStoreError, IdentityService, LocalBlobStore, StoredBlob, Upload

PNG = Upload(filename="a.png", content_type="image/png", data=b"\x89PNG fake")


def test_register_normalizes_username_and_email(identity: IdentityService) -> None:
    user = identity.register("  Dave ", "DAVE@Example.com", "password1")
    assert user.username == "dave"
    assert user.email == "dave@example.com"
    assert user.role == "user"


def test_register_rejects_duplicates_case_insensitively(identity: IdentityService, alice: User) -> None:
    with pytest.raises(Conflict):
        identity.register("ALICE", "fresh@example.com", "password1")
    with pytest.raises(Conflict):
        identity.register("fresh", "Alice@Example.com", "password1")


def test_register_requires_all_fields(identity: IdentityService) -> None:
    with pytest.raises(InvalidArgument, match="All fields are required"):
        identity.register("dave", "", "password1")


def test_authenticate_by_username_or_email(identity: IdentityService, alice: User) -> None:
    assert identity.authenticate("alice", "password1").id == alice.id
    assert identity.authenticate("ALICE@example.com", "password1").id == alice.id
    with pytest.raises(Unauthorized):
        identity.authenticate("alice", "wrong-password")
    with pytest.raises(Unauthorized):
        identity.authenticate("nobody", "password1")


def test_toggle_follow_keeps_both_sides_in_step(
    identity: IdentityService, db_session: Session, alice: User, bob: User
) -> None:
    result = identity.toggle_follow(alice, "bob")
    assert result.following is True
    assert result.followers_count == 1
    assert result.following_count == 1

    db_session.expire_all()
    assert [user.id for user in alice.following] == [bob.id]
    assert [user.id for user in bob.followers] == [alice.id]

    result = identity.toggle_follow(alice, "bob")
    assert result.following is False
    db_session.expire_all()
    assert alice.following == []
    assert bob.followers == []


def test_toggle_follow_rejects_self_and_unknown(identity: IdentityService, alice: User) -> None:
    with pytest.raises(InvalidArgument):
        identity.toggle_follow(alice, "alice")
    with pytest.raises(NotFound):
        identity.toggle_follow(alice, "ghost")


def test_toggle_profile_like(identity: IdentityService, alice: User, bob: User) -> None:
    liked = identity.toggle_profile_like(alice, "bob")
    assert liked.liked is True
    assert liked.likes_count == 1

    unliked = identity.toggle_profile_like(alice, "bob")
    assert unliked.liked is False
    assert unliked.likes_count == 0

    with pytest.raises(InvalidArgument):
        identity.toggle_profile_like(alice, "alice")


def test_get_profile_relationship_flags(
    identity: IdentityService, make_user: Callable[..., User], alice: User, bob: User, carol: User
) -> None:
    dave = make_user("dave")
    identity.toggle_follow(alice, "bob")
    identity.toggle_follow(bob, "alice")
    # alice follows carol and dave, who both follow bob.
    identity.toggle_follow(alice, "carol")
    identity.toggle_follow(alice, "dave")
    identity.toggle_follow(carol, "bob")
    identity.toggle_follow(dave, "bob")
    identity.toggle_profile_like(alice, "bob")

    profile = identity.get_profile("bob", alice)
    assert profile.activity == "otherProfile"
    assert profile.you_follow_them is True
    assert profile.they_follow_you is True
    assert profile.is_mutual is True
    assert profile.liked_by_me is True
    assert profile.followers_count == 3
    assert profile.following_count == 1
    assert profile.likes_count == 1
    assert profile.mutual_followers_count == 2
    assert {user.username for user in profile.mutual_followers_preview} == {"carol", "dave"}


def test_get_profile_of_self(identity: IdentityService, alice: User) -> None:
    profile = identity.get_profile("alice", alice)
    assert profile.activity == "myProfile"
    assert profile.you_follow_them is False
    assert not hasattr(profile, "sessions")


def test_get_profile_unknown_user(identity: IdentityService, alice: User) -> None:
    with pytest.raises(NotFound):
        identity.get_profile("ghost", alice)


def test_search_profiles_excludes_viewer(
    identity: IdentityService, make_user: Callable[..., User], alice: User
) -> None:
    make_user("alicia")
    make_user("bobby")
    identity.toggle_follow(alice, "alicia")

    result = identity.search_profiles("ALI", alice)
    assert [user.username for user in result.users] == ["alicia"]
    assert result.total == 1
    assert result.users[0].is_followed is True
    assert result.users[0].followers_count == 1

    with pytest.raises(InvalidArgument):
        identity.search_profiles("  ", alice)


def test_search_profiles_caps_results(identity: IdentityService, make_user: Callable[..., User], alice: User) -> None:
    for index in range(12):
        make_user(f"member{index}")
    assert identity.search_profiles("member", alice).total == 10


def test_list_follows_with_like_flags(
    identity: IdentityService, alice: User, bob: User, carol: User
) -> None:
    identity.toggle_follow(bob, "alice")
    identity.toggle_follow(carol, "alice")
    identity.toggle_profile_like(alice, "bob")
    identity.toggle_profile_like(carol, "alice")

    followers = identity.list_follows("alice", "followers", alice)
    assert followers.total == 2
    flags = {entry.username: (entry.liked_by_me, entry.liked_me) for entry in followers.users}
    assert flags == {"bob": (True, False), "carol": (False, True)}

    following = identity.list_follows("bob", "following", alice)
    assert [entry.username for entry in following.users] == ["alice"]

    with pytest.raises(InvalidArgument):
        identity.list_follows("alice", "friends", alice)


@pytest.mark.asyncio
async def test_update_profile_fields(identity: IdentityService, alice: User) -> None:
    user = await identity.update_profile(
        alice, display_name="  Alice A  ", bio="hi there", website="example.com/alice"
    )
    assert user.display_name == "Alice A"
    assert user.bio == "hi there"
    assert user.website == "example.com/alice"

    cleared = await identity.update_profile(alice, website="")
    assert cleared.website is None


@pytest.mark.asyncio
async def test_update_profile_validation(identity: IdentityService, alice: User) -> None:
    with pytest.raises(InvalidArgument, match="Nothing to update"):
        await identity.update_profile(alice)
    with pytest.raises(InvalidArgument, match="at least 3"):
        await identity.update_profile(alice, display_name=" ab ")
    with pytest.raises(InvalidArgument, match="Bio"):
        await identity.update_profile(alice, bio="b" * 161)
    with pytest.raises(InvalidArgument, match="website"):
        await identity.update_profile(alice, website="not a url")


@pytest.mark.asyncio
async def test_update_avatar_replaces_previous_blob(
    identity: IdentityService, blob_store: LocalBlobStore, alice: User
) -> None:
    first = await identity.update_profile(alice, avatar=PNG)
    first_id = first.avatar_public_id
    assert first_id is not None and first_id.startswith("thread/avatars/")
    assert await blob_store.exists(first_id)

    second = await identity.update_profile(alice, avatar=PNG)
    assert second.avatar_public_id != first_id
    assert not await blob_store.exists(first_id)


@pytest.mark.asyncio
async def test_update_avatar_rejects_non_images_and_large_files(identity: IdentityService, alice: User) -> None:
    with pytest.raises(InvalidArgument, match="image"):
        await identity.update_profile(alice, avatar=Upload("a.txt", "text/plain", b"hi"))
    with pytest.raises(InvalidArgument, match="too large"):
        await identity.update_profile(alice, avatar=Upload("a.png", "image/png", b"x" * 2048))


@pytest.mark.asyncio
async def test_failed_old_avatar_purge_is_swallowed(
    db_session: Session, context: AppContext, alice: User
) -> None:
    store = AsyncMock()
    store.store.return_value = StoredBlob(url="/media/new.png", public_id="thread/avatars/new.png")
    store.delete.side_effect = BlobStoreError("storage offline")
    alice.avatar_public_id = "thread/avatars/old.png"
    db_session.commit()

    service = IdentityService(db_session, context.hasher, store)
    user = await service.update_profile(alice, avatar=PNG)

    assert user.avatar_public_id == "thread/avatars/new.png"
    store.delete.assert_awaited_once_with("thread/avatars/old.png")

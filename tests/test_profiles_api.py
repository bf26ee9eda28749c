"""HTTP tests for profile, follow and profile-like endpoints."""

from fastapi import status
from fastapi.testclient import TestClient

from threadhub.models import User

PROFILES_URL = "/api/v1/profiles"

Headers = dict[str, str]


def test_follow_scenario(
    client: TestClient, alice: User, bob: User, alice_headers: Headers, bob_headers: Headers
) -> None:
    followed = client.patch(f"{PROFILES_URL}/bob/follow", headers=alice_headers)
    assert followed.status_code == status.HTTP_200_OK
    assert followed.json() == {"following": True, "followers_count": 1, "following_count": 1}

    profile = client.get(f"{PROFILES_URL}/alice", headers=bob_headers).json()
    assert profile["they_follow_you"] is True
    assert profile["you_follow_them"] is False
    assert profile["activity"] == "otherProfile"

    followers = client.get(f"{PROFILES_URL}/bob/followers", headers=alice_headers).json()
    assert followers["type"] == "followers"
    assert [user["username"] for user in followers["users"]] == ["alice"]

    unfollowed = client.patch(f"{PROFILES_URL}/bob/follow", headers=alice_headers)
    assert unfollowed.json()["following"] is False
    assert unfollowed.json()["followers_count"] == 0


def test_own_profile_and_self_follow(client: TestClient, alice: User, alice_headers: Headers) -> None:
    profile = client.get(f"{PROFILES_URL}/alice", headers=alice_headers).json()
    assert profile["activity"] == "myProfile"

    response = client.patch(f"{PROFILES_URL}/alice/follow", headers=alice_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "You cannot follow yourself."


def test_profile_like_toggle(client: TestClient, alice: User, bob: User, alice_headers: Headers) -> None:
    liked = client.post(f"{PROFILES_URL}/bob/like", headers=alice_headers)
    assert liked.json() == {"liked": True, "likes_count": 1}
    unliked = client.post(f"{PROFILES_URL}/bob/like", headers=alice_headers)
    assert unliked.json() == {"liked": False, "likes_count": 0}


def test_unknown_profile_and_list_type(client: TestClient, alice: User, alice_headers: Headers) -> None:
    missing = client.get(f"{PROFILES_URL}/nobody", headers=alice_headers)
    assert missing.status_code == status.HTTP_404_NOT_FOUND

    bad_type = client.get(f"{PROFILES_URL}/alice/frenemies", headers=alice_headers)
    assert bad_type.status_code == status.HTTP_400_BAD_REQUEST


def test_search_excludes_the_viewer(client: TestClient, alice: User, bob: User, alice_headers: Headers) -> None:
    response = client.get(f"{PROFILES_URL}/search", params={"query": "b"}, headers=alice_headers)
    assert response.status_code == status.HTTP_200_OK
    assert [user["username"] for user in response.json()["users"]] == ["bob"]


def test_update_my_profile(client: TestClient, alice: User, alice_headers: Headers) -> None:
    response = client.put(
        f"{PROFILES_URL}/me",
        data={"display_name": "Alice A.", "bio": "hi there", "website": "https://alice.dev"},
        headers=alice_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["display_name"] == "Alice A."
    assert body["website"] == "https://alice.dev"

    empty = client.put(f"{PROFILES_URL}/me", headers=alice_headers)
    assert empty.status_code == status.HTTP_400_BAD_REQUEST
    assert empty.json()["message"] == "Nothing to update."

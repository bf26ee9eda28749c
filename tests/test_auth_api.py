"""HTTP tests for registration, login and refresh-token rotation."""

from collections.abc import Callable

from fastapi import status
from fastapi.testclient import TestClient

from threadhub.models import User

REGISTER_URL = "/api/v1/auth/register"
LOGIN_URL = "/api/v1/auth/login"
REFRESH_URL = "/api/v1/auth/refresh"
LOGOUT_URL = "/api/v1/auth/logout"
LOGOUT_ALL_URL = "/api/v1/auth/logout-all"
SESSIONS_URL = "/api/v1/auth/sessions"


def _register(client: TestClient, username: str = "alice", email: str = "alice@x.com", password: str = "password1"):
    return client.post(REGISTER_URL, json={"username": username, "email": email, "password": password})


def test_register_login_refresh_scenario(client: TestClient) -> None:
    registered = _register(client)
    assert registered.status_code == status.HTTP_201_CREATED
    body = registered.json()
    assert body["access_token"]
    assert body["refresh_token"]
    assert body["user"]["username"] == "alice"
    assert "password_hash" not in body["user"]

    login = client.post(LOGIN_URL, json={"identifier": "alice", "password": "password1"})
    assert login.status_code == status.HTTP_200_OK
    stored_refresh = login.json()["refresh_token"]
    assert stored_refresh != body["refresh_token"]

    refreshed = client.post(REFRESH_URL, json={"refresh_token": stored_refresh})
    assert refreshed.status_code == status.HTTP_200_OK
    assert refreshed.json()["refresh_token"] != stored_refresh

    replayed = client.post(REFRESH_URL, json={"refresh_token": stored_refresh})
    assert replayed.status_code == status.HTTP_401_UNAUTHORIZED
    assert replayed.json()["error"] == "ExpiredOrRevoked"


def test_register_sets_http_only_refresh_cookie(client: TestClient) -> None:
    response = _register(client)
    assert response.status_code == status.HTTP_201_CREATED
    cookie_header = response.headers["set-cookie"]
    assert cookie_header.startswith("refreshToken=")
    assert "HttpOnly" in cookie_header
    assert "Max-Age=604800" in cookie_header
    assert "samesite=none" in cookie_header.lower()
    assert "Secure" in cookie_header


def test_login_accepts_email_as_identifier(client: TestClient) -> None:
    _register(client)
    response = client.post(LOGIN_URL, json={"email": "alice@x.com", "password": "password1"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["user"]["email"] == "alice@x.com"


def test_login_with_wrong_password_is_unauthorized(client: TestClient) -> None:
    _register(client)
    response = client.post(LOGIN_URL, json={"identifier": "alice", "password": "nope-nope"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {
        "status": 401,
        "error": "Unauthorized",
        "message": "Invalid credentials",
    }


def test_register_duplicate_is_conflict(client: TestClient) -> None:
    _register(client)
    response = _register(client, email="other@x.com")
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "Conflict"


def test_register_validates_input(client: TestClient) -> None:
    short = _register(client, password="short")
    assert short.status_code == status.HTTP_400_BAD_REQUEST
    assert short.json()["error"] == "InvalidArgument"

    bad_email = _register(client, email="not-an-email")
    assert bad_email.status_code == status.HTTP_400_BAD_REQUEST

    missing = client.post(REGISTER_URL, json={"username": "alice"})
    assert missing.status_code == status.HTTP_400_BAD_REQUEST
    assert missing.json()["message"] == "Validation failed"
    assert missing.json()["details"]


def test_refresh_without_token_is_unauthorized(client: TestClient) -> None:
    response = client.post(REFRESH_URL)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_refresh_with_access_token_is_invalid(client: TestClient) -> None:
    access = _register(client).json()["access_token"]
    response = client.post(REFRESH_URL, json={"refresh_token": access})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == "InvalidToken"


def test_logout_revokes_the_presented_session(client: TestClient) -> None:
    body = _register(client).json()
    headers = {"Authorization": f"Bearer {body['access_token']}"}

    response = client.post(LOGOUT_URL, json={"refresh_token": body["refresh_token"]}, headers=headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT

    again = client.post(LOGOUT_URL, json={"refresh_token": body["refresh_token"]}, headers=headers)
    assert again.status_code == status.HTTP_204_NO_CONTENT

    refreshed = client.post(REFRESH_URL, json={"refresh_token": body["refresh_token"]})
    assert refreshed.status_code == status.HTTP_401_UNAUTHORIZED


def test_logout_requires_authentication(client: TestClient) -> None:
    response = client.post(LOGOUT_URL)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_logout_all_and_session_listing(client: TestClient) -> None:
    first = _register(client).json()
    client.post(LOGIN_URL, json={"identifier": "alice", "password": "password1"})
    headers = {"Authorization": f"Bearer {first['access_token']}"}

    listed = client.get(SESSIONS_URL, headers=headers)
    assert listed.status_code == status.HTTP_200_OK
    assert len(listed.json()) == 2
    assert "token_hash" not in listed.json()[0]

    assert client.post(LOGOUT_ALL_URL, headers=headers).status_code == status.HTTP_204_NO_CONTENT
    assert client.get(SESSIONS_URL, headers=headers).json() == []
    assert client.post(REFRESH_URL, json={"refresh_token": first["refresh_token"]}).status_code == 401


def test_access_token_for_deleted_user_is_rejected(
    client: TestClient, alice: User, auth_headers: Callable[[User], dict[str, str]], db_session
) -> None:
    headers = auth_headers(alice)
    db_session.delete(alice)
    db_session.commit()
    response = client.get("/api/v1/posts/feed", headers=headers)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

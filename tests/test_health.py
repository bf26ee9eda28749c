# tests/test_health.py
from fastapi import status
from fastapi.testclient import TestClient


def test_root_responds(client: TestClient) -> None:
    """The root endpoint describes the API."""
    r = client.get("/")
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["name"] == "threadhub"


def test_health(client: TestClient) -> None:
    r = client.get("/health")
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"status": "ok"}


def test_unknown_route_is_404(client: TestClient) -> None:
    r = client.get("/api/v1/nope")
    assert r.status_code == status.HTTP_404_NOT_FOUND


def test_protected_route_without_token_uses_error_body(client: TestClient) -> None:
    r = client.get("/api/v1/posts/feed")
    assert r.status_code == status.HTTP_401_UNAUTHORIZED
    body = r.json()
    assert body["status"] == 401
    assert body["error"] == "Unauthorized"
    assert body["message"] == "Not authenticated"


def test_openapi_documents_error_bodies(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()
    error_ref = {"$ref": "#/components/schemas/ErrorResponse"}

    assert "ErrorResponse" in schema["components"]["schemas"]
    delete = schema["paths"]["/api/v1/posts/{post_id}"]["delete"]["responses"]
    assert delete["403"]["content"]["application/json"]["schema"] == error_ref
    login = schema["paths"]["/api/v1/auth/login"]["post"]["responses"]
    assert login["401"]["content"]["application/json"]["schema"] == error_ref
    profile = schema["paths"]["/api/v1/profiles/{username}"]["get"]["responses"]
    assert profile["404"]["content"]["application/json"]["schema"] == error_ref

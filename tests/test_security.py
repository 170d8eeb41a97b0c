import pytest
from fastapi.testclient import TestClient

from uconnect_api.app.core.errors import InvalidCredential, MissingCredential
from uconnect_api.app.core.security import (
    ROLE_ADMINISTRATOR,
    ROLE_STUDENT,
    create_access_token,
    hash_password,
    issue_token,
    verify_password,
    verify_token,
)
from uconnect_api.app.main import create_app
from uconnect_api.app.services.comment_service import CommentService
from uconnect_api.app.services.references import parse_reference


def test_verify_token_returns_stored_identity(factory):
    alice = factory.account("alice")

    # The role claim is ignored; the stored role decides.
    identity = verify_token(issue_token(alice, ROLE_ADMINISTRATOR))

    assert identity.account_id == alice
    assert identity.role == ROLE_STUDENT
    assert not identity.is_admin


def test_missing_token():
    with pytest.raises(MissingCredential):
        verify_token(None)


@pytest.mark.parametrize("token", ["garbage", "a.b.c", "...."])
def test_malformed_token(token):
    with pytest.raises(InvalidCredential):
        verify_token(token)


def test_expired_token(factory):
    alice = factory.account("alice")
    token = create_access_token({"sub": str(alice), "role": ROLE_STUDENT}, expires_delta=-60)

    with pytest.raises(InvalidCredential):
        verify_token(token)


def test_tampered_token(factory):
    alice = factory.account("alice")
    header, payload, signature = issue_token(alice, ROLE_STUDENT).split(".")
    forged = issue_token(alice + 1, ROLE_STUDENT).split(".")[1]

    with pytest.raises(InvalidCredential):
        verify_token(f"{header}.{forged}.{signature}")


def test_token_of_unknown_account():
    with pytest.raises(InvalidCredential):
        verify_token(issue_token(999, ROLE_STUDENT))


def test_http_errors_carry_bearer_challenge(client):
    missing = client.get("/api/v1/estudiante/perfil")
    invalid = client.get("/api/v1/estudiante/perfil", headers={"Authorization": "Bearer nope"})

    assert missing.status_code == 401
    assert missing.json() == {"error": "Token not provided"}
    assert missing.headers["WWW-Authenticate"] == "Bearer"
    assert invalid.status_code == 401
    assert invalid.json() == {"error": "Invalid or expired token"}


def test_unknown_route_uses_error_body(client):
    response = client.get("/api/v1/nada")

    assert response.status_code == 404
    assert "error" in response.json()


def test_password_hashing():
    hashed = hash_password("Password123!")

    assert hashed != "Password123!"
    assert verify_password("Password123!", hashed)
    assert not verify_password("password123!", hashed)
    assert not verify_password("Password123!", "not-a-hash")


@pytest.mark.parametrize(
    "value, expected",
    [(7, 7), ("7", 7), (" 12 ", 12), ("0", None), (-3, None), ("abc", None), ("1.5", None), (True, None), (None, None)],
)
def test_parse_reference(value, expected):
    assert parse_reference(value) == expected


def test_unexpected_errors_become_a_generic_500(factory, monkeypatch, publisher, asset_store, mailer):
    async def broken(cls, identity, publication_id):
        raise KeyError("author_username")

    monkeypatch.setattr(CommentService, "list_comments", classmethod(broken))
    alice = factory.account("alice")
    app = create_app(publisher=publisher, asset_store=asset_store, mailer=mailer)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/v1/publicacion/1", headers=factory.headers(alice))

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}

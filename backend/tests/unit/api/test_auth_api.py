"""Integration tests for the authentication endpoints."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from freezegun import freeze_time

from memorial.services.users.values import Role
from tests.factories.user import DEFAULT_PASSWORD, UserFactory
from tests.helpers.assertions import assert_json_keys
from tests.helpers.http import json_headers

BASE = "/api/v1/auth"
T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture()
def user(session):
    u = UserFactory(email="ops@example.com", role=Role.ADMIN)
    session.commit()
    return u


def _login(client, user, identifier: str | None = None):
    payload = {
        "identifier": identifier or str(uuid4()),
        "email": user.email,
        "password": DEFAULT_PASSWORD,
    }
    return client.post(f"{BASE}/login", json=payload)


def _token_body(token: dict) -> dict:
    return {"token": token}


def test_login_returns_token_pair(client, user) -> None:
    """A user with valid credentials receives an access and a refresh token."""

    identifier = str(uuid4())
    with freeze_time(T0):
        resp = _login(client, user, identifier)

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert_json_keys(data, {"identifier", "accessToken", "refreshToken"})
    assert data["identifier"] == identifier
    assert data["accessToken"]["type"] == "ACCESS"
    assert data["refreshToken"]["type"] == "REFRESH"
    assert "|" in data["accessToken"]["value"]
    expires_at = datetime.fromisoformat(data["accessToken"]["expiresAt"])
    assert expires_at == T0 + timedelta(minutes=60)


def test_login_again_while_active_is_conflict(client, user) -> None:
    """A second login on a live identifier never hands out unusable values."""

    identifier = str(uuid4())
    with freeze_time(T0) as frozen:
        first = _login(client, user, identifier).get_json()["data"]

        frozen.tick(timedelta(minutes=30))
        resp = _login(client, user, identifier)
        me = client.get(f"{BASE}/me", headers=json_headers(first["accessToken"]["value"]))

    assert resp.status_code == 409
    assert resp.mimetype == "application/problem+json"
    assert resp.get_json()["code"] == "conflict"
    assert me.status_code == 200


def test_login_after_access_expiry_returns_working_tokens(client, user) -> None:
    identifier = str(uuid4())
    with freeze_time(T0) as frozen:
        first = _login(client, user, identifier).get_json()["data"]

        frozen.tick(timedelta(minutes=90))
        resp = _login(client, user, identifier)
        second = resp.get_json()["data"]
        me = client.get(f"{BASE}/me", headers=json_headers(second["accessToken"]["value"]))

    assert resp.status_code == 200
    assert second["accessToken"]["value"] != first["accessToken"]["value"]
    assert me.status_code == 200
    assert me.get_json()["data"]["identifier"] == identifier


@pytest.mark.parametrize("minutes", [30, 90])
def test_login_with_another_users_identifier_is_conflict(client, user, session, minutes) -> None:
    other = UserFactory()
    session.commit()
    identifier = str(uuid4())
    with freeze_time(T0) as frozen:
        _login(client, user, identifier)

        frozen.tick(timedelta(minutes=minutes))
        resp = _login(client, other, identifier)

    assert resp.status_code == 409
    assert "data" not in resp.get_json()
    assert resp.get_json()["code"] == "conflict"


def test_login_with_wrong_password_is_forbidden(client, user) -> None:
    resp = client.post(
        f"{BASE}/login",
        json={"identifier": str(uuid4()), "email": user.email, "password": "not-the-one"},
    )

    assert resp.status_code == 403
    assert resp.mimetype == "application/problem+json"
    assert resp.get_json()["code"] == "forbidden"


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"identifier": "nope", "email": "ops@example.com", "password": DEFAULT_PASSWORD},
        {"identifier": str(uuid4()), "email": "not-an-email", "password": DEFAULT_PASSWORD},
        {"identifier": str(uuid4()), "email": "ops@example.com", "password": "short"},
    ],
)
def test_login_validation_errors(client, user, payload) -> None:
    resp = client.post(f"{BASE}/login", json=payload)

    assert resp.status_code == 422
    body = resp.get_json()
    assert body["code"] == "validation_error"
    assert body["details"]["errors"]


def test_introspect_reports_presented_token(client, user) -> None:
    with freeze_time(T0) as frozen:
        data = _login(client, user).get_json()["data"]

        frozen.tick(timedelta(minutes=90))
        resp = client.post(f"{BASE}/introspect", json=_token_body(data["refreshToken"]))

    assert resp.status_code == 200
    result = resp.get_json()["data"]
    assert result == {
        "active": True,
        "accessToken": {"active": False},
        "refreshToken": {"active": True},
    }


def test_introspect_unknown_token_is_unauthorized(client) -> None:
    body = {"token": {"type": "ACCESS", "value": "x|00000000", "expiresAt": T0.isoformat()}}

    resp = client.post(f"{BASE}/introspect", json=body)

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "invalid_token"


def test_refresh_rotates_tokens(client, user) -> None:
    with freeze_time(T0) as frozen:
        first = _login(client, user).get_json()["data"]

        frozen.tick(timedelta(minutes=90))
        resp = client.post(f"{BASE}/refresh", json=_token_body(first["refreshToken"]))
        assert resp.status_code == 200
        rotated = resp.get_json()["data"]

        assert rotated["identifier"] == first["identifier"]
        assert rotated["accessToken"]["value"] != first["accessToken"]["value"]

        reused = client.post(f"{BASE}/refresh", json=_token_body(first["refreshToken"]))
        assert reused.status_code == 401


def test_refresh_rejects_access_token(client, user) -> None:
    data = _login(client, user).get_json()["data"]

    resp = client.post(f"{BASE}/refresh", json=_token_body(data["accessToken"]))

    assert resp.status_code == 422


def test_revoke_then_me_is_unauthorized(client, user) -> None:
    data = _login(client, user).get_json()["data"]
    headers = json_headers(data["accessToken"]["value"])

    assert client.get(f"{BASE}/me", headers=headers).status_code == 200

    resp = client.post(f"{BASE}/revoke", json=_token_body(data["accessToken"]))
    assert resp.status_code == 200
    assert resp.get_json() == {}

    assert client.get(f"{BASE}/me", headers=headers).status_code == 401
    again = client.post(f"{BASE}/revoke", json=_token_body(data["accessToken"]))
    assert again.status_code == 401


def test_me_returns_profile(client, user) -> None:
    data = _login(client, user).get_json()["data"]

    resp = client.get(f"{BASE}/me", headers=json_headers(data["accessToken"]["value"]))

    assert resp.status_code == 200
    assert resp.get_json()["data"] == {
        "identifier": data["identifier"],
        "user": user.identifier,
        "abilities": ["ADMIN"],
    }


@pytest.mark.parametrize("header", [None, "Token abc", "Bearer ", "Bearer unknown|00000000"])
def test_me_requires_valid_bearer(client, header) -> None:
    headers = {"Authorization": header} if header else {}

    resp = client.get(f"{BASE}/me", headers=headers)

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "invalid_token"


def test_me_rejects_expired_access_token(client, user) -> None:
    with freeze_time(T0) as frozen:
        data = _login(client, user).get_json()["data"]

        frozen.tick(timedelta(minutes=61))
        resp = client.get(f"{BASE}/me", headers=json_headers(data["accessToken"]["value"]))

    assert resp.status_code == 401


def test_logout_deletes_authentication(client, user) -> None:
    data = _login(client, user).get_json()["data"]
    headers = json_headers(data["accessToken"]["value"])

    resp = client.post(f"{BASE}/logout", json={"identifier": data["identifier"]}, headers=headers)

    assert resp.status_code == 200
    assert client.get(f"{BASE}/me", headers=headers).status_code == 401
    relogin = _login(client, user, data["identifier"])
    assert relogin.status_code == 200


def test_logout_of_other_users_authentication_is_forbidden(client, user, session) -> None:
    other = UserFactory()
    session.commit()
    mine = _login(client, user).get_json()["data"]
    theirs = _login(client, other).get_json()["data"]

    resp = client.post(
        f"{BASE}/logout",
        json={"identifier": theirs["identifier"]},
        headers=json_headers(mine["accessToken"]["value"]),
    )

    assert resp.status_code == 403


def test_logout_unknown_identifier_is_not_found(client, user) -> None:
    data = _login(client, user).get_json()["data"]

    resp = client.post(
        f"{BASE}/logout",
        json={"identifier": str(uuid4())},
        headers=json_headers(data["accessToken"]["value"]),
    )

    assert resp.status_code == 404
    assert resp.get_json()["code"] == "not_found"


def test_logout_requires_bearer(client) -> None:
    resp = client.post(f"{BASE}/logout", json={"identifier": str(uuid4())})

    assert resp.status_code == 401

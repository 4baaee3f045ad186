# tests/integration/test_api_auth.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt as pyjwt
import pytest
from freezegun import freeze_time

from tests.factories.user import DEFAULT_PASSWORD, UserFactory

BASE = "/api/v1"


def _register(client, username="alice", password="secret1"):
    return client.post(f"{BASE}/auth/register", json={"username": username, "password": password})


def test_health(client):
    resp = client.get(f"{BASE}/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"


def test_register_login_refresh_flow(client):
    """
    GIVEN a new account
    WHEN registering, logging in and rotating the refresh token
    THEN each step returns a pair and the consumed token cannot be reused.
    """
    resp = _register(client)
    assert resp.status_code == 201
    pair = resp.get_json()["data"]
    assert pair["token_type"] == "bearer"
    assert pair["expires_in"] == 900

    resp = client.post(f"{BASE}/auth/login", json={"username": "alice", "password": "secret1"})
    assert resp.status_code == 200
    login_pair = resp.get_json()["data"]

    resp = client.post(f"{BASE}/auth/refresh", json={"refresh_token": login_pair["refresh_token"]})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["refresh_token"] != login_pair["refresh_token"]

    resp = client.post(f"{BASE}/auth/refresh", json={"refresh_token": login_pair["refresh_token"]})
    assert resp.status_code == 401
    assert resp.get_json()["code"] == "invalid_or_expired_token"


def test_register_duplicate_username(client):
    UserFactory(username="bob")
    resp = _register(client, username="bob")
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "username_taken"


def test_register_validation_error_is_problem_json(client):
    resp = client.post(f"{BASE}/auth/register", json={"username": "al"})
    assert resp.status_code == 422
    assert resp.mimetype == "application/problem+json"
    body = resp.get_json()
    assert body["code"] == "validation_error"
    assert "password" in body["details"]["errors"]


def test_login_errors(client):
    UserFactory(username="carl")
    UserFactory(username="banned", is_banned=True)

    resp = client.post(f"{BASE}/auth/login", json={"username": "carl", "password": "nope!!"})
    assert (resp.status_code, resp.get_json()["code"]) == (401, "invalid_credentials")

    resp = client.post(
        f"{BASE}/auth/login", json={"username": "banned", "password": DEFAULT_PASSWORD}
    )
    assert (resp.status_code, resp.get_json()["code"]) == (403, "account_banned")


def test_access_token_expires_after_fifteen_minutes(client):
    issued = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    with freeze_time(issued):
        token = _register(client, username="dora").get_json()["data"]["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    with freeze_time(issued + timedelta(minutes=14)):
        assert client.get(f"{BASE}/posts?lat=0&lng=0", headers=headers).status_code == 200
    with freeze_time(issued + timedelta(minutes=15, seconds=1)):
        resp = client.get(f"{BASE}/posts?lat=0&lng=0", headers=headers)
    assert (resp.status_code, resp.get_json()["code"]) == (401, "token_expired")


@pytest.mark.parametrize(
    ("header", "code"),
    [(None, "missing_token"), ("Basic abc", "missing_token"), ("Bearer junk", "invalid_token")],
)
def test_protected_routes_require_bearer(client, header, code):
    headers = {"Authorization": header} if header else {}
    resp = client.get(f"{BASE}/posts?lat=0&lng=0", headers=headers)
    assert (resp.status_code, resp.get_json()["code"]) == (401, code)


def test_token_with_foreign_algorithm_rejected(client, app):
    now = datetime.now(timezone.utc)
    token = pyjwt.encode(
        {
            "sub": "1",
            "type": "access",
            "jti": "x",
            "iss": app.config["JWT_DECODE_ISSUER"],
            "iat": now,
            "exp": now + timedelta(minutes=5),
        },
        app.config["JWT_SECRET_KEY"],
        algorithm="HS384",
    )
    resp = client.get(f"{BASE}/posts?lat=0&lng=0", headers={"Authorization": f"Bearer {token}"})
    assert (resp.status_code, resp.get_json()["code"]) == (401, "wrong_algorithm")


def test_request_id_is_echoed(client):
    """
    GIVEN consecutive requests from one client
    WHEN each carries its own X-Request-ID (or none)
    THEN every response echoes its own id and generated ids are not reused.
    """
    first = client.get(f"{BASE}/health", headers={"X-Request-ID": "trace-42"})
    second = client.get(f"{BASE}/health", headers={"X-Correlation-ID": "trace-43"})
    third = client.get(f"{BASE}/health")
    fourth = client.get(f"{BASE}/health")

    assert first.headers["X-Request-ID"] == "trace-42"
    assert second.headers["X-Request-ID"] == "trace-43"
    assert third.headers["X-Request-ID"] not in {"trace-42", "trace-43"}
    assert third.headers["X-Request-ID"] != fourth.headers["X-Request-ID"]

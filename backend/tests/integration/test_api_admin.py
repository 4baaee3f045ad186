# tests/integration/test_api_admin.py
from __future__ import annotations

import pytest
from hyperlocal.models import Post

from tests.factories.post import PostFactory, RefreshTokenFactory, ReportFactory, VoteFactory
from tests.factories.user import UserFactory

BASE = "/api/v1/admin"


@pytest.mark.parametrize(
    ("method", "path"),
    [
        ("get", "/flagged"),
        ("get", "/posts/1/reports"),
        ("delete", "/posts/1"),
        ("patch", "/posts/1/unflag"),
        ("post", "/posts/1/reconcile"),
        ("patch", "/users/1/ban"),
        ("patch", "/users/1/unban"),
    ],
)
def test_admin_routes_refuse_regular_users(client, user_headers, method, path):
    _, headers = user_headers
    resp = getattr(client, method)(f"{BASE}{path}", headers=headers)
    assert (resp.status_code, resp.get_json()["code"]) == (403, "forbidden")


def test_flagged_listing_is_paginated(client, admin_headers):
    _, headers = admin_headers
    ids = [PostFactory(is_flagged=True).id for _ in range(3)]
    PostFactory()

    body = client.get(f"{BASE}/flagged?page=1&limit=2", headers=headers).get_json()
    assert [p["id"] for p in body["data"]] == [ids[2], ids[1]]
    assert body["meta"]["total"] == 3
    assert body["meta"]["has_next"] is True

    body = client.get(f"{BASE}/flagged?page=2&limit=2", headers=headers).get_json()
    assert [p["id"] for p in body["data"]] == [ids[0]]


def test_reports_unflag_and_delete(client, admin_headers, session):
    _, headers = admin_headers
    post = PostFactory(is_flagged=True)
    post_id = post.id
    ReportFactory(post=post, reason="spam")

    reports = client.get(f"{BASE}/posts/{post_id}/reports", headers=headers).get_json()["data"]
    assert [r["reason"] for r in reports] == ["spam"]

    resp = client.patch(f"{BASE}/posts/{post_id}/unflag", headers=headers)
    assert resp.get_json()["data"]["is_flagged"] is False

    assert client.delete(f"{BASE}/posts/{post_id}", headers=headers).status_code == 204
    assert session.get(Post, post_id) is None
    assert client.delete(f"{BASE}/posts/{post_id}", headers=headers).status_code == 404


def test_reconcile_repairs_counters(client, admin_headers):
    _, headers = admin_headers
    post = PostFactory(upvotes=5, downvotes=5, integrity_hold=True)
    post_id = post.id
    VoteFactory(post=post, kind="upvote")

    data = client.post(f"{BASE}/posts/{post_id}/reconcile", headers=headers).get_json()["data"]
    assert data == {"post_id": post_id, "upvotes": 1, "downvotes": 0, "changed": True}


def test_ban_and_unban(client, admin_headers):
    _, headers = admin_headers
    target_id = UserFactory().id
    RefreshTokenFactory(user_id=target_id)

    data = client.patch(f"{BASE}/users/{target_id}/ban", headers=headers).get_json()["data"]
    assert data == {"user_id": target_id, "is_banned": True, "sessions_revoked": 1}

    data = client.patch(f"{BASE}/users/{target_id}/unban", headers=headers).get_json()["data"]
    assert data["is_banned"] is False

    assert client.patch(f"{BASE}/users/999999/ban", headers=headers).status_code == 404

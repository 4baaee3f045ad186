"""Fixtures for HTTP-level tests driven through the Flask test client."""

from __future__ import annotations

import pytest

from tests.factories.user import UserFactory
from tests.helpers.utils import bearer_for


@pytest.fixture(autouse=True)
def _fresh_rate_limiter(app):
    """Start every test with an empty in-memory limiter."""
    app.extensions.pop("rate_limiter", None)
    yield
    app.extensions.pop("rate_limiter", None)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def user_headers(app):
    user = UserFactory()
    return user.id, bearer_for(app, user.id)


@pytest.fixture()
def admin_headers(app):
    admin = UserFactory(username="admin")
    return admin.id, bearer_for(app, admin.id, role="admin")

# tests/unit/services/test_auth_service.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from freezegun import freeze_time
from hyperlocal.models import RefreshToken, User
from hyperlocal.services._shared.errors import (
    AccountBannedError,
    ConflictError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    TokenExpiredError,
    ValidationError,
)
from hyperlocal.services._shared.ports.token_provider import StubTokenProvider
from hyperlocal.services.auth.dto import LoginIn, RefreshIn, RegisterIn, TokenPairOut
from hyperlocal.services.auth.service import AuthService, hash_refresh_token

from tests.factories.post import RefreshTokenFactory
from tests.factories.user import DEFAULT_PASSWORD, UserFactory


# ------------------------------ Fixtures ---------------------------------- #
@pytest.fixture()
def service() -> AuthService:
    """Build an AuthService wired to the in-memory token provider."""
    return AuthService(token_provider=StubTokenProvider())


def _stored_tokens(session, user_id: int) -> list[RefreshToken]:
    return session.query(RefreshToken).filter_by(user_id=user_id).all()


# ------------------------------ Register ---------------------------------- #
def test_register_creates_user_and_pair(service, session):
    """
    GIVEN a free username
    WHEN registering
    THEN a user exists and the pair carries a 15 minute access TTL.
    """
    pair = service.register(RegisterIn(username="  carol ", password="secret1"))

    assert isinstance(pair, TokenPairOut)
    assert pair.expires_in == 900
    assert pair.token_type == "bearer"
    user = session.query(User).filter_by(username="carol").one()
    assert user.verify_password("secret1")
    (stored,) = _stored_tokens(session, user.id)
    assert stored.token_hash == hash_refresh_token(pair.refresh_token)
    assert pair.refresh_token not in stored.token_hash


def test_register_rejects_taken_username(service, session):
    UserFactory(username="dave")
    with pytest.raises(ConflictError) as exc:
        service.register(RegisterIn(username="dave", password="secret1"))
    assert exc.value.code == "username_taken"
    assert session.query(User).filter_by(username="dave").count() == 1


@pytest.mark.parametrize(
    ("username", "password", "field"),
    [("ab", "secret1", "username"), ("x" * 31, "secret1", "username"), ("erin", "12345", "password")],
)
def test_register_validates_lengths(service, username, password, field):
    with pytest.raises(ValidationError) as exc:
        service.register(RegisterIn(username=username, password=password))
    assert exc.value.field == field


# -------------------------------- Login ----------------------------------- #
def test_login_issues_pair(service, session):
    user = UserFactory(username="frank")
    pair = service.login(LoginIn(username="frank", password=DEFAULT_PASSWORD))
    claims = service.validate_access_token(pair.access_token)
    assert claims.user_id == user.id
    assert claims.role == "user"


@pytest.mark.parametrize("username", ["frank", "nobody"])
def test_login_invalid_credentials(service, session, username):
    UserFactory(username="frank")
    with pytest.raises(InvalidCredentialsError):
        service.login(LoginIn(username=username, password="not-the-password"))


def test_login_banned_user_needs_correct_password_to_learn_ban(service, session):
    """
    GIVEN a banned user
    WHEN logging in with a wrong password, then the right one
    THEN the first fails as bad credentials and only the second reveals the ban.
    """
    UserFactory(username="gina", is_banned=True)
    with pytest.raises(InvalidCredentialsError):
        service.login(LoginIn(username="gina", password="wrong"))
    with pytest.raises(AccountBannedError):
        service.login(LoginIn(username="gina", password=DEFAULT_PASSWORD))


@pytest.mark.parametrize("password", [None, "custom-secret"])
def test_login_survives_a_rolled_back_attempt(service, session, password):
    """
    GIVEN a user whose first login attempt fails (and rolls back)
    WHEN logging in again with the right password
    THEN the stored hash is intact and the login succeeds.
    """
    kwargs = {"password": password} if password else {}
    user = UserFactory(username="hank", **kwargs)
    assert user not in session.dirty

    with pytest.raises(InvalidCredentialsError):
        service.login(LoginIn(username="hank", password="wrong"))
    pair = service.login(LoginIn(username="hank", password=password or DEFAULT_PASSWORD))

    assert service.validate_access_token(pair.access_token).user_id == user.id


# ------------------------------- Refresh ---------------------------------- #
def test_refresh_rotates_and_blocks_reuse(service, session):
    """
    GIVEN a pair from login
    WHEN the refresh token is used twice
    THEN the first use returns a new pair and the second fails.
    """
    user = UserFactory()
    first = service.issue_token_pair(user.id)

    second = service.refresh(RefreshIn(refresh_token=first.refresh_token))
    assert second.refresh_token != first.refresh_token

    with pytest.raises(InvalidOrExpiredTokenError):
        service.refresh(RefreshIn(refresh_token=first.refresh_token))

    (stored,) = _stored_tokens(session, user.id)
    assert stored.token_hash == hash_refresh_token(second.refresh_token)


def test_refresh_unknown_token(service, session):
    with pytest.raises(InvalidOrExpiredTokenError):
        service.refresh(RefreshIn(refresh_token="never-issued"))


def test_refresh_expired_token_is_deleted(service, session):
    """
    GIVEN a refresh token past its expiry
    WHEN it is presented
    THEN refresh fails and the row is gone afterwards.
    """
    user = UserFactory()
    RefreshTokenFactory(
        user_id=user.id,
        token_hash=hash_refresh_token("stale"),
        expires_at=datetime.now(timezone.utc) - timedelta(seconds=5),
    )

    with pytest.raises(InvalidOrExpiredTokenError):
        service.refresh(RefreshIn(refresh_token="stale"))
    assert _stored_tokens(session, user.id) == []


def test_refresh_expires_after_thirty_days(service, session):
    user = UserFactory()
    with freeze_time("2025-01-01 12:00:00"):
        pair = service.issue_token_pair(user.id)
    with freeze_time("2025-01-31 12:00:01"), pytest.raises(InvalidOrExpiredTokenError):
        service.refresh(RefreshIn(refresh_token=pair.refresh_token))


def test_refresh_banned_user_consumes_token(service, session):
    user = UserFactory()
    pair = service.issue_token_pair(user.id)
    session.get(User, user.id).is_banned = True
    session.commit()

    with pytest.raises(AccountBannedError):
        service.refresh(RefreshIn(refresh_token=pair.refresh_token))
    assert _stored_tokens(session, user.id) == []


# ------------------------------ Validation -------------------------------- #
def test_access_token_expires_after_fifteen_minutes(service, session):
    user = UserFactory()
    with freeze_time("2025-01-01 12:00:00"):
        pair = service.issue_token_pair(user.id)
    with freeze_time("2025-01-01 12:14:59"):
        assert service.validate_access_token(pair.access_token).user_id == user.id
    with freeze_time("2025-01-01 12:15:01"), pytest.raises(TokenExpiredError):
        service.validate_access_token(pair.access_token)


def test_validate_rejects_garbage(service):
    with pytest.raises(InvalidTokenError):
        service.validate_access_token("garbage")


def test_issue_token_pair_refuses_banned_user(service, session):
    user = UserFactory(is_banned=True)
    with pytest.raises(AccountBannedError):
        service.issue_token_pair(user.id)


# ------------------------------ Maintenance ------------------------------- #
def test_sweep_and_revoke(service, session):
    user = UserFactory()
    now = datetime.now(timezone.utc)
    RefreshTokenFactory(user_id=user.id, expires_at=now - timedelta(hours=1))
    RefreshTokenFactory(user_id=user.id, expires_at=now + timedelta(hours=1))

    assert service.sweep_expired_refresh_tokens() == 1
    assert service.revoke_user_sessions(user.id) == 1
    assert _stored_tokens(session, user.id) == []

# tests/unit/services/test_moderation_service.py
from __future__ import annotations

import pytest
from hyperlocal.models import RefreshToken, User
from hyperlocal.services._shared.base import ROLE_ADMIN, ROLE_USER, ServiceContext
from hyperlocal.services._shared.errors import (
    AccountBannedError,
    AuthError,
    AuthorizationError,
    InvalidOrExpiredTokenError,
    NotFoundError,
)
from hyperlocal.services._shared.ports.token_provider import StubTokenProvider
from hyperlocal.services.moderation.service import DEFAULT_NEARBY_RADIUS_M, ModerationService

from tests.factories.post import PostFactory, RefreshTokenFactory
from tests.factories.user import UserFactory


def _facade(actor_id: int | None = None, role: str = ROLE_USER, **kwargs) -> ModerationService:
    return ModerationService(
        token_provider=StubTokenProvider(),
        ctx=ServiceContext(actor_id=actor_id, role=role),
        **kwargs,
    )


@pytest.fixture()
def admin():
    return UserFactory(username="root")


def test_from_config_reads_policies(app):
    facade = ModerationService.from_config(
        {"REPORT_FLAG_THRESHOLD": 5, "VOTE_MAX_ATTEMPTS": 7, "NEARBY_DEFAULT_RADIUS_M": 1200},
        token_provider=StubTokenProvider(),
    )
    assert facade.reports.flag_threshold == 5
    assert facade.votes.max_attempts == 7
    assert facade.default_radius_m == 1200.0


def test_default_radius_is_five_km(session):
    """
    GIVEN posts 4.9 km and 5.1 km away
    WHEN querying nearby without a radius
    THEN only the closer one is returned.
    """
    assert DEFAULT_NEARBY_RADIUS_M == 5000.0
    close = PostFactory(latitude=0.0, longitude=0.044)  # ~4.89 km
    PostFactory(latitude=0.0, longitude=0.046)  # ~5.12 km

    results = _facade().nearby_posts(0.0, 0.0)
    assert [p.id for p in results] == [close.id]


def test_mutations_require_an_actor(session):
    post = PostFactory()
    facade = _facade()
    with pytest.raises(AuthError):
        facade.create_post("hi", 0, 0)
    with pytest.raises(AuthError):
        facade.cast_vote(post.id, "up")
    with pytest.raises(AuthError):
        facade.file_report(post.id, "spam")


def test_actor_comes_from_context(session):
    user = UserFactory()
    out = _facade(user.id).create_post("hello", 1.0, 2.0)
    assert out.author.id == user.id


@pytest.mark.parametrize(
    "call",
    [
        lambda f: f.list_flagged(),
        lambda f: f.list_reports(1),
        lambda f: f.delete_post(1),
        lambda f: f.unflag_post(1),
        lambda f: f.reconcile_post(1),
        lambda f: f.ban_user(1),
        lambda f: f.unban_user(1),
    ],
)
def test_admin_operations_refuse_regular_users(session, call):
    user = UserFactory()
    with pytest.raises(AuthorizationError):
        call(_facade(user.id, ROLE_USER))


def test_ban_revokes_sessions_and_blocks_writes(session, admin):
    """
    GIVEN a user with two live refresh tokens
    WHEN an admin bans them
    THEN the tokens are deleted, refresh fails and new posts are refused.
    """
    facade = _facade(admin.id, ROLE_ADMIN)
    pair = facade.register("mallory", "secret1")
    mallory = session.query(User).filter_by(username="mallory").one()
    RefreshTokenFactory(user_id=mallory.id)

    out = facade.ban_user(mallory.id)

    assert out.is_banned is True
    assert out.sessions_revoked == 2
    assert session.query(RefreshToken).filter_by(user_id=mallory.id).count() == 0
    with pytest.raises(InvalidOrExpiredTokenError):
        facade.refresh(pair.refresh_token)
    with pytest.raises(AccountBannedError):
        _facade(mallory.id).create_post("still here", 0, 0)
    with pytest.raises(AccountBannedError):
        facade.login("mallory", "secret1")


def test_unban_restores_access(session, admin):
    user = UserFactory(username="trent", is_banned=True)
    out = _facade(admin.id, ROLE_ADMIN).unban_user(user.id)
    assert out.is_banned is False
    assert _facade().login("trent", "Passw0rd!").access_token


def test_ban_unknown_user(session, admin):
    with pytest.raises(NotFoundError):
        _facade(admin.id, ROLE_ADMIN).ban_user(123_456)


def test_report_threshold_through_facade(session, admin):
    post = PostFactory()
    for _ in range(3):
        _facade(UserFactory().id).file_report(post.id, "spam")

    flagged = _facade(admin.id, ROLE_ADMIN).list_flagged()
    assert [p.id for p in flagged.items] == [post.id]
    assert _facade().nearby_posts(post.latitude, post.longitude) == []


def test_comment_deletion_by_admin(session, admin):
    post = PostFactory()
    comment = _facade(UserFactory().id).create_comment(post.id, "nice")
    _facade(admin.id, ROLE_ADMIN).delete_comment(comment.id)
    assert _facade().list_comments(post.id) == []

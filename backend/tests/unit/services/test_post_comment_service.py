# tests/unit/services/test_post_comment_service.py
from __future__ import annotations

import pytest
from hyperlocal.models import Comment, Post, Report, Vote
from hyperlocal.services._shared.errors import (
    AccountBannedError,
    AuthorizationError,
    InvariantViolation,
    NotFoundError,
    ValidationError,
)
from hyperlocal.services.comments.service import CommentService
from hyperlocal.services.posts.dto import CreatePostIn
from hyperlocal.services.posts.service import PostService

from tests.factories.post import CommentFactory, PostFactory, ReportFactory, VoteFactory
from tests.factories.user import UserFactory


@pytest.fixture()
def posts() -> PostService:
    return PostService()


@pytest.fixture()
def comments() -> CommentService:
    return CommentService()


# ------------------------------- Posts ------------------------------------ #
def test_create_post_starts_clean(posts, session):
    """
    GIVEN an active user
    WHEN creating a post
    THEN counters start at zero, it is unflagged and the author is attached.
    """
    user = UserFactory(username="poster")
    out = posts.create_post(user.id, CreatePostIn("hello there", 40.0, -3.0))

    assert (out.upvotes, out.downvotes, out.is_flagged) == (0, 0, False)
    assert out.author.id == user.id
    assert out.author.username == "poster"
    assert session.get(Post, out.id) is not None


@pytest.mark.parametrize(
    ("content", "lat", "lng"),
    [("", 0, 0), ("x" * 501, 0, 0), ("ok", 90.5, 0), ("ok", 0, -180.5)],
)
def test_create_post_validates(posts, session, content, lat, lng):
    user = UserFactory()
    with pytest.raises(ValidationError):
        posts.create_post(user.id, CreatePostIn(content, lat, lng))


def test_create_post_accepts_max_length(posts, session):
    out = posts.create_post(UserFactory().id, CreatePostIn("x" * 500, 0, 0))
    assert len(out.content) == 500


def test_banned_user_cannot_post(posts, session):
    user = UserFactory(is_banned=True)
    with pytest.raises(AccountBannedError):
        posts.create_post(user.id, CreatePostIn("hi", 0, 0))
    assert session.query(Post).filter_by(user_id=user.id).count() == 0


def test_delete_post_cascades(posts, session):
    """
    GIVEN a post with a vote, a comment and a report
    WHEN deleting it
    THEN every dependent row is gone.
    """
    post = PostFactory()
    post_id = post.id
    VoteFactory(post=post)
    CommentFactory(post=post)
    ReportFactory(post=post)

    posts.delete_post(post_id)

    session.expire_all()
    assert session.get(Post, post_id) is None
    for model in (Vote, Comment, Report):
        assert session.query(model).filter_by(post_id=post_id).count() == 0


def test_delete_missing_post(posts, session):
    with pytest.raises(NotFoundError):
        posts.delete_post(9_999)


def test_list_flagged_and_unflag(posts, session):
    """
    GIVEN two flagged posts and one clean post
    WHEN listing flagged posts and then unflagging one
    THEN the listing is newest first and the unflagged post keeps its reports.
    """
    older = PostFactory(is_flagged=True)
    newer = PostFactory(is_flagged=True)
    PostFactory()
    ReportFactory(post=older)

    page = posts.list_flagged(page=1, limit=10)
    assert [p.id for p in page.items] == [newer.id, older.id]
    assert page.meta.total == 2

    out = posts.unflag_post(older.id)
    assert out.is_flagged is False
    assert session.query(Report).filter_by(post_id=older.id).count() == 1
    assert [p.id for p in posts.list_flagged().items] == [newer.id]


def test_unflag_missing_post(posts, session):
    with pytest.raises(NotFoundError):
        posts.unflag_post(31_337)


# ------------------------------ Comments ---------------------------------- #
def test_comment_lifecycle(comments, session):
    post = PostFactory()
    author = UserFactory()

    first = comments.create_comment(author.id, post.id, "first!")
    second = comments.create_comment(author.id, post.id, "second")

    listed = comments.list_comments(post.id)
    assert [c.id for c in listed] == [second.id, first.id]
    assert listed[0].author.id == author.id


def test_comment_on_missing_post(comments, session):
    with pytest.raises(NotFoundError):
        comments.create_comment(UserFactory().id, 8_888, "hello")


def test_banned_user_cannot_comment(comments, session):
    post = PostFactory()
    with pytest.raises(AccountBannedError):
        comments.create_comment(UserFactory(is_banned=True).id, post.id, "hello")


def test_post_on_integrity_hold_refuses_comments(comments, session):
    post = PostFactory(integrity_hold=True)
    with pytest.raises(InvariantViolation):
        comments.create_comment(UserFactory().id, post.id, "hello")
    assert session.query(Comment).filter_by(post_id=post.id).count() == 0


def test_only_author_or_admin_deletes_comment(comments, session):
    comment = CommentFactory()
    comment_id = comment.id
    stranger = UserFactory()

    with pytest.raises(AuthorizationError):
        comments.delete_comment(comment_id, actor_id=stranger.id)

    comments.delete_comment(comment_id, actor_id=stranger.id, is_admin=True)
    session.expire_all()
    assert session.get(Comment, comment_id) is None

    own = CommentFactory()
    own_id = own.id
    comments.delete_comment(own_id, actor_id=own.user_id)
    session.expire_all()
    assert session.get(Comment, own_id) is None

"""Factories for posts and their child rows."""

from __future__ import annotations

from datetime import timedelta

import factory
from hyperlocal.models import Comment, Post, RefreshToken, Report, Vote, VoteKind
from hyperlocal.models.base import utcnow

from tests.factories import BaseFactory
from tests.factories.user import UserFactory


class PostFactory(BaseFactory):
    class Meta:
        model = Post

    id = None
    user = factory.SubFactory(UserFactory)
    content = factory.Faker("sentence", nb_words=8)
    latitude = 40.4168
    longitude = -3.7038
    upvotes = 0
    downvotes = 0
    is_flagged = False
    integrity_hold = False


class VoteFactory(BaseFactory):
    """Ledger row only; counters are the caller's business."""

    class Meta:
        model = Vote

    id = None
    user_id = factory.LazyFunction(lambda: UserFactory().id)
    post = factory.SubFactory(PostFactory)
    kind = VoteKind.UPVOTE.value


class CommentFactory(BaseFactory):
    class Meta:
        model = Comment

    id = None
    user = factory.SubFactory(UserFactory)
    post = factory.SubFactory(PostFactory)
    content = factory.Faker("sentence", nb_words=6)


class ReportFactory(BaseFactory):
    class Meta:
        model = Report

    id = None
    user_id = factory.LazyFunction(lambda: UserFactory().id)
    post = factory.SubFactory(PostFactory)
    reason = "spam"


class RefreshTokenFactory(BaseFactory):
    class Meta:
        model = RefreshToken

    id = None
    user_id = factory.LazyFunction(lambda: UserFactory().id)
    token_hash = factory.Sequence(lambda n: f"{n:064x}")
    expires_at = factory.LazyFunction(lambda: utcnow() + timedelta(days=30))

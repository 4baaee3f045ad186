# hyperlocal/services/moderation/service.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from hyperlocal.services._shared.base import BaseService, ServiceContext
from hyperlocal.services._shared.dto import PageOut
from hyperlocal.services._shared.errors import NotFoundError
from hyperlocal.services._shared.ports.token_provider import TokenProvider
from hyperlocal.services.auth.dto import (
    AuthTokenConfig,
    LoginIn,
    RefreshIn,
    RegisterIn,
    TokenPairOut,
)
from hyperlocal.services.auth.service import AuthService
from hyperlocal.services.comments.dto import CommentOut
from hyperlocal.services.comments.service import CommentService
from hyperlocal.services.moderation.dto import BanOut
from hyperlocal.services.posts.dto import CreatePostIn, PostOut
from hyperlocal.services.posts.service import PostService
from hyperlocal.services.proximity.service import ProximityService
from hyperlocal.services.reports.dto import FiledReportOut, ReportOut
from hyperlocal.services.reports.service import DEFAULT_FLAG_THRESHOLD, ReportService
from hyperlocal.services.votes.dto import CountersOut, VoteResultOut
from hyperlocal.services.votes.service import VoteLedgerService
from hyperlocal.uow.sqlalchemy_uow import SessionFactory

log = logging.getLogger(__name__)

DEFAULT_NEARBY_RADIUS_M = 5000.0


class ModerationService(BaseService):
    """
    Entry point used by the HTTP layer.

    Composes credentials, posts, votes, reports, comments and proximity
    around one :class:`ServiceContext`. The acting user comes from the
    context, never from request payloads. Admin operations require the
    ``admin`` role claim.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        token_cfg: AuthTokenConfig | None = None,
        flag_threshold: int = DEFAULT_FLAG_THRESHOLD,
        vote_max_attempts: int = 3,
        default_radius_m: float = DEFAULT_NEARBY_RADIUS_M,
        ctx: ServiceContext | None = None,
        session_factory: SessionFactory | None = None,
    ) -> None:
        super().__init__(ctx=ctx, session_factory=session_factory)
        shared: dict[str, Any] = {"ctx": self.ctx, "session_factory": session_factory}
        self.auth = AuthService(token_provider=token_provider, token_cfg=token_cfg, **shared)
        self.posts = PostService(**shared)
        self.votes = VoteLedgerService(max_attempts=vote_max_attempts, **shared)
        self.reports = ReportService(flag_threshold=flag_threshold, **shared)
        self.comments = CommentService(**shared)
        self.proximity = ProximityService(**shared)
        self.default_radius_m = float(default_radius_m)

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        *,
        token_provider: TokenProvider,
        ctx: ServiceContext | None = None,
        session_factory: SessionFactory | None = None,
    ) -> ModerationService:
        """Build the facade from a Flask-style config mapping."""
        return cls(
            token_provider=token_provider,
            token_cfg=AuthTokenConfig.from_config(config),
            flag_threshold=int(config.get("REPORT_FLAG_THRESHOLD", DEFAULT_FLAG_THRESHOLD)),
            vote_max_attempts=int(config.get("VOTE_MAX_ATTEMPTS", 3)),
            default_radius_m=float(config.get("NEARBY_DEFAULT_RADIUS_M", DEFAULT_NEARBY_RADIUS_M)),
            ctx=ctx,
            session_factory=session_factory,
        )

    # ------------------------------------------------------------------ #
    # Credentials (anonymous)
    # ------------------------------------------------------------------ #

    def register(self, username: str, password: str) -> TokenPairOut:
        return self.auth.register(RegisterIn(username=username, password=password))

    def login(self, username: str, password: str) -> TokenPairOut:
        return self.auth.login(LoginIn(username=username, password=password))

    def refresh(self, refresh_token: str) -> TokenPairOut:
        return self.auth.refresh(RefreshIn(refresh_token=refresh_token))

    # ------------------------------------------------------------------ #
    # Posts
    # ------------------------------------------------------------------ #

    def create_post(self, content: str, latitude: float, longitude: float) -> PostOut:
        return self.posts.create_post(
            self.require_actor(),
            CreatePostIn(content=content, latitude=latitude, longitude=longitude),
        )

    def nearby_posts(
        self,
        lat: float,
        lng: float,
        radius_m: float | None = None,
        *,
        limit: int | None = None,
    ) -> list[PostOut]:
        """Posts around a point; ``radius_m`` defaults to the configured policy (5 km)."""
        radius = self.default_radius_m if radius_m is None else radius_m
        return self.proximity.nearby(lat, lng, radius, limit=limit)

    def get_post(self, post_id: int) -> PostOut:
        return self.posts.get_post(post_id)

    # ------------------------------------------------------------------ #
    # Engagement
    # ------------------------------------------------------------------ #

    def cast_vote(self, post_id: int, kind: str) -> VoteResultOut:
        return self.votes.cast_vote(self.require_actor(), post_id, kind)

    def file_report(self, post_id: int, reason: str) -> FiledReportOut:
        return self.reports.file_report(self.require_actor(), post_id, reason)

    def create_comment(self, post_id: int, content: str) -> CommentOut:
        return self.comments.create_comment(self.require_actor(), post_id, content)

    def list_comments(self, post_id: int) -> list[CommentOut]:
        return self.comments.list_comments(post_id)

    def delete_comment(self, comment_id: int) -> None:
        self.comments.delete_comment(
            comment_id, actor_id=self.require_actor(), is_admin=self.ctx.is_admin
        )

    # ------------------------------------------------------------------ #
    # Admin
    # ------------------------------------------------------------------ #

    def list_flagged(self, *, page: int = 1, limit: int = 20) -> PageOut[PostOut]:
        self.require_admin()
        return self.posts.list_flagged(page=page, limit=limit)

    def list_reports(self, post_id: int) -> list[ReportOut]:
        self.require_admin()
        return self.reports.list_reports(post_id)

    def delete_post(self, post_id: int) -> None:
        self.require_admin()
        self.posts.delete_post(post_id)

    def unflag_post(self, post_id: int) -> PostOut:
        self.require_admin()
        return self.posts.unflag_post(post_id)

    def reconcile_post(self, post_id: int) -> CountersOut:
        self.require_admin()
        return self.votes.reconcile_counters(post_id)

    def ban_user(self, user_id: int) -> BanOut:
        """
        Ban a user and end their sessions.

        The flag and the deletion of the user's refresh tokens commit
        together. Outstanding access tokens stay valid until they expire,
        but every mutating operation re-checks the ban flag.

        :raises AuthorizationError: Non-admin principal.
        :raises NotFoundError: Unknown user.
        """
        admin_id = self.require_admin()
        with self.rw_uow() as uow:
            if uow.users.set_banned(user_id, True) == 0:
                raise NotFoundError("User", user_id)
            revoked = self.auth.revoke_user_sessions(user_id, uow=uow)
        log.info(
            "User banned",
            extra={"user_id": user_id, "admin_id": admin_id, "count": revoked},
        )
        return BanOut(user_id=user_id, is_banned=True, sessions_revoked=revoked)

    def unban_user(self, user_id: int) -> BanOut:
        admin_id = self.require_admin()
        with self.rw_uow() as uow:
            if uow.users.set_banned(user_id, False) == 0:
                raise NotFoundError("User", user_id)
        log.info("User unbanned", extra={"user_id": user_id, "admin_id": admin_id})
        return BanOut(user_id=user_id, is_banned=False)

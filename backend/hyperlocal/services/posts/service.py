# hyperlocal/services/posts/service.py
from __future__ import annotations

import logging
import math

from hyperlocal.models.post import Post
from hyperlocal.services._shared.base import BaseService
from hyperlocal.services._shared.dto import PageMeta, PageOut
from hyperlocal.services._shared.errors import NotFoundError, ValidationError
from hyperlocal.services.posts.dto import CreatePostIn, PostOut, post_to_out

log = logging.getLogger(__name__)

CONTENT_MAX = 500


def validate_content(field: str, value: str | None, *, max_len: int = CONTENT_MAX) -> str:
    """
    Check a free-text field is non-blank and at most ``max_len`` characters.

    :returns: The value unchanged.
    :raises ValidationError: Otherwise.
    """
    if value is None or not value.strip():
        raise ValidationError(field, "must not be empty")
    if len(value) > max_len:
        raise ValidationError(field, f"must be at most {max_len} characters")
    return value


def validate_coordinate(latitude: float, longitude: float) -> tuple[float, float]:
    """
    Check a WGS84 coordinate.

    :raises ValidationError: Non-finite or out-of-range component.
    """
    try:
        lat, lng = float(latitude), float(longitude)
    except (TypeError, ValueError) as exc:
        raise ValidationError("latitude", "coordinates must be numbers") from exc
    if not math.isfinite(lat) or not -90.0 <= lat <= 90.0:
        raise ValidationError("latitude", "must be within [-90, 90]")
    if not math.isfinite(lng) or not -180.0 <= lng <= 180.0:
        raise ValidationError("longitude", "must be within [-180, 180]")
    return lat, lng


class PostService(BaseService):
    """Post lifecycle outside the vote/report paths."""

    def create_post(self, user_id: int, dto: CreatePostIn) -> PostOut:
        """
        Create a post owned by ``user_id``.

        :raises ValidationError: Content or coordinate out of range.
        :raises NotFoundError: Unknown user.
        :raises AccountBannedError: Banned author.
        """
        content = validate_content("content", dto.content)
        lat, lng = validate_coordinate(dto.latitude, dto.longitude)

        with self.rw_uow() as uow:
            self.ensure_active_user(uow, user_id)
            post = uow.posts.add(
                Post(user_id=user_id, content=content, latitude=lat, longitude=lng)
            )
            out = post_to_out(post)

        log.info("Post created", extra={"post_id": out.id, "user_id": user_id})
        return out

    def get_post(self, post_id: int) -> PostOut:
        with self.ro_uow() as uow:
            post = uow.posts.get(post_id)
            if post is None:
                raise NotFoundError("Post", post_id)
            return post_to_out(post)

    def delete_post(self, post_id: int) -> None:
        """
        Delete a post; its votes, comments and reports go with it.

        :raises NotFoundError: Unknown post.
        """
        with self.rw_uow() as uow:
            post = uow.posts.get_for_update(post_id)
            if post is None:
                raise NotFoundError("Post", post_id)
            uow.posts.delete(post)
        log.info("Post deleted", extra={"post_id": post_id, "user_id": self.ctx.actor_id})

    def list_flagged(self, *, page: int = 1, limit: int = 20) -> PageOut[PostOut]:
        """Flagged posts, newest first, with their authors."""
        pagination = self.ensure_pagination(page=page, limit=limit, sort=["-created_at"])
        with self.ro_uow() as uow:
            result = uow.posts.list_flagged(pagination)
            items = [post_to_out(p) for p in result.items]
        return PageOut(
            items=items,
            meta=PageMeta(page=result.page, limit=result.limit, total=result.total),
        )

    def unflag_post(self, post_id: int) -> PostOut:
        """
        Clear the flag on a post.

        Reports stay in place; the next report re-runs the threshold check.

        :raises NotFoundError: Unknown post.
        """
        with self.rw_uow() as uow:
            if uow.posts.unflag(post_id) == 0:
                raise NotFoundError("Post", post_id)
            post = uow.posts.get_for_update(post_id)
            out = post_to_out(post)
        log.info("Post unflagged", extra={"post_id": post_id, "user_id": self.ctx.actor_id})
        return out

# hyperlocal/services/posts/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from hyperlocal.models.base import ensure_utc
from hyperlocal.models.post import Post
from hyperlocal.services._shared.dto import AuthorOut


@dataclass(frozen=True, slots=True)
class CreatePostIn:
    """
    Input for creating a post.

    :param content: Text body (1-500 characters).
    :param latitude: Degrees in ``[-90, 90]``.
    :param longitude: Degrees in ``[-180, 180]``.
    """

    content: str
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class PostOut:
    """
    Public view of a post.

    ``distance_m`` is only set on proximity results.
    """

    id: int
    content: str
    latitude: float
    longitude: float
    upvotes: int
    downvotes: int
    is_flagged: bool
    created_at: datetime | None
    author: AuthorOut
    distance_m: float | None = None


def post_to_out(post: Post, *, distance_m: float | None = None) -> PostOut:
    """Build a :class:`PostOut`; the owner must be loaded or loadable."""
    return PostOut(
        id=post.id,
        content=post.content,
        latitude=post.latitude,
        longitude=post.longitude,
        upvotes=post.upvotes,
        downvotes=post.downvotes,
        is_flagged=bool(post.is_flagged),
        created_at=ensure_utc(post.created_at),
        author=AuthorOut(id=post.user_id, username=post.user.username if post.user else None),
        distance_m=distance_m,
    )

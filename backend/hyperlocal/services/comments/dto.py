# hyperlocal/services/comments/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from hyperlocal.models.base import ensure_utc
from hyperlocal.models.comment import Comment
from hyperlocal.services._shared.dto import AuthorOut


@dataclass(frozen=True, slots=True)
class CommentOut:
    id: int
    post_id: int
    content: str
    created_at: datetime | None
    author: AuthorOut


def comment_to_out(comment: Comment) -> CommentOut:
    return CommentOut(
        id=comment.id,
        post_id=comment.post_id,
        content=comment.content,
        created_at=ensure_utc(comment.created_at) if comment.created_at else None,
        author=AuthorOut(
            id=comment.user_id,
            username=comment.user.username if comment.user else None,
        ),
    )

"""Comment repository."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import selectinload

from hyperlocal.models.comment import Comment
from hyperlocal.repositories.base import BaseRepository


class CommentRepository(BaseRepository[Comment]):
    model = Comment

    def _sortable_fields(self):
        return {"id": Comment.id, "created_at": Comment.created_at}

    def _filterable_fields(self):
        return {"post_id": Comment.post_id, "user_id": Comment.user_id}

    def _default_eagerload(self, stmt: Select[Any]) -> Select[Any]:
        return stmt.options(selectinload(Comment.user))

    def list_for_post(self, post_id: int, *, limit: int | None = None) -> list[Comment]:
        """Comments on a post, newest first, authors batch-loaded."""
        stmt = self._default_eagerload(select(Comment).where(Comment.post_id == post_id))
        stmt = stmt.order_by(Comment.created_at.desc(), Comment.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars().all())

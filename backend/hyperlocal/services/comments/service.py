# hyperlocal/services/comments/service.py
from __future__ import annotations

import logging

from hyperlocal.models.comment import Comment
from hyperlocal.services._shared.base import BaseService
from hyperlocal.services._shared.errors import AuthorizationError, NotFoundError
from hyperlocal.services.comments.dto import CommentOut, comment_to_out
from hyperlocal.services.posts.service import validate_content

log = logging.getLogger(__name__)


class CommentService(BaseService):
    """Comments attached to posts."""

    def create_comment(self, user_id: int, post_id: int, content: str) -> CommentOut:
        """
        Attach a comment to a post.

        :raises ValidationError: Content empty or longer than 500 characters.
        :raises NotFoundError: Unknown post or user.
        :raises AccountBannedError: Banned author.
        :raises InvariantViolation: Post on integrity hold.
        """
        content = validate_content("content", content)
        with self.rw_uow() as uow:
            self.load_writable_post(uow, post_id)
            self.ensure_active_user(uow, user_id)
            comment = uow.comments.add(Comment(post_id=post_id, user_id=user_id, content=content))
            out = comment_to_out(comment)
        log.info("Comment created", extra={"post_id": post_id, "user_id": user_id})
        return out

    def list_comments(self, post_id: int, *, limit: int | None = None) -> list[CommentOut]:
        """Comments on a post, newest first."""
        with self.ro_uow() as uow:
            if uow.posts.get(post_id) is None:
                raise NotFoundError("Post", post_id)
            return [comment_to_out(c) for c in uow.comments.list_for_post(post_id, limit=limit)]

    def delete_comment(self, comment_id: int, *, actor_id: int, is_admin: bool = False) -> None:
        """
        Delete a comment. Only its author or an admin may do so.

        :raises NotFoundError: Unknown comment.
        :raises AuthorizationError: Actor is neither author nor admin.
        """
        with self.rw_uow() as uow:
            comment = uow.comments.get(comment_id)
            if comment is None:
                raise NotFoundError("Comment", comment_id)
            if comment.user_id != actor_id and not is_admin:
                raise AuthorizationError("Only the author or an admin may delete this comment")
            uow.comments.delete(comment)
        log.info("Comment deleted", extra={"comment_id": comment_id, "user_id": actor_id})

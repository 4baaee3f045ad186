"""Vote ledger rows: at most one per (user, post)."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hyperlocal.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .post import Post


class VoteKind(str, Enum):
    """Closed set of vote kinds stored in ``votes.kind``."""

    UPVOTE = "upvote"
    DOWNVOTE = "downvote"

    @property
    def counter(self) -> str:
        """Name of the :class:`Post` counter column this kind maintains."""
        return "upvotes" if self is VoteKind.UPVOTE else "downvotes"


class Vote(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """A user's single vote on a post; ``kind`` flips in place."""

    __tablename__ = "votes"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(8), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_votes_user_id_post_id"),
        CheckConstraint("kind IN ('upvote', 'downvote')", name="kind_valid"),
        Index("ix_votes_post_id_kind", "post_id", "kind"),
    )

    post: Mapped[Post] = relationship("Post", back_populates="votes")

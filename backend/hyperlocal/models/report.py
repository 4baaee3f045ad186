"""Report model: one row per report, repeats by the same user included."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hyperlocal.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin

if TYPE_CHECKING:
    from .post import Post


class Report(PKMixin, ReprMixin, CreatedAtMixin, db.Model):
    __tablename__ = "reports"

    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reason: Mapped[str] = mapped_column(String(500), nullable=False)

    __table_args__ = (Index("ix_reports_post_id", "post_id"),)

    post: Mapped[Post] = relationship("Post", back_populates="reports")

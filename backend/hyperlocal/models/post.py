"""Post aggregate: geotagged content with vote counters and moderation flags."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hyperlocal.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .comment import Comment
    from .report import Report
    from .user import User
    from .vote import Vote


class Post(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Location-anchored post.

    ``upvotes`` and ``downvotes`` are a materialized cache of the vote
    ledger (``votes`` rows); they are only changed in the same transaction
    as the ledger row that justifies the change.

    Fields
    ------
    content : str
        Post body (1..500 chars).
    latitude, longitude : float
        WGS84 coordinate in decimal degrees.
    is_flagged : bool
        Hidden pending moderation once the report threshold is reached.
    integrity_hold : bool
        Set when counters were found diverging from the ledger. New votes,
        reports and comments are refused until reconciled; admin deletion
        and reconciliation stay available.
    """

    __tablename__ = "posts"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(String(500), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    upvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    downvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_flagged: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    integrity_hold: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    __table_args__ = (
        CheckConstraint("upvotes >= 0", name="upvotes_non_negative"),
        CheckConstraint("downvotes >= 0", name="downvotes_non_negative"),
        CheckConstraint("latitude >= -90 AND latitude <= 90", name="latitude_range"),
        CheckConstraint("longitude >= -180 AND longitude <= 180", name="longitude_range"),
        Index("ix_posts_lat_lng", "latitude", "longitude"),
        Index("ix_posts_created_at_id", "created_at", "id"),
    )

    # Relationships
    user: Mapped[User] = relationship("User", lazy="selectin")
    votes: Mapped[list[Vote]] = relationship(
        "Vote",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    comments: Mapped[list[Comment]] = relationship(
        "Comment",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    reports: Mapped[list[Report]] = relationship(
        "Report",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

"""Post repository: counters, flags and proximity candidates."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from sqlalchemy import Select, and_, or_, select, update
from sqlalchemy.orm import InstrumentedAttribute, joinedload

from hyperlocal.models.base import utcnow
from hyperlocal.models.post import Post
from hyperlocal.models.vote import VoteKind
from hyperlocal.repositories.base import BaseRepository, Page, Pagination


def _counter(kind: VoteKind) -> InstrumentedAttribute[int]:
    return cast(InstrumentedAttribute[int], getattr(Post, kind.counter))


class PostRepository(BaseRepository[Post]):
    """
    Persistence-only repository for :class:`Post`.

    Counter and flag mutations are single conditional UPDATE statements
    evaluated against the current row, never read-modify-write in Python.
    """

    model = Post

    # ---------------------------- Whitelists ----------------------------
    def _sortable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]]:
        return {
            "id": Post.id,
            "created_at": Post.created_at,
            "upvotes": Post.upvotes,
            "downvotes": Post.downvotes,
        }

    def _filterable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]]:
        return {
            "user_id": Post.user_id,
            "is_flagged": Post.is_flagged,
            "integrity_hold": Post.integrity_hold,
        }

    def _default_eagerload(self, stmt: Select[Any]) -> Select[Any]:
        return stmt.options(joinedload(Post.user))

    # ---------------------------- Counters ----------------------------
    def increment_counter(self, post_id: int, kind: VoteKind) -> int:
        """Add one to the counter maintained by ``kind``.

        :returns: Rows matched (0 when the post vanished).
        """
        col = _counter(kind)
        stmt = update(Post).where(Post.id == post_id).values({col: col + 1})
        return self._execute_rowcount(stmt)

    def shift_counter(self, post_id: int, from_kind: VoteKind, to_kind: VoteKind) -> int:
        """Move one unit from ``from_kind``'s counter to ``to_kind``'s.

        Guarded by ``from > 0`` so the decrement can never drive a counter
        negative; a zero row count means the aggregate is inconsistent.
        """
        src, dst = _counter(from_kind), _counter(to_kind)
        stmt = (
            update(Post)
            .where(and_(Post.id == post_id, src > 0))
            .values({src: src - 1, dst: dst + 1})
        )
        return self._execute_rowcount(stmt)

    def read_counters(self, post_id: int) -> tuple[int, int] | None:
        """Return ``(upvotes, downvotes)`` straight from the row."""
        row = self.session.execute(
            select(Post.upvotes, Post.downvotes).where(Post.id == post_id)
        ).first()
        return (int(row[0]), int(row[1])) if row else None

    def set_counters(self, post_id: int, *, upvotes: int, downvotes: int) -> int:
        stmt = (
            update(Post)
            .where(Post.id == post_id)
            .values(upvotes=upvotes, downvotes=downvotes, integrity_hold=False, updated_at=utcnow())
        )
        return self._execute_rowcount(stmt)

    def set_integrity_hold(self, post_id: int, hold: bool = True) -> int:
        stmt = update(Post).where(Post.id == post_id).values(integrity_hold=hold)
        return self._execute_rowcount(stmt)

    # ---------------------------- Flags ----------------------------
    def mark_flagged(self, post_id: int) -> int:
        """Flip ``is_flagged`` false -> true.

        :returns: 1 when this call performed the transition, 0 when the post
            was already flagged (or does not exist).
        """
        stmt = (
            update(Post)
            .where(and_(Post.id == post_id, Post.is_flagged.is_(False)))
            .values(is_flagged=True, updated_at=utcnow())
        )
        return self._execute_rowcount(stmt)

    def unflag(self, post_id: int) -> int:
        stmt = (
            update(Post)
            .where(Post.id == post_id)
            .values(is_flagged=False, updated_at=utcnow())
        )
        return self._execute_rowcount(stmt)

    # ---------------------------- Queries ----------------------------
    def within_box(
        self,
        *,
        min_lat: float,
        max_lat: float,
        min_lng: float,
        max_lng: float,
        include_flagged: bool = False,
    ) -> list[Post]:
        """Candidate posts inside a lat/lng box, newest first.

        The box is a coarse prefilter served by ``ix_posts_lat_lng``; callers
        apply the exact distance test. ``min_lng > max_lng`` denotes a box
        crossing the antimeridian. Owners are loaded in the same query.
        """
        if min_lng <= max_lng:
            lng_clause = Post.longitude.between(min_lng, max_lng)
        else:
            lng_clause = or_(Post.longitude >= min_lng, Post.longitude <= max_lng)

        stmt = select(Post).where(Post.latitude.between(min_lat, max_lat), lng_clause)
        if not include_flagged:
            stmt = stmt.where(Post.is_flagged.is_(False))
        stmt = self._default_eagerload(stmt).order_by(Post.created_at.desc(), Post.id.desc())
        return list(self.session.execute(stmt).scalars().unique().all())

    def list_flagged(self, pagination: Pagination) -> Page[Post]:
        """Flagged posts with owners, newest first unless ``sort`` says otherwise."""
        if not pagination.sort:
            pagination = Pagination(page=pagination.page, limit=pagination.limit, sort=["-created_at"])
        return self.paginate(pagination, filters={"is_flagged": True})

    def list_ids(self) -> list[int]:
        return list(self.session.execute(select(Post.id).order_by(Post.id)).scalars().all())

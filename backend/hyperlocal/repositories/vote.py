"""Vote ledger repository."""

from __future__ import annotations

from typing import cast

from sqlalchemy import and_, func, select, update

from hyperlocal.models.base import utcnow
from hyperlocal.models.vote import Vote, VoteKind
from hyperlocal.repositories.base import BaseRepository


class VoteRepository(BaseRepository[Vote]):
    """Persistence-only access to ledger rows keyed by ``(user_id, post_id)``."""

    model = Vote

    def _filterable_fields(self):
        return {"user_id": Vote.user_id, "post_id": Vote.post_id, "kind": Vote.kind}

    def get_for_pair(self, user_id: int, post_id: int, *, for_update: bool = False) -> Vote | None:
        """Fetch the vote of ``user_id`` on ``post_id``.

        :param for_update: Lock the row (``FOR UPDATE``) and bypass the
            identity map so the returned ``kind`` is the committed one.
        """
        stmt = select(Vote).where(and_(Vote.user_id == user_id, Vote.post_id == post_id))
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return cast(Vote | None, self.session.execute(stmt).scalars().first())

    def flip(self, vote_id: int, from_kind: VoteKind, to_kind: VoteKind) -> int:
        """Change ``kind`` only if it still equals ``from_kind``.

        :returns: 1 on success, 0 when another writer already changed it.
        """
        stmt = (
            update(Vote)
            .where(and_(Vote.id == vote_id, Vote.kind == from_kind.value))
            .values(kind=to_kind.value, updated_at=utcnow())
        )
        return self._execute_rowcount(stmt)

    def count_by_kind(self, post_id: int) -> dict[VoteKind, int]:
        """Tally ledger rows per kind for a post (kinds without rows map to 0)."""
        rows = self.session.execute(
            select(Vote.kind, func.count(Vote.id))
            .where(Vote.post_id == post_id)
            .group_by(Vote.kind)
        ).all()
        counts = {kind: 0 for kind in VoteKind}
        for kind, n in rows:
            counts[VoteKind(kind)] = int(n)
        return counts

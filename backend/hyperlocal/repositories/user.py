"""User repository for identity lookups and ban state."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select, update

from hyperlocal.models.base import utcnow
from hyperlocal.models.user import User
from hyperlocal.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It never issues tokens; credential checks live in the auth service.
    """

    model = User

    def _sortable_fields(self):
        return {
            "id": User.id,
            "username": User.username,
            "created_at": User.created_at,
        }

    def _filterable_fields(self):
        return {
            "username": User.username,
            "is_banned": User.is_banned,
        }

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_username(self, username: str) -> User | None:
        """Fetch a user by display name (exact match after trimming).

        :param username: Username to search.
        :type username: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.username == username.strip())
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_username(self, username: str) -> bool:
        """Return ``True`` when a user with the provided username exists."""
        stmt = select(User.id).where(User.username == username.strip())
        return self.session.execute(stmt).first() is not None

    # ---------------------------- Ban state ----------------------------

    def set_banned(self, user_id: int, banned: bool) -> int:
        """Set the ban flag with a single UPDATE.

        :param user_id: Target user.
        :param banned: New flag value.
        :returns: Number of rows matched (0 when the user does not exist).
        :rtype: int
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(is_banned=banned, updated_at=utcnow())
        )
        return self._execute_rowcount(stmt)

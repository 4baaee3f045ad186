# hyperlocal/services/moderation/dto.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BanOut:
    """
    Result of a ban/unban.

    :param user_id: Target user.
    :param is_banned: Ban flag after the operation.
    :param sessions_revoked: Refresh tokens deleted (ban only).
    """

    user_id: int
    is_banned: bool
    sessions_revoked: int = 0

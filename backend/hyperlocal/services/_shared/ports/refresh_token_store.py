"""
Outcome types for single-use refresh token consumption.

The store itself is the SQL table behind
:class:`hyperlocal.repositories.refresh_token.RefreshTokenRepository`, reached
through the unit of work so that consuming a token and issuing its successor
commit together.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class RotationResult(Enum):
    """Outcome of an atomic refresh-token consumption attempt."""

    OK = auto()
    NOT_FOUND = auto()
    EXPIRED = auto()


@dataclass(frozen=True, slots=True)
class ConsumeResult:
    """
    Result of consuming a refresh token.

    :ivar result: Outcome of the attempt.
    :ivar user_id: Owner of the token when ``result`` is ``OK`` or ``EXPIRED``.
    """

    result: RotationResult
    user_id: int | None = None

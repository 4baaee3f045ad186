# hyperlocal/services/votes/dto.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from hyperlocal.models.vote import VoteKind
from hyperlocal.services._shared.errors import ValidationError

_KIND_ALIASES: dict[str, VoteKind] = {
    "up": VoteKind.UPVOTE,
    "upvote": VoteKind.UPVOTE,
    "down": VoteKind.DOWNVOTE,
    "downvote": VoteKind.DOWNVOTE,
}


def parse_vote_kind(raw: str | VoteKind) -> VoteKind:
    """
    Normalize a vote kind.

    :param raw: ``upvote``/``downvote`` (or the ``up``/``down`` aliases).
    :raises ValidationError: For any other value.
    """
    if isinstance(raw, VoteKind):
        return raw
    kind = _KIND_ALIASES.get(str(raw).strip().lower())
    if kind is None:
        raise ValidationError("kind", "must be one of: upvote, downvote")
    return kind


class VoteOutcome(str, Enum):
    CREATED = "created"
    FLIPPED = "flipped"


@dataclass(frozen=True, slots=True)
class VoteResultOut:
    """
    Outcome of a successful vote, with the post's counters after it.

    :param post_id: Voted post.
    :param kind: Kind now recorded for the voter.
    :param outcome: Whether a ledger row was created or flipped.
    :param upvotes: Post upvote counter.
    :param downvotes: Post downvote counter.
    """

    post_id: int
    kind: VoteKind
    outcome: VoteOutcome
    upvotes: int
    downvotes: int


@dataclass(frozen=True, slots=True)
class CountersOut:
    """Counters of a post after reconciliation against the vote ledger."""

    post_id: int
    upvotes: int
    downvotes: int
    changed: bool

# hyperlocal/services/votes/service.py
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from hyperlocal.models.vote import Vote, VoteKind
from hyperlocal.services._shared.base import BaseService, ServiceContext
from hyperlocal.services._shared.errors import (
    ConflictError,
    InvariantViolation,
    NotFoundError,
    TransientStoreError,
    violates,
)
from hyperlocal.services.votes.dto import (
    CountersOut,
    VoteOutcome,
    VoteResultOut,
    parse_vote_kind,
)
from hyperlocal.uow.base import UnitOfWork
from hyperlocal.uow.sqlalchemy_uow import SessionFactory

log = logging.getLogger(__name__)

VOTE_PAIR_CONSTRAINT = "uq_votes_user_id_post_id"
VOTE_PAIR_COLUMNS = ("votes.user_id", "votes.post_id")


class VoteLedgerService(BaseService):
    """
    At most one vote per (user, post), with post counters kept equal to the
    ledger.

    Each vote runs in one transaction that first locks the post row
    (``SELECT ... FOR UPDATE``; ``BEGIN IMMEDIATE`` on SQLite). Every
    check-then-act on a pair therefore runs serially. The unique constraint
    on ``(user_id, post_id)`` backs this up: an insert that still loses a
    race is rolled back and the whole transaction retried, where it then
    observes the winner's row.

    Counters are verified against the ledger before commit. A divergence
    rolls the vote back, puts the post on integrity hold (further votes are
    refused) and raises :class:`InvariantViolation` until
    :meth:`reconcile_counters` runs.
    """

    def __init__(
        self,
        *,
        max_attempts: int = 3,
        ctx: ServiceContext | None = None,
        session_factory: SessionFactory | None = None,
    ) -> None:
        super().__init__(ctx=ctx, session_factory=session_factory)
        self.max_attempts = max(1, int(max_attempts))

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #

    def cast_vote(self, user_id: int, post_id: int, kind: str | VoteKind) -> VoteResultOut:
        """
        Record ``kind`` for ``user_id`` on ``post_id``.

        - No vote yet: insert it and increment the matching counter.
        - Same kind already recorded: :class:`ConflictError` (``already_voted``).
        - Other kind recorded: flip it and move one unit between counters.

        :raises ValidationError: Unknown kind.
        :raises NotFoundError: Unknown post or user.
        :raises AccountBannedError: Banned voter.
        :raises InvariantViolation: Post on integrity hold, or counters found
            diverging from the ledger.
        :raises TransientStoreError: Contention outlasted the retry budget.
        """
        vote_kind = parse_vote_kind(kind)

        for attempt in range(1, self.max_attempts + 1):
            try:
                return self._cast_once(user_id, post_id, vote_kind)
            except IntegrityError as exc:
                if not violates(exc, VOTE_PAIR_CONSTRAINT, columns=VOTE_PAIR_COLUMNS):
                    raise
                log.info(
                    "Vote insert lost a race, retrying",
                    extra={"user_id": user_id, "post_id": post_id, "attempt": attempt},
                )

        log.warning("Vote retries exhausted", extra={"user_id": user_id, "post_id": post_id})
        raise TransientStoreError("Vote could not be applied; retry later")

    def reconcile_counters(self, post_id: int) -> CountersOut:
        """
        Recompute a post's counters from the ledger and lift its integrity hold.

        The ledger is the source of truth; counters are overwritten, never
        the other way round.

        :raises NotFoundError: Unknown post.
        """
        with self.rw_uow() as uow:
            post = uow.posts.get_for_update(post_id)
            if post is None:
                raise NotFoundError("Post", post_id)
            counts = uow.votes.count_by_kind(post_id)
            up, down = counts[VoteKind.UPVOTE], counts[VoteKind.DOWNVOTE]
            changed = (post.upvotes, post.downvotes) != (up, down) or post.integrity_hold
            uow.posts.set_counters(post_id, upvotes=up, downvotes=down)

        if changed:
            log.info(
                "Post counters reconciled",
                extra={"post_id": post_id, "upvotes": up, "downvotes": down},
            )
        return CountersOut(post_id=post_id, upvotes=up, downvotes=down, changed=changed)

    def reconcile_all_counters(self) -> list[CountersOut]:
        """Reconcile every post, one transaction per post."""
        with self.ro_uow() as uow:
            post_ids = uow.posts.list_ids()
        results: list[CountersOut] = []
        for post_id in post_ids:
            try:
                results.append(self.reconcile_counters(post_id))
            except NotFoundError:
                continue  # deleted meanwhile
        return results

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def has_voted(self, user_id: int, post_id: int) -> VoteKind | None:
        """Return the kind recorded for the pair, or ``None``."""
        with self.ro_uow() as uow:
            vote = uow.votes.get_for_pair(user_id, post_id)
            return VoteKind(vote.kind) if vote is not None else None

    def verify_counters(self, post_id: int, *, uow: UnitOfWork | None = None) -> tuple[int, int]:
        """
        Check that the post's counters equal its ledger tallies.

        :param uow: Run inside an existing unit of work (sees its uncommitted
            writes); otherwise a read-only one is opened.
        :returns: ``(upvotes, downvotes)``.
        :raises NotFoundError: Unknown post.
        :raises InvariantViolation: On any divergence.
        """
        if uow is None:
            with self.ro_uow() as ro:
                return self.verify_counters(post_id, uow=ro)

        counters = uow.posts.read_counters(post_id)
        if counters is None:
            raise NotFoundError("Post", post_id)
        tallies = uow.votes.count_by_kind(post_id)
        expected = (tallies[VoteKind.UPVOTE], tallies[VoteKind.DOWNVOTE])
        if counters != expected:
            log.error(
                "Vote counters diverge from ledger",
                extra={"post_id": post_id, "counters": counters, "ledger": expected},
            )
            raise InvariantViolation(
                "Post", post_id, f"counters {counters} != ledger {expected}"
            )
        return counters

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _cast_once(self, user_id: int, post_id: int, kind: VoteKind) -> VoteResultOut:
        violation: InvariantViolation | None = None
        try:
            with self.rw_uow() as uow:
                self.load_writable_post(uow, post_id, lock=True)
                try:
                    outcome = self._apply(uow, user_id, post_id, kind)
                    up, down = self.verify_counters(post_id, uow=uow)
                except InvariantViolation as exc:
                    violation = exc
                    raise
        except InvariantViolation:
            if violation is not None:
                self._place_hold(post_id)
            raise

        log.info(
            "Vote recorded",
            extra={
                "user_id": user_id,
                "post_id": post_id,
                "kind": kind.value,
                "outcome": outcome.value,
            },
        )
        return VoteResultOut(
            post_id=post_id, kind=kind, outcome=outcome, upvotes=up, downvotes=down
        )

    def _apply(self, uow: UnitOfWork, user_id: int, post_id: int, kind: VoteKind) -> VoteOutcome:
        self.ensure_active_user(uow, user_id)

        existing = uow.votes.get_for_pair(user_id, post_id, for_update=True)
        if existing is None:
            uow.votes.add(Vote(user_id=user_id, post_id=post_id, kind=kind.value))
            uow.posts.increment_counter(post_id, kind)
            return VoteOutcome.CREATED

        current = VoteKind(existing.kind)
        if current is kind:
            raise ConflictError("Vote", "already voted", reason="already_voted")

        if uow.votes.flip(existing.id, current, kind) != 1:
            raise TransientStoreError("Vote changed concurrently; retry")
        if uow.posts.shift_counter(post_id, current, kind) != 1:
            log.error(
                "Counter underflow on vote flip",
                extra={"post_id": post_id, "from": current.value, "to": kind.value},
            )
            raise InvariantViolation("Post", post_id, f"{current.counter} counter already zero")
        return VoteOutcome.FLIPPED

    def _place_hold(self, post_id: int) -> None:
        with self.rw_uow() as uow:
            uow.posts.set_integrity_hold(post_id, True)
        log.error("Post placed on integrity hold", extra={"post_id": post_id})

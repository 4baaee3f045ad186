# tests/integration/test_concurrency.py
"""Races against a file-backed SQLite store shared by worker threads.

Each worker runs its services with a private session, the way separate
gunicorn workers would, so only the store serializes them.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from hyperlocal.core.extensions import configure_sqlite_engine
from hyperlocal.core.extensions import db as _db
from hyperlocal.models import Post, User, Vote, VoteKind
from hyperlocal.services._shared.errors import ConflictError, InvalidOrExpiredTokenError
from hyperlocal.services._shared.ports.token_provider import StubTokenProvider
from hyperlocal.services.auth.dto import RefreshIn, RegisterIn
from hyperlocal.services.auth.service import AuthService
from hyperlocal.services.reports.service import ReportService
from hyperlocal.services.votes.dto import VoteOutcome
from hyperlocal.services.votes.service import VoteLedgerService
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

WORKERS = 8


@pytest.fixture()
def file_store(tmp_path):
    """Session factory over a fresh on-disk database."""
    engine = configure_sqlite_engine(
        create_engine(
            f"sqlite:///{tmp_path / 'race.db'}",
            connect_args={"timeout": 30, "check_same_thread": False},
        )
    )
    _db.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        engine.dispose()


def _seed_users(factory, count: int) -> list[int]:
    with factory() as s, s.begin():
        users = [User(username=f"racer{i}") for i in range(count)]
        for u in users:
            u.password = "secret1"
        s.add_all(users)
        s.flush()
        return [u.id for u in users]


def _seed_post(factory, user_id: int) -> int:
    with factory() as s, s.begin():
        post = Post(user_id=user_id, content="race", latitude=0.0, longitude=0.0)
        s.add(post)
        s.flush()
        return post.id


def _run_together(fn, args):
    """Start every call at the same moment and collect results or exceptions."""
    barrier = threading.Barrier(len(args))

    def call(arg):
        barrier.wait()
        try:
            return fn(arg)
        except Exception as exc:  # collected for assertions
            return exc

    with ThreadPoolExecutor(max_workers=len(args)) as pool:
        return list(pool.map(call, args))


def test_concurrent_votes_keep_counters_exact(file_store):
    """
    GIVEN eight users voting on one post at once, half up and half down
    WHEN every vote lands
    THEN the counters equal the ledger.
    """
    users = _seed_users(file_store, WORKERS)
    post_id = _seed_post(file_store, users[0])
    service = VoteLedgerService(session_factory=file_store)

    kinds = {uid: ("up" if i % 2 == 0 else "down") for i, uid in enumerate(users)}
    results = _run_together(lambda uid: service.cast_vote(uid, post_id, kinds[uid]), users)

    assert not [r for r in results if isinstance(r, Exception)]
    with file_store() as s:
        post = s.get(Post, post_id)
        assert (post.upvotes, post.downvotes) == (WORKERS // 2, WORKERS // 2)
        assert s.scalar(select(func.count()).select_from(Vote)) == WORKERS
    assert service.verify_counters(post_id) == (WORKERS // 2, WORKERS // 2)


def test_same_user_double_vote_creates_one_ledger_row(file_store):
    (uid,) = _seed_users(file_store, 1)
    post_id = _seed_post(file_store, uid)
    service = VoteLedgerService(session_factory=file_store)

    results = _run_together(lambda _: service.cast_vote(uid, post_id, "up"), [0, 1, 2, 3])

    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(conflicts) == 3
    assert all(c.code == "already_voted" for c in conflicts)
    assert service.verify_counters(post_id) == (1, 0)


def test_same_user_alternating_votes_match_a_serial_run(file_store):
    """
    GIVEN one user firing alternating up/down votes on one post at once
    WHEN they interleave arbitrarily
    THEN the outcome is some serial order of them: one row created, every
    other success a flip, repeats rejected, counters equal to the final row.
    """
    (uid,) = _seed_users(file_store, 1)
    post_id = _seed_post(file_store, uid)
    service = VoteLedgerService(session_factory=file_store)

    kinds = ["up" if i % 2 == 0 else "down" for i in range(WORKERS)]
    results = _run_together(lambda kind: service.cast_vote(uid, post_id, kind), kinds)

    conflicts = [r for r in results if isinstance(r, Exception)]
    applied = [r for r in results if not isinstance(r, Exception)]
    assert all(isinstance(c, ConflictError) and c.code == "already_voted" for c in conflicts)
    assert [r.outcome for r in applied].count(VoteOutcome.CREATED) == 1
    assert all(r.outcome in (VoteOutcome.CREATED, VoteOutcome.FLIPPED) for r in applied)

    with file_store() as s:
        (row,) = s.scalars(select(Vote).where(Vote.post_id == post_id)).all()
        final = VoteKind(row.kind)
    expected = (1, 0) if final is VoteKind.UPVOTE else (0, 1)
    assert service.verify_counters(post_id) == expected


def test_concurrent_reports_flag_exactly_once(file_store):
    users = _seed_users(file_store, 5)
    post_id = _seed_post(file_store, users[0])
    service = ReportService(flag_threshold=3, session_factory=file_store)

    results = _run_together(lambda uid: service.file_report(uid, post_id, "spam"), users)

    assert sorted(r.report_count for r in results) == [1, 2, 3, 4, 5]
    assert sum(r.newly_flagged for r in results) == 1
    with file_store() as s:
        assert s.get(Post, post_id).is_flagged is True


def test_refresh_token_race_has_one_winner(file_store):
    """
    GIVEN one refresh token presented by several clients at once
    WHEN they all try to rotate it
    THEN exactly one gets a new pair and the rest are rejected.
    """
    service = AuthService(token_provider=StubTokenProvider(), session_factory=file_store)
    pair = service.register(RegisterIn(username="shared", password="secret1"))

    results = _run_together(
        lambda _: service.refresh(RefreshIn(refresh_token=pair.refresh_token)), range(WORKERS)
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert all(isinstance(r, InvalidOrExpiredTokenError) for r in losers)


def test_registration_race_has_one_winner(file_store):
    service = AuthService(token_provider=StubTokenProvider(), session_factory=file_store)

    results = _run_together(
        lambda _: service.register(RegisterIn(username="popular", password="secret1")),
        range(4),
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert all(isinstance(r, ConflictError) and r.code == "username_taken" for r in losers)
    with file_store() as s:
        assert s.scalar(select(func.count()).select_from(User)) == 1

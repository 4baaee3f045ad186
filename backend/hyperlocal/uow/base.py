"""
Abstract Unit of Work contracts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hyperlocal.repositories import (
        CommentRepository,
        PostRepository,
        RefreshTokenRepository,
        ReportRepository,
        UserRepository,
        VoteRepository,
    )


class UnitOfWork(ABC):
    """
    Transactional boundary for one use case.

    Every repository attribute shares the same session, so all effects of a
    scope become visible together on commit or not at all. Implementations
    commit on a clean exit and roll back when the block raises.
    """

    users: UserRepository
    posts: PostRepository
    votes: VoteRepository
    comments: CommentRepository
    reports: ReportRepository
    refresh_tokens: RefreshTokenRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...
    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...

"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from hyperlocal.repositories.base import (
    BaseRepository,
    Page,
    Pagination,
    paginate_select,
    parse_sort_tokens,
)
from hyperlocal.repositories.comment import CommentRepository
from hyperlocal.repositories.post import PostRepository
from hyperlocal.repositories.refresh_token import RefreshTokenRepository
from hyperlocal.repositories.report import ReportRepository
from hyperlocal.repositories.user import UserRepository
from hyperlocal.repositories.vote import VoteRepository

__all__ = [
    # Base
    "BaseRepository",
    "Page",
    "Pagination",
    "paginate_select",
    "parse_sort_tokens",
    # Domain
    "CommentRepository",
    "PostRepository",
    "RefreshTokenRepository",
    "ReportRepository",
    "UserRepository",
    "VoteRepository",
]

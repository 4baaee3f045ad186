"""DTOs shared by several services."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class PageMeta:
    """
    Output pagination metadata.

    :param page: Current page (1-based).
    :param limit: Page size.
    :param total: Total rows available.
    """

    page: int
    limit: int
    total: int

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total


@dataclass(frozen=True, slots=True)
class PageOut(Generic[T]):
    """A page of DTOs plus its metadata."""

    items: Sequence[T]
    meta: PageMeta


@dataclass(frozen=True, slots=True)
class AuthorOut:
    """Public fields of a content author."""

    id: int
    username: str | None

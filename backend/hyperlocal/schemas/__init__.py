"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import LoginSchema, RefreshSchema, RegisterSchema, TokenPairSchema
from .common import AuthorSchema, MetaSchema, PaginationQuerySchema, build_meta
from .post import (
    BanSchema,
    CommentCreateSchema,
    CommentSchema,
    CountersSchema,
    FiledReportSchema,
    NearbyQuerySchema,
    PostCreateSchema,
    PostSchema,
    ReportCreateSchema,
    ReportSchema,
    VoteResultSchema,
)

__all__ = [
    "LoginSchema",
    "RefreshSchema",
    "RegisterSchema",
    "TokenPairSchema",
    "AuthorSchema",
    "MetaSchema",
    "PaginationQuerySchema",
    "build_meta",
    "BanSchema",
    "CommentCreateSchema",
    "CommentSchema",
    "CountersSchema",
    "FiledReportSchema",
    "NearbyQuerySchema",
    "PostCreateSchema",
    "PostSchema",
    "ReportCreateSchema",
    "ReportSchema",
    "VoteResultSchema",
]

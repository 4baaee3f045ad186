"""Common Marshmallow schemas shared across resources."""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, fields, post_load, validate


class PaginationQuerySchema(Schema):
    """Validate ``page``/``limit`` query parameters with configurable defaults."""

    def __init__(self, *, default_limit: int = 20, max_limit: int = 200, **kwargs: Any) -> None:
        self._default_limit = default_limit
        self._max_limit = max_limit
        super().__init__(**kwargs)

    page = fields.Integer(load_default=1, validate=validate.Range(min=1))
    limit = fields.Integer(validate=validate.Range(min=1))

    @post_load
    def apply_defaults(self, data: dict[str, Any], **_: Any) -> dict[str, Any]:
        limit = data.get("limit", self._default_limit)
        data["limit"] = min(max(limit, 1), self._max_limit)
        data.setdefault("page", 1)
        return data


class MetaSchema(Schema):
    """Metadata block for paginated responses."""

    total = fields.Integer(required=True)
    page = fields.Integer(required=True)
    limit = fields.Integer(required=True)
    has_next = fields.Boolean(required=True)
    has_prev = fields.Boolean(required=True)


class AuthorSchema(Schema):
    id = fields.Integer(required=True)
    username = fields.String(allow_none=True)


def build_meta(*, total: int, page: int, limit: int) -> dict[str, Any]:
    """Return a ``meta`` mapping for paginated responses."""

    return {
        "total": int(total),
        "page": int(page),
        "limit": int(limit),
        "has_next": page * limit < total,
        "has_prev": page > 1,
    }

"""Post, comment, vote and report schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, ValidationError, fields, validate, validates

from .common import AuthorSchema


class PostCreateSchema(Schema):
    """Input payload for creating a post."""

    content = fields.String(required=True, validate=validate.Length(min=1, max=500))
    latitude = fields.Float(required=True, validate=validate.Range(min=-90, max=90))
    longitude = fields.Float(required=True, validate=validate.Range(min=-180, max=180))


class NearbyQuerySchema(Schema):
    """Query string of ``GET /posts``.

    ``radius`` is optional; the service applies the configured default. The
    upper bound is injected per request from ``NEARBY_MAX_RADIUS_M``.
    """

    def __init__(self, *, max_radius: float = 50_000.0, **kwargs: Any) -> None:
        self._max_radius = max_radius
        super().__init__(**kwargs)

    lat = fields.Float(required=True, validate=validate.Range(min=-90, max=90))
    lng = fields.Float(required=True, validate=validate.Range(min=-180, max=180))
    radius = fields.Float(load_default=None)
    limit = fields.Integer(load_default=None, validate=validate.Range(min=1, max=500))

    @validates("radius")
    def check_radius(self, value: float | None, **_: Any) -> None:
        if value is None:
            return
        if not 0 <= value <= self._max_radius:
            raise ValidationError(f"Must be between 0 and {self._max_radius:g} meters.")


class PostSchema(Schema):
    id = fields.Integer(required=True)
    content = fields.String(required=True)
    latitude = fields.Float(required=True)
    longitude = fields.Float(required=True)
    upvotes = fields.Integer(required=True)
    downvotes = fields.Integer(required=True)
    is_flagged = fields.Boolean(required=True)
    created_at = fields.DateTime(allow_none=True)
    author = fields.Nested(AuthorSchema, required=True)
    distance_m = fields.Float(allow_none=True)


class CommentCreateSchema(Schema):
    content = fields.String(required=True, validate=validate.Length(min=1, max=500))


class CommentSchema(Schema):
    id = fields.Integer(required=True)
    post_id = fields.Integer(required=True)
    content = fields.String(required=True)
    created_at = fields.DateTime(allow_none=True)
    author = fields.Nested(AuthorSchema, required=True)


class ReportCreateSchema(Schema):
    reason = fields.String(required=True, validate=validate.Length(min=1, max=500))


class ReportSchema(Schema):
    id = fields.Integer(required=True)
    post_id = fields.Integer(required=True)
    user_id = fields.Integer(required=True)
    reason = fields.String(required=True)
    created_at = fields.DateTime(allow_none=True)


class FiledReportSchema(Schema):
    """Response of ``POST /posts/<id>/report``."""

    report = fields.Nested(ReportSchema, required=True)
    report_count = fields.Integer(required=True)
    flagged = fields.Boolean(required=True)


class VoteResultSchema(Schema):
    post_id = fields.Integer(required=True)
    kind = fields.Function(lambda obj: obj.kind.value)
    outcome = fields.Function(lambda obj: obj.outcome.value)
    upvotes = fields.Integer(required=True)
    downvotes = fields.Integer(required=True)


class CountersSchema(Schema):
    post_id = fields.Integer(required=True)
    upvotes = fields.Integer(required=True)
    downvotes = fields.Integer(required=True)
    changed = fields.Boolean(required=True)


class BanSchema(Schema):
    user_id = fields.Integer(required=True)
    is_banned = fields.Boolean(required=True)
    sessions_revoked = fields.Integer(required=True)

"""Moderation endpoints reserved for principals with the ``admin`` role."""

from __future__ import annotations

from flask import Blueprint

from hyperlocal.api.deps import (
    get_moderation_service,
    json_response,
    parse_pagination,
    require_admin,
    timing,
)
from hyperlocal.schemas import BanSchema, CountersSchema, PostSchema, ReportSchema, build_meta

bp = Blueprint("admin", __name__)

post_schema = PostSchema()
post_list_schema = PostSchema(many=True)
report_list_schema = ReportSchema(many=True)
counters_schema = CountersSchema()
ban_schema = BanSchema()


@bp.get("/flagged")
@require_admin
@timing
def list_flagged():
    """Return flagged posts, newest first, paginated."""

    pagination = parse_pagination()
    page = get_moderation_service().list_flagged(page=pagination.page, limit=pagination.limit)
    meta = build_meta(total=page.meta.total, page=page.meta.page, limit=page.meta.limit)
    return json_response({"data": post_list_schema.dump(page.items), "meta": meta})


@bp.get("/posts/<int:post_id>/reports")
@require_admin
@timing
def list_reports(post_id: int):
    reports = get_moderation_service().list_reports(post_id)
    return json_response({"data": report_list_schema.dump(reports)})


@bp.delete("/posts/<int:post_id>")
@require_admin
@timing
def delete_post(post_id: int):
    """Delete a post together with its votes, comments and reports."""

    get_moderation_service().delete_post(post_id)
    return "", 204


@bp.patch("/posts/<int:post_id>/unflag")
@require_admin
@timing
def unflag_post(post_id: int):
    post = get_moderation_service().unflag_post(post_id)
    return json_response({"data": post_schema.dump(post)})


@bp.post("/posts/<int:post_id>/reconcile")
@require_admin
@timing
def reconcile_post(post_id: int):
    """Recompute vote counters from the ledger and lift any integrity hold."""

    counters = get_moderation_service().reconcile_post(post_id)
    return json_response({"data": counters_schema.dump(counters)})


@bp.patch("/users/<int:user_id>/ban")
@require_admin
@timing
def ban_user(user_id: int):
    """Ban a user and revoke their refresh tokens."""

    result = get_moderation_service().ban_user(user_id)
    return json_response({"data": ban_schema.dump(result)})


@bp.patch("/users/<int:user_id>/unban")
@require_admin
@timing
def unban_user(user_id: int):
    result = get_moderation_service().unban_user(user_id)
    return json_response({"data": ban_schema.dump(result)})

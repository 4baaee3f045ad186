"""Post endpoints: creation, proximity feed, votes, reports and comments."""

from __future__ import annotations

from flask import Blueprint, current_app, request

from hyperlocal.api.deps import (
    get_moderation_service,
    json_response,
    rate_limited,
    require_auth,
    timing,
)
from hyperlocal.models.vote import VoteKind
from hyperlocal.schemas import (
    CommentCreateSchema,
    CommentSchema,
    FiledReportSchema,
    NearbyQuerySchema,
    PostCreateSchema,
    PostSchema,
    ReportCreateSchema,
    VoteResultSchema,
)

bp = Blueprint("posts", __name__)

post_schema = PostSchema()
post_list_schema = PostSchema(many=True)
post_create_schema = PostCreateSchema()
comment_schema = CommentSchema()
comment_list_schema = CommentSchema(many=True)
comment_create_schema = CommentCreateSchema()
report_create_schema = ReportCreateSchema()
filed_report_schema = FiledReportSchema()
vote_result_schema = VoteResultSchema()


@bp.post("")
@require_auth
@rate_limited(
    "posts.create",
    limit_key="POST_CREATE_RATE_LIMIT",
    window_key="POST_CREATE_RATE_WINDOW_S",
)
@timing
def create_post():
    """Create a post at the given coordinate."""

    data = post_create_schema.load(request.get_json(silent=True) or {})
    post = get_moderation_service().create_post(
        data["content"], data["latitude"], data["longitude"]
    )
    return json_response({"data": post_schema.dump(post)}, status=201)


@bp.get("")
@require_auth
@timing
def nearby_posts():
    """Return non-flagged posts around ``lat``/``lng``, newest first."""

    schema = NearbyQuerySchema(max_radius=float(current_app.config["NEARBY_MAX_RADIUS_M"]))
    query = schema.load(request.args)
    posts = get_moderation_service().nearby_posts(
        query["lat"], query["lng"], query["radius"], limit=query["limit"]
    )
    return json_response({"data": post_list_schema.dump(posts)})


@bp.get("/<int:post_id>")
@require_auth
@timing
def get_post(post_id: int):
    post = get_moderation_service().get_post(post_id)
    return json_response({"data": post_schema.dump(post)})


def _vote(post_id: int, kind: VoteKind):
    result = get_moderation_service().cast_vote(post_id, kind.value)
    return json_response({"data": vote_result_schema.dump(result)})


@bp.post("/<int:post_id>/upvote")
@require_auth
@timing
def upvote(post_id: int):
    return _vote(post_id, VoteKind.UPVOTE)


@bp.post("/<int:post_id>/downvote")
@require_auth
@timing
def downvote(post_id: int):
    return _vote(post_id, VoteKind.DOWNVOTE)


@bp.post("/<int:post_id>/report")
@require_auth
@timing
def report_post(post_id: int):
    """File a report; the post is flagged once it collects enough of them."""

    data = report_create_schema.load(request.get_json(silent=True) or {})
    filed = get_moderation_service().file_report(post_id, data["reason"])
    return json_response({"data": filed_report_schema.dump(filed)}, status=201)


@bp.post("/<int:post_id>/comments")
@require_auth
@timing
def create_comment(post_id: int):
    data = comment_create_schema.load(request.get_json(silent=True) or {})
    comment = get_moderation_service().create_comment(post_id, data["content"])
    return json_response({"data": comment_schema.dump(comment)}, status=201)


@bp.get("/<int:post_id>/comments")
@require_auth
@timing
def list_comments(post_id: int):
    comments = get_moderation_service().list_comments(post_id)
    return json_response({"data": comment_list_schema.dump(comments)})


@bp.delete("/comments/<int:comment_id>")
@require_auth
@timing
def delete_comment(comment_id: int):
    """Delete a comment (author or admin)."""

    get_moderation_service().delete_comment(comment_id)
    return "", 204

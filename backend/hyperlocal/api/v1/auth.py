"""Authentication endpoints: registration, login and refresh rotation."""

from __future__ import annotations

from flask import Blueprint, request

from hyperlocal.api.deps import get_moderation_service, json_response, timing
from hyperlocal.schemas import LoginSchema, RefreshSchema, RegisterSchema, TokenPairSchema

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
token_schema = TokenPairSchema()


@bp.post("/register")
@timing
def register():
    """Create an account and return its first token pair."""

    data = register_schema.load(request.get_json(silent=True) or {})
    pair = get_moderation_service().register(data["username"], data["password"])
    return json_response({"data": token_schema.dump(pair)}, status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue a token pair."""

    data = login_schema.load(request.get_json(silent=True) or {})
    pair = get_moderation_service().login(data["username"], data["password"])
    return json_response({"data": token_schema.dump(pair)})


@bp.post("/refresh")
@timing
def refresh():
    """Consume a refresh token and issue a replacement pair."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    pair = get_moderation_service().refresh(data["refresh_token"])
    return json_response({"data": token_schema.dump(pair)})

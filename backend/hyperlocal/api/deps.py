"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar, cast

from flask import Response, current_app, g, jsonify, request

from hyperlocal.core.errors import TooManyRequests, Unauthorized
from hyperlocal.core.extensions import get_redis
from hyperlocal.core.logger import ensure_request_id
from hyperlocal.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
from hyperlocal.infra.redis.redis_rate_limiter import RedisRateLimiter
from hyperlocal.schemas.common import PaginationQuerySchema
from hyperlocal.services._shared.base import ROLE_ADMIN, ServiceContext
from hyperlocal.services._shared.errors import AuthorizationError
from hyperlocal.services._shared.ports.rate_limiter import InMemoryRateLimiter, RateLimiter
from hyperlocal.services.auth.dto import AccessClaims
from hyperlocal.services.auth.service import AuthService
from hyperlocal.services.moderation.service import ModerationService

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(slots=True)
class Pagination:
    """Container holding pagination arguments parsed from the request."""

    page: int
    limit: int


def parse_pagination(default_limit: int = 20, max_limit: int = 200) -> Pagination:
    """Parse pagination parameters from ``request.args`` using Marshmallow."""

    schema = PaginationQuerySchema(default_limit=default_limit, max_limit=max_limit)
    data = schema.load(request.args)
    return Pagination(page=data["page"], limit=data["limit"])


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


# --------------------------------------------------------------------------- #
# Principal
# --------------------------------------------------------------------------- #


def _bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized("Missing bearer token", code="missing_token")
    return token.strip()


def service_context() -> ServiceContext:
    """Context for the current request; anonymous when no principal was verified."""

    claims: AccessClaims | None = getattr(g, "principal", None)
    return ServiceContext(
        actor_id=claims.user_id if claims else None,
        role=claims.role if claims else None,
        request_id=ensure_request_id(),
    )


def require_auth(func: F) -> F:
    """Verify the bearer access token and expose its claims as ``g.principal``."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        token = _bearer_token()
        g.principal = AuthService(token_provider=JWTTokenProvider()).validate_access_token(token)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_role(role: str) -> Callable[[F], F]:
    """Ensure the verified principal carries ``role`` (implies :func:`require_auth`)."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def inner(*args: Any, **kwargs: Any):
            claims: AccessClaims = g.principal
            if claims.role != role:
                raise AuthorizationError(f"{role.capitalize()} role required")
            return func(*args, **kwargs)

        return require_auth(inner)  # type: ignore[return-value]

    return decorator


require_admin = require_role(ROLE_ADMIN)


def get_moderation_service() -> ModerationService:
    """Build the facade for the current request from app config."""

    return ModerationService.from_config(
        current_app.config,
        token_provider=JWTTokenProvider(),
        ctx=service_context(),
    )


# --------------------------------------------------------------------------- #
# Rate limiting
# --------------------------------------------------------------------------- #


def get_rate_limiter() -> RateLimiter:
    """Return the app-wide limiter (Redis-backed when ``REDIS_URL`` is set)."""

    limiter = current_app.extensions.get("rate_limiter")
    if limiter is None:
        if current_app.extensions.get("redis_client") is not None:
            limiter = RedisRateLimiter(get_redis())
        else:
            limiter = InMemoryRateLimiter()
        limiter = current_app.extensions.setdefault("rate_limiter", limiter)
    return cast(RateLimiter, limiter)


def rate_limited(scope: str, *, limit_key: str, window_key: str) -> Callable[[F], F]:
    """Apply a fixed-window limit per authenticated user.

    Must be stacked under :func:`require_auth`. Limits are read from config at
    request time so tests can tune them.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            claims: AccessClaims = g.principal
            decision = get_rate_limiter().hit(
                f"{scope}:{claims.user_id}",
                limit=int(current_app.config[limit_key]),
                window_s=int(current_app.config[window_key]),
            )
            if not decision.allowed:
                current_app.logger.info(
                    "rate_limit.exceeded",
                    extra={"scope": scope, "user_id": claims.user_id},
                )
                raise TooManyRequests(retry_after=decision.retry_after)
            response = current_app.make_response(func(*args, **kwargs))
            response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
            return response

        return wrapper  # type: ignore[return-value]

    return decorator


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]

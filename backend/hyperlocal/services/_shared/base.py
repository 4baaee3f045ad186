"""Base class for application services and domain-to-HTTP error translation."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from hyperlocal.core import errors as api_errors
from hyperlocal.models.post import Post
from hyperlocal.models.user import User
from hyperlocal.repositories.base import Pagination
from hyperlocal.services._shared.errors import (
    AccountBannedError,
    AuthError,
    AuthorizationError,
    ConflictError,
    InvariantViolation,
    NotFoundError,
    ServiceError,
    TransientStoreError,
    ValidationError,
)
from hyperlocal.uow.base import UnitOfWork
from hyperlocal.uow.sqlalchemy_uow import (
    SessionFactory,
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

log = logging.getLogger(__name__)

ROLE_USER = "user"
ROLE_ADMIN = "admin"


@dataclass(slots=True)
class ServiceContext:
    """
    Carry request-scoped data (acting principal, correlation id).

    :param actor_id: Authenticated user identifier.
    :param role: Role claim of the authenticated principal.
    :param request_id: Correlation id for logging/tracing.
    """

    actor_id: int | None = None
    role: str | None = None
    request_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def translate_service_error(exc: ServiceError) -> api_errors.APIError:
    """
    Map a domain/service-level error to its API-level (HTTP) error.

    :param exc: Exception raised within a service.
    :type exc: ServiceError
    :returns: Equivalent :class:`~hyperlocal.core.errors.APIError`.
    :rtype: APIError
    """
    if isinstance(exc, NotFoundError):
        return api_errors.NotFound(str(exc))

    if isinstance(exc, ConflictError):
        return api_errors.Conflict(str(exc), code=exc.code)

    if isinstance(exc, ValidationError):
        return api_errors.APIError(
            message=str(exc),
            status_code=422,
            code=exc.code,
            details={"field": exc.field},
        )

    if isinstance(exc, AccountBannedError):
        return api_errors.Forbidden(str(exc), code=exc.code)

    if isinstance(exc, AuthError):
        return api_errors.Unauthorized(str(exc), code=exc.code)

    if isinstance(exc, AuthorizationError):
        return api_errors.Forbidden(str(exc), code=exc.code)

    if isinstance(exc, TransientStoreError):
        return api_errors.ServiceUnavailable(str(exc), retry_after=exc.retry_after)

    if isinstance(exc, InvariantViolation):
        # Details stay in the logs; clients get a stable code only.
        return api_errors.APIError(
            message="Aggregate is inconsistent and locked pending reconciliation",
            status_code=500,
            code=exc.code,
        )

    return api_errors.APIError(message=str(exc), status_code=400, code="bad_request")


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Resolve and check the acting principal.
    * Offer shared validation helpers (pagination).

    Notes
    -----
    - Services never touch the global session directly; always a Unit of Work.
    - ``session_factory`` gives each unit of work a private session; without
      it the Flask-scoped session is used.
    """

    DEFAULT_READ_ISOLATION = "READ COMMITTED"

    def __init__(
        self,
        *,
        ctx: ServiceContext | None = None,
        session_factory: SessionFactory | None = None,
    ) -> None:
        """
        Initialize the base service.

        :param ctx: Optional request-scoped context (principal, tracing).
        :type ctx: ServiceContext | None
        :param session_factory: Optional session factory for units of work.
        """
        self.ctx = ctx or ServiceContext()
        self.session_factory = session_factory

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """Create a read-write Unit of Work."""
        return SQLAlchemyUnitOfWork(session_factory=self.session_factory)

    def ro_uow(
        self, *, isolation: str | None = None, enforce_db_readonly: bool = True
    ) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :param isolation: Transaction isolation level (e.g. "READ COMMITTED").
        :type isolation: str | None
        :param enforce_db_readonly: Apply ``SET TRANSACTION READ ONLY`` when supported.
        :type enforce_db_readonly: bool
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork(
            isolation_level=isolation or self.DEFAULT_READ_ISOLATION,
            enforce_db_readonly=enforce_db_readonly,
            session_factory=self.session_factory,
        )

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(timezone.utc)

    # ----------------------- Validation utilities ---------------------------

    def ensure_pagination(
        self, *, page: int, limit: int, sort: Iterable[str] | None = None, max_limit: int = 200
    ) -> Pagination:
        """
        Build a Pagination value object with basic clamping.

        :param page: 1-based page number.
        :param limit: Page size (clamped to ``1..max_limit``).
        :param sort: Sort tokens like ``["-created_at"]``.
        :rtype: Pagination
        """
        page = max(1, int(page))
        limit = min(max(1, int(limit)), max_limit)
        return Pagination(page=page, limit=limit, sort=list(sort or []))

    # --------------------------- Principal ----------------------------------

    def require_actor(self) -> int:
        """
        Return the acting user id.

        :raises AuthError: When the context carries no authenticated principal.
        """
        if self.ctx.actor_id is None:
            raise AuthError("Authentication required")
        return int(self.ctx.actor_id)

    def require_admin(self) -> int:
        """
        Return the acting user id, requiring the ``admin`` role claim.

        :raises AuthorizationError: For non-admin principals.
        """
        actor_id = self.require_actor()
        if not self.ctx.is_admin:
            log.warning("Admin operation refused", extra={"user_id": actor_id, "role": self.ctx.role})
            raise AuthorizationError("Admin role required")
        return actor_id

    @staticmethod
    def ensure_active_user(uow: UnitOfWork, user_id: int) -> User:
        """
        Load ``user_id`` inside ``uow`` and reject banned accounts.

        :raises NotFoundError: If the user does not exist.
        :raises AccountBannedError: If the user is banned.
        """
        user = uow.users.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        if user.is_banned:
            raise AccountBannedError()
        return user

    @staticmethod
    def load_writable_post(uow: UnitOfWork, post_id: int, *, lock: bool = False) -> Post:
        """
        Load ``post_id`` for a write against it.

        :param lock: Take the row lock (``FOR UPDATE``) while loading.
        :raises NotFoundError: If the post does not exist.
        :raises InvariantViolation: If the post is on integrity hold; every
            write to it is refused until its counters are reconciled.
        """
        post = uow.posts.get_for_update(post_id) if lock else uow.posts.get(post_id)
        if post is None:
            raise NotFoundError("Post", post_id)
        if post.integrity_hold:
            raise InvariantViolation("Post", post_id, "writes suspended pending reconciliation")
        return post

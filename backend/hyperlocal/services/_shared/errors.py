"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or HTTP
machinery. They are the stable contract between repositories, units of work
and application services.

The translation to HTTP responses (RFC 7807) is handled by
``hyperlocal/core/errors.py`` through
:func:`hyperlocal.services._shared.base.translate_service_error`.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(
    exc: IntegrityError, constraint_name: str, columns: Sequence[str] | None = None
) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    PostgreSQL and MySQL include the constraint name in the driver message.
    SQLite only reports the offending columns
    (``UNIQUE constraint failed: votes.user_id, votes.post_id``), so callers
    may pass the qualified column names as a fallback.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g., 'uq_users_username').
    columns : Sequence[str] | None
        Qualified ``table.column`` names that must all appear in the message
        when the constraint name is absent.

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.
    """
    message = str(exc.orig).lower() if exc.orig else str(exc).lower()
    if constraint_name.lower() in message:
        return True
    if columns:
        return all(col.lower() in message for col in columns)
    return False


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories or domain logic.
    - The error handlers translate them to APIError at the edge.
    """

    code = "bad_request"


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class ValidationError(ServiceError):
    """
    Raised when a caller-supplied value is malformed or out of range.

    :param field: Offending input field.
    :type field: str
    :param message: Short human-readable explanation.
    :type message: str
    """

    field: str
    message: str

    code = "validation_error"

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "Post").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    code = "not_found"

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "Vote").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    :param reason: Stable machine-readable code (``already_voted``,
        ``username_taken`` or the generic ``conflict``).
    :type reason: str
    """

    entity: str
    detail: str
    reason: str = "conflict"

    @property
    def code(self) -> str:  # type: ignore[override]
        return self.reason

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"


class AuthError(ServiceError):
    """Base class for authentication failures (401 unless stated otherwise)."""

    code = "unauthorized"
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class InvalidCredentialsError(AuthError):
    code = "invalid_credentials"
    default_message = "Invalid username or password"


class AccountBannedError(AuthError):
    code = "account_banned"
    default_message = "Account is banned"


class InvalidOrExpiredTokenError(AuthError):
    """The presented token is unknown, consumed or past its expiry."""

    code = "invalid_or_expired_token"
    default_message = "Token is invalid or expired"


class TokenExpiredError(InvalidOrExpiredTokenError):
    code = "token_expired"
    default_message = "Token has expired"


class TokenSignatureInvalidError(AuthError):
    code = "token_signature_invalid"
    default_message = "Token signature verification failed"


class WrongAlgorithmError(AuthError):
    code = "wrong_algorithm"
    default_message = "Token signed with an unexpected algorithm"


class InvalidTokenError(AuthError):
    code = "invalid_token"
    default_message = "Token is malformed or has invalid claims"


class AuthorizationError(ServiceError):
    """Raised when an authenticated principal lacks the required role."""

    code = "forbidden"

    def __init__(self, message: str = "Insufficient privileges") -> None:
        super().__init__(message)


class TransientStoreError(ServiceError):
    """
    Raised on lock contention or lost connectivity.

    Nothing was applied; the caller may retry with backoff.

    :param message: Human-readable summary.
    :param retry_after: Suggested delay in seconds before retrying.
    """

    code = "transient_store_error"

    def __init__(self, message: str = "Storage temporarily unavailable", *, retry_after: int = 1) -> None:
        super().__init__(message)
        self.retry_after = retry_after


@dataclass(slots=True)
class InvariantViolation(ServiceError):
    """
    Raised when derived state no longer matches its source of truth.

    The affected aggregate is put on hold until reconciled.

    :param entity: Entity name (e.g., "Post").
    :param key: Identifier of the affected aggregate.
    :param detail: Description of the divergence.
    """

    entity: str
    key: str | int
    detail: str

    code = "invariant_violation"

    def __str__(self) -> str:
        return f"Invariant violated on {self.entity} {self.key}: {self.detail}"

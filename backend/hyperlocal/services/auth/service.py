# hyperlocal/services/auth/service.py
from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from hyperlocal.models.user import User
from hyperlocal.services._shared.base import ROLE_USER, BaseService, ServiceContext
from hyperlocal.services._shared.errors import (
    AccountBannedError,
    AuthError,
    ConflictError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    ValidationError,
    violates,
)
from hyperlocal.services._shared.ports.refresh_token_store import RotationResult
from hyperlocal.services._shared.ports.token_provider import TokenProvider
from hyperlocal.services.auth.dto import (
    AccessClaims,
    AuthTokenConfig,
    LoginIn,
    RefreshIn,
    RegisterIn,
    TokenPairOut,
)
from hyperlocal.uow.base import UnitOfWork
from hyperlocal.uow.sqlalchemy_uow import SessionFactory

log = logging.getLogger(__name__)

USERNAME_MIN, USERNAME_MAX = 3, 30
PASSWORD_MIN = 6

ACCESS_TOKEN_TYPE = "access"

# Verified against when the username is unknown so both branches cost a hash
_DUMMY_PASSWORD_HASH = generate_password_hash("not-a-real-password")


def hash_refresh_token(value: str) -> str:
    """Return the SHA-256 hex digest under which a refresh token is stored."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def new_refresh_token_value() -> str:
    """Return a fresh unguessable refresh token (256 bits, URL-safe)."""
    return secrets.token_urlsafe(32)


class AuthService(BaseService):
    """
    Credential lifecycle: registration, login, refresh rotation and access
    token validation.

    Refresh tokens are opaque values whose digests live in the
    ``refresh_tokens`` table. Each one moves ``issued -> consumed`` (refresh)
    or ``issued -> expired``; both end states delete the row. Access tokens
    are signed by the injected :class:`TokenProvider` and verified without a
    store lookup.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        token_cfg: AuthTokenConfig | None = None,
        ctx: ServiceContext | None = None,
        session_factory: SessionFactory | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param token_provider: Adapter for signing/verifying access tokens.
        :param token_cfg: Access/refresh lifetime configuration.
        :param ctx: Request-scoped context.
        :param session_factory: Optional session factory for units of work.
        """
        super().__init__(ctx=ctx, session_factory=session_factory)
        self.tokens = token_provider
        self.cfg = token_cfg or AuthTokenConfig()

    # ------------------------------------------------------------------ #
    # Register
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> TokenPairOut:
        """
        Create a user and issue a first token pair.

        The pre-check gives a clean error in the common case; the unique
        constraint on ``users.username`` decides races.

        :raises ValidationError: Username/password outside the allowed lengths.
        :raises ConflictError: ``username_taken``.
        """
        username = (dto.username or "").strip()
        if not USERNAME_MIN <= len(username) <= USERNAME_MAX:
            raise ValidationError("username", f"must be {USERNAME_MIN}-{USERNAME_MAX} characters")
        if len(dto.password or "") < PASSWORD_MIN:
            raise ValidationError("password", f"must be at least {PASSWORD_MIN} characters")

        try:
            with self.rw_uow() as uow:
                if uow.users.exists_by_username(username):
                    raise self._username_taken()
                user = User(username=username)
                user.password = dto.password
                uow.users.add(user)
                user_id = user.id
                refresh = self._persist_refresh(uow, user_id)
        except IntegrityError as exc:
            if violates(exc, "uq_users_username", columns=("users.username",)):
                raise self._username_taken() from exc
            raise

        log.info("User registered", extra={"user_id": user_id})
        return self._pair(user_id, refresh)

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> TokenPairOut:
        """
        Authenticate credentials and issue a fresh token pair.

        The password is verified before the ban flag is consulted, so a
        caller without the password learns nothing about the account.

        :raises InvalidCredentialsError: Unknown user or wrong password.
        :raises AccountBannedError: Correct credentials on a banned account.
        """
        username = (dto.username or "").strip()
        with self.rw_uow() as uow:
            user = uow.users.get_by_username(username) if username else None
            if user is None:
                check_password_hash(_DUMMY_PASSWORD_HASH, dto.password or "")
                raise InvalidCredentialsError()
            if not user.verify_password(dto.password or ""):
                raise InvalidCredentialsError()
            if user.is_banned:
                log.info("Login refused for banned user", extra={"user_id": user.id})
                raise AccountBannedError()
            user_id = user.id
            refresh = self._persist_refresh(uow, user_id)

        return self._pair(user_id, refresh)

    # ------------------------------------------------------------------ #
    # Refresh with rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> TokenPairOut:
        """
        Consume a refresh token and issue a replacement pair.

        Consumption and the new token's registration commit together. An
        expired or orphaned token is still deleted (that deletion commits)
        before the error is raised. Of two concurrent calls with the same
        value only one can delete the row; the other fails.

        :raises InvalidOrExpiredTokenError: Unknown, consumed or expired token.
        :raises AccountBannedError: The owner is banned.
        """
        digest = hash_refresh_token(dto.refresh_token or "")
        failure: AuthError | None = None
        user_id: int | None = None
        refresh = ""

        with self.rw_uow() as uow:
            outcome = uow.refresh_tokens.consume(digest, now=self.now_utc())
            if outcome.result is not RotationResult.OK:
                failure = InvalidOrExpiredTokenError()
                log.info(
                    "Refresh rejected",
                    extra={"user_id": outcome.user_id, "reason": outcome.result.name.lower()},
                )
            else:
                user = uow.users.get(outcome.user_id)
                if user is None:
                    failure = InvalidOrExpiredTokenError()
                elif user.is_banned:
                    failure = AccountBannedError()
                    log.info("Refresh refused for banned user", extra={"user_id": user.id})
                else:
                    user_id = user.id
                    refresh = self._persist_refresh(uow, user_id)

        if failure is not None or user_id is None:
            raise failure or InvalidOrExpiredTokenError()
        log.info("Refresh token rotated", extra={"user_id": user_id})
        return self._pair(user_id, refresh)

    # ------------------------------------------------------------------ #
    # Issuance and validation
    # ------------------------------------------------------------------ #

    def issue_token_pair(self, user_id: int) -> TokenPairOut:
        """
        Persist a new refresh token for ``user_id`` and sign an access token.

        :raises NotFoundError: Unknown user.
        :raises AccountBannedError: Banned user.
        """
        with self.rw_uow() as uow:
            self.ensure_active_user(uow, user_id)
            refresh = self._persist_refresh(uow, user_id)
        return self._pair(user_id, refresh)

    def validate_access_token(self, token: str) -> AccessClaims:
        """
        Verify an access token's signature, algorithm, issuer and expiry.

        :raises TokenExpiredError: Past ``exp``.
        :raises WrongAlgorithmError: ``alg`` outside the accepted list.
        :raises TokenSignatureInvalidError: Signature mismatch.
        :raises InvalidTokenError: Malformed token or claims.
        """
        claims = self.tokens.decode(token)
        if claims.get("type") != ACCESS_TOKEN_TYPE:
            raise InvalidTokenError("Not an access token")

        subject = claims.get("sub")
        try:
            user_id = int(subject)  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise InvalidTokenError("Invalid token subject") from exc

        exp = claims.get("exp")
        return AccessClaims(
            user_id=user_id,
            role=str(claims.get("role") or ROLE_USER),
            jti=claims.get("jti"),
            expires_at=datetime.fromtimestamp(int(exp), tz=timezone.utc) if exp else None,
        )

    # ------------------------------------------------------------------ #
    # Maintenance
    # ------------------------------------------------------------------ #

    def sweep_expired_refresh_tokens(self) -> int:
        """Delete refresh tokens past their expiry. Safe to run concurrently."""
        with self.rw_uow() as uow:
            removed = uow.refresh_tokens.sweep_expired(now=self.now_utc())
        log.info("Expired refresh tokens swept", extra={"count": removed})
        return removed

    def revoke_user_sessions(self, user_id: int, *, uow: UnitOfWork | None = None) -> int:
        """
        Delete every refresh token of ``user_id``.

        :param uow: Join an existing unit of work instead of opening one.
        :returns: Number of tokens deleted.
        """
        if uow is not None:
            return uow.refresh_tokens.delete_for_user(user_id)
        with self.rw_uow() as own:
            return own.refresh_tokens.delete_for_user(user_id)

    # ------------------------------------------------------------------ #
    # Utilities
    # ------------------------------------------------------------------ #

    def _persist_refresh(self, uow: UnitOfWork, user_id: int) -> str:
        value = new_refresh_token_value()
        uow.refresh_tokens.register(
            user_id=user_id,
            token_hash=hash_refresh_token(value),
            expires_at=self.now_utc() + self.cfg.refresh_expires,
        )
        return value

    def _pair(self, user_id: int, refresh: str) -> TokenPairOut:
        claims: dict[str, Any] = {"user_id": user_id, "role": ROLE_USER}
        access = self.tokens.create_access_token(
            identity=str(user_id),
            additional_claims=claims,
            expires_delta=self.cfg.access_expires,
        )
        return TokenPairOut(
            access_token=access,
            refresh_token=refresh,
            expires_in=self.cfg.access_ttl_seconds,
        )

    @staticmethod
    def _username_taken() -> ConflictError:
        return ConflictError("User", "username already taken", reason="username_taken")

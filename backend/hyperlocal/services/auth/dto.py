# hyperlocal/services/auth/dto.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

DEFAULT_ACCESS_EXPIRES = timedelta(minutes=15)
DEFAULT_REFRESH_EXPIRES = timedelta(days=30)

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for registration.

    :param username: Desired display name (3..30 chars after trimming).
    :type username: str
    :param password: Raw password (at least 6 chars).
    :type password: str
    """

    username: str
    password: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param username: Display name.
    :type username: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    username: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Opaque refresh token value.
    :type refresh_token: str
    """

    refresh_token: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Signed access JWT.
    :param refresh_token: Opaque single-use refresh token.
    :param expires_in: Access token lifetime in seconds.
    :param token_type: Always ``"bearer"``.
    """

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """
    Verified access token claims.

    :param user_id: Subject user id.
    :param role: Role claim (``"user"`` or ``"admin"``).
    :param jti: Token identifier.
    :param expires_at: Absolute expiry (UTC).
    """

    user_id: int
    role: str
    jti: str | None
    expires_at: datetime | None


# ------------------------------ Config DTO -------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param access_expires: Access token lifetime.
    :type access_expires: timedelta
    :param refresh_expires: Refresh token lifetime.
    :type refresh_expires: timedelta
    """

    access_expires: timedelta = DEFAULT_ACCESS_EXPIRES
    refresh_expires: timedelta = DEFAULT_REFRESH_EXPIRES

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> AuthTokenConfig:
        """Read lifetimes from a Flask config mapping."""
        return cls(
            access_expires=config.get("JWT_ACCESS_TOKEN_EXPIRES", DEFAULT_ACCESS_EXPIRES),
            refresh_expires=config.get("REFRESH_TOKEN_EXPIRES", DEFAULT_REFRESH_EXPIRES),
        )

    @property
    def access_ttl_seconds(self) -> int:
        return int(self.access_expires.total_seconds())

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from hyperlocal.services._shared.errors import InvalidTokenError, TokenExpiredError


class TokenProvider(Protocol):
    """Port for signing and verifying access tokens."""

    def create_access_token(
        self,
        *,
        identity: int | str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str: ...

    def decode(self, token: str) -> dict[str, Any]:
        """Verify ``token`` and return its claims.

        Implementations raise a subclass of
        :class:`~hyperlocal.services._shared.errors.AuthError` on any
        verification failure and never return unverified claims.
        """
        ...


class StubTokenProvider:
    """Deterministic, thread-safe token provider used in unit tests.

    Tokens are opaque strings remembered in memory; expiry is checked against
    the wall clock so ``freezegun`` can drive it.
    """

    def __init__(self) -> None:
        self._seq = 0
        self._issued: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def create_access_token(
        self,
        *,
        identity: int | str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        now = datetime.now(tz=timezone.utc)
        with self._lock:
            self._seq += 1
            seq = self._seq
        token = f"access.{identity}.{seq}"
        payload: dict[str, Any] = {
            "sub": str(identity),
            "type": "access",
            "jti": f"jti-{seq}",
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int((now + (expires_delta or timedelta(minutes=15))).timestamp()),
        }
        if additional_claims:
            payload.update(additional_claims)
        with self._lock:
            self._issued[token] = payload
        return token

    def decode(self, token: str) -> dict[str, Any]:
        with self._lock:
            payload = self._issued.get(token)
        if payload is None:
            raise InvalidTokenError()
        if payload["exp"] <= int(datetime.now(tz=timezone.utc).timestamp()):
            raise TokenExpiredError()
        return dict(payload)

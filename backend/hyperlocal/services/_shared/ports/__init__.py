"""
hyperlocal.services._shared.ports
=================================

*Ports* (hexagonal interfaces) the service layer depends on, each with an
in-process implementation for tests and single-worker setups.

Modules
-------
- :mod:`token_provider`:
    :class:`~.TokenProvider`, signing and verification of access tokens.
- :mod:`refresh_token_store`:
    :class:`~.RotationResult` and :class:`~.ConsumeResult`, outcomes of
    single-use refresh token consumption. The store is the SQL-backed
    :class:`hyperlocal.repositories.refresh_token.RefreshTokenRepository`.
- :mod:`rate_limiter`:
    :class:`~.RateLimiter`, fixed-window request throttling.

Concrete adapters (JWT, Redis) live under ``hyperlocal.infra``.
"""

from __future__ import annotations

from .rate_limiter import InMemoryRateLimiter, RateLimitDecision, RateLimiter
from .refresh_token_store import ConsumeResult, RotationResult
from .token_provider import StubTokenProvider, TokenProvider

__all__ = [
    "TokenProvider",
    "StubTokenProvider",
    "RotationResult",
    "ConsumeResult",
    "RateLimiter",
    "RateLimitDecision",
    "InMemoryRateLimiter",
]

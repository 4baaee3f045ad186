"""SQL-backed refresh token store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select

from hyperlocal.models.base import ensure_utc
from hyperlocal.models.refresh_token import RefreshToken
from hyperlocal.repositories.base import BaseRepository
from hyperlocal.services._shared.ports.refresh_token_store import ConsumeResult, RotationResult


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """
    Persistence for opaque refresh tokens, stored by SHA-256 digest.

    Consumption deletes the row and trusts the DELETE row count: of two
    transactions racing on the same digest only one removes the row, the
    other sees 0 rows and reports ``NOT_FOUND``.
    """

    model = RefreshToken

    def _filterable_fields(self):
        return {"user_id": RefreshToken.user_id, "token_hash": RefreshToken.token_hash}

    def register(self, *, user_id: int, token_hash: str, expires_at: datetime) -> RefreshToken:
        return self.add(RefreshToken(user_id=user_id, token_hash=token_hash, expires_at=expires_at))

    def consume(self, token_hash: str, *, now: datetime) -> ConsumeResult:
        row = self.session.execute(
            select(RefreshToken.user_id, RefreshToken.expires_at).where(
                RefreshToken.token_hash == token_hash
            )
        ).first()
        if row is None:
            return ConsumeResult(RotationResult.NOT_FOUND)

        removed = self._execute_rowcount(
            delete(RefreshToken).where(RefreshToken.token_hash == token_hash)
        )
        if removed == 0:
            return ConsumeResult(RotationResult.NOT_FOUND)

        user_id, expires_at = int(row[0]), ensure_utc(row[1])
        if expires_at <= ensure_utc(now):
            return ConsumeResult(RotationResult.EXPIRED, user_id)
        return ConsumeResult(RotationResult.OK, user_id)

    def sweep_expired(self, *, now: datetime) -> int:
        return self._execute_rowcount(delete(RefreshToken).where(RefreshToken.expires_at <= now))

    def delete_for_user(self, user_id: int) -> int:
        return self._execute_rowcount(delete(RefreshToken).where(RefreshToken.user_id == user_id))

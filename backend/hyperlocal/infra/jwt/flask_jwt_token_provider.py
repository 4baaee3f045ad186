# hyperlocal/infra/jwt/flask_jwt_token_provider.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

import jwt as pyjwt
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException

from hyperlocal.services._shared.errors import (
    InvalidTokenError,
    TokenExpiredError,
    TokenSignatureInvalidError,
    WrongAlgorithmError,
)

log = logging.getLogger(__name__)


@dataclass(slots=True)
class JWTTokenProvider:
    """
    Adapter for Flask-JWT-Extended (PyJWT underneath).

    Signing uses ``JWT_ALGORITHM`` and ``JWT_SECRET_KEY``; decoding accepts
    only ``JWT_DECODE_ALGORITHMS`` and requires ``JWT_DECODE_ISSUER``. PyJWT
    failures are mapped onto the service-level auth errors.

    .. note::
       Requires an active Flask app context.
    """

    def create_access_token(
        self,
        *,
        identity: str | int,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        return cast(
            str,
            create_access_token(
                identity=str(identity),
                additional_claims=additional_claims or {},
                expires_delta=expires_delta,
            ),
        )

    def decode(self, token: str) -> dict[str, Any]:
        try:
            return cast(dict[str, Any], decode_token(token))
        except pyjwt.ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except pyjwt.InvalidAlgorithmError as exc:
            log.warning("Access token rejected: unexpected algorithm")
            raise WrongAlgorithmError() from exc
        except pyjwt.InvalidSignatureError as exc:
            log.warning("Access token rejected: bad signature")
            raise TokenSignatureInvalidError() from exc
        except (pyjwt.PyJWTError, JWTExtendedException) as exc:
            raise InvalidTokenError(str(exc) or None) from exc

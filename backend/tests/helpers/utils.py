"""Tiny helpers shared across test modules."""

from __future__ import annotations

from contextlib import contextmanager


@contextmanager
def not_raises(exception: type[BaseException]):
    """Context manager asserting that an exception is *not* raised.

    Parameters
    ----------
    exception: type[BaseException]
        Exception type that should not be raised within the context.

    Yields
    ------
    None
        Control enters the managed block when the exception is absent.
    """
    try:
        yield
    except exception as exc:  # pragma: no cover
        raise AssertionError(f"Did raise {exception}: {exc}") from exc


def bearer_for(app, user_id: int, role: str = "user") -> dict[str, str]:
    """Mint an access token for ``user_id`` and return the auth header.

    Parameters
    ----------
    app: flask.Flask
        Application whose JWT settings sign the token.
    user_id: int
        Subject of the token.
    role: str, optional
        Role claim, ``"user"`` by default.
    """
    from flask_jwt_extended import create_access_token

    with app.app_context():
        token = create_access_token(
            identity=str(user_id), additional_claims={"user_id": user_id, "role": role}
        )
    return {"Authorization": f"Bearer {token}"}

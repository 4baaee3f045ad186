"""Logging setup: one line per record, tagged with request id and acting user.

Records emitted while serving a request carry ``request_id`` (taken from
``X-Request-ID``/``X-Correlation-ID`` or generated) and ``actor_id`` (the
verified principal, when there is one). Fields passed through ``extra=``
(``post_id``, ``user_id``, ``count``...) are rendered next to the message.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")
_ENVIRON_KEY = "hyperlocal.request_id"

LOG_FORMATS = ("json", "text")

_CONTEXT_ATTRS = ("request_id", "actor_id")
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName", *_CONTEXT_ATTRS}


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    """Return the fields a caller attached to ``record`` through ``extra=``."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for attr in _CONTEXT_ATTRS:
            payload[attr] = getattr(record, attr, None)
        payload.update(record_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable variant for local development, extras as ``key=value``."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "request_id"):
            record.request_id = None
        line = super().format(record)
        extras = record_extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


class RequestContextFilter(logging.Filter):
    """Attach ``request_id`` and ``actor_id`` to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            record.request_id = ensure_request_id()
            principal = getattr(g, "principal", None)
            record.actor_id = getattr(principal, "user_id", None)
        else:
            record.request_id = None
            record.actor_id = None
        return True


def ensure_request_id() -> str:
    """
    Return the current request identifier, generating one when necessary.

    The id is cached in the WSGI environ, which lives exactly as long as the
    request. ``g`` belongs to the app context and may outlive it.
    """

    if not has_request_context():
        return str(uuid4())
    cached = request.environ.get(_ENVIRON_KEY)
    if cached:
        return cached
    request_id = next(
        (request.headers[h] for h in CORRELATION_HEADERS if request.headers.get(h)),
        None,
    ) or str(uuid4())
    request.environ[_ENVIRON_KEY] = request_id
    return request_id


def configure_logging(level: str | int = "INFO", *, fmt: str = "json") -> None:
    """Route the root logger to stdout.

    :param level: Level name or number.
    :param fmt: ``"json"`` (default) or ``"text"``.
    :raises ValueError: Unknown ``fmt``.
    """
    if fmt not in LOG_FORMATS:
        raise ValueError(f"Unknown log format {fmt!r}; expected one of {LOG_FORMATS}")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    handler.addFilter(RequestContextFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    level_value: int | str = level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level_value = resolved if isinstance(resolved, int) else level.upper()
    root.setLevel(level_value)


def init_app(app: Flask) -> None:
    """Seed the request id early and echo it on every response."""

    app.logger.addFilter(RequestContextFilter())

    @app.before_request
    def _seed_request_id() -> None:
        # ``g`` can be shared by requests served inside one pushed app context
        g.pop("principal", None)
        ensure_request_id()

    @app.after_request
    def _inject_response_header(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = [
    "JSONFormatter",
    "RequestContextFilter",
    "TextFormatter",
    "configure_logging",
    "ensure_request_id",
    "init_app",
]

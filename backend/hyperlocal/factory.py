"""Application factory wiring Flask extensions and blueprints."""

from __future__ import annotations

from flask import Flask

from hyperlocal.core.config import PLACEHOLDER_SECRETS, BaseConfig, get_config
from hyperlocal.core.logger import configure_logging, init_app as init_logging


def _check_secrets(app: Flask) -> None:
    """Refuse to boot a non-debug, non-testing app with placeholder secrets."""
    if app.debug or app.testing:
        return
    for key in ("SECRET_KEY", "JWT_SECRET_KEY"):
        if app.config.get(key) in PLACEHOLDER_SECRETS:
            raise RuntimeError(f"{key} must be set to a real secret outside development")


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application."""

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    _check_secrets(app)
    configure_logging(
        app.config.get("LOG_LEVEL", "INFO"), fmt=app.config.get("LOG_FORMAT", "json")
    )

    from hyperlocal.core import proxy

    proxy.init_app(app)

    from hyperlocal.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from hyperlocal.core import cors

    cors.init_app(app)

    from hyperlocal.api import init_app as init_api

    init_api(app)

    from hyperlocal.core import errors

    errors.init_app(app)

    from hyperlocal import cli as app_cli

    app_cli.init_app(app)

    return app

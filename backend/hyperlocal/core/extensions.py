"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData, event
from sqlalchemy.engine import Engine

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()
redis_client: redis.Redis | None = None


def configure_sqlite_engine(engine: Engine) -> Engine:
    """Make SQLite behave like a transactional store with serialized writers.

    pysqlite defers ``BEGIN`` until the first DML statement, which leaves
    reads outside of any transaction and breaks SAVEPOINT handling. The
    driver-level transaction control is disabled and every SQLAlchemy
    transaction starts with ``BEGIN IMMEDIATE`` instead, so a read-then-write
    sequence holds the database write lock from its first statement (the
    SQLite counterpart of ``SELECT ... FOR UPDATE``). Foreign keys are
    enforced on every connection.

    :param engine: Engine bound to a SQLite database. Other dialects are
        returned untouched.
    :type engine: :class:`sqlalchemy.engine.Engine`
    :returns: The same engine, for chaining.
    :rtype: :class:`sqlalchemy.engine.Engine`
    """
    if engine.dialect.name != "sqlite":
        return engine

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # pragma: no cover - driver glue
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # pragma: no cover - driver glue
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations, JWT and the optional Redis client.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`hyperlocal.models` package to ensure SQLAlchemy metadata is
        ready for migrations.
    """
    db.init_app(app)

    with app.app_context():
        configure_sqlite_engine(db.engine)

    # Ensure models are imported so Alembic sees metadata
    from hyperlocal import models as _models  # noqa: F401

    migrate.init_app(app, db)
    jwt.init_app(app)

    global redis_client
    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        redis_client = None
        app.extensions.pop("redis_client", None)
        return

    redis_client = redis.Redis.from_url(redis_url)
    try:
        redis_client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
    app.extensions["redis_client"] = redis_client


def get_redis() -> redis.Redis:
    """Return the initialized Redis client."""
    if redis_client is None:
        raise RuntimeError("Redis client is not initialized. Call init_app() first.")
    return redis_client

"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import suppress

from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import InvalidRequestError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction

from hyperlocal.core.extensions import db
from hyperlocal.repositories import (
    CommentRepository,
    PostRepository,
    RefreshTokenRepository,
    ReportRepository,
    UserRepository,
    VoteRepository,
)
from hyperlocal.services._shared.errors import TransientStoreError
from hyperlocal.uow.base import UnitOfWork

log = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


class SQLAlchemyRepositoryContainer:
    """Provide repository instances that share a SQLAlchemy session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session=self.session)
        self.posts = PostRepository(session=self.session)
        self.votes = VoteRepository(session=self.session)
        self.comments = CommentRepository(session=self.session)
        self.reports = ReportRepository(session=self.session)
        self.refresh_tokens = RefreshTokenRepository(session=self.session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    SQLAlchemy-backed read-write UoW.

    Uses the Flask-scoped session by default. When ``session_factory`` is
    given, a private session is opened for the scope and closed on exit, which
    lets worker threads outside a request run their own transactions.

    Every exception rolls the transaction back. ``OperationalError`` (lock
    timeout, deadlock, lost connection) is re-raised as
    :class:`~hyperlocal.services._shared.errors.TransientStoreError`.
    """

    def __init__(self, *, session_factory: SessionFactory | None = None) -> None:
        self._owns_session = session_factory is not None
        session = session_factory() if session_factory is not None else db.session()
        super().__init__(session=session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # The session begins lazily on first use.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                try:
                    self.commit()
                except OperationalError as commit_exc:
                    self.rollback()
                    raise TransientStoreError() from commit_exc
                except Exception:
                    self.rollback()
                    raise
            else:
                self.rollback()
                if isinstance(exc, OperationalError):
                    log.warning("Transaction aborted by the store: %s", exc.orig)
                    raise TransientStoreError() from exc
        finally:
            if self._owns_session:
                self.session.close()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only Unit of Work.

    This UoW:
    - Sets the isolation level and ``READ ONLY`` mode on dialects that
      support ``SET TRANSACTION`` (PostgreSQL, MySQL/MariaDB).
    - Installs portable write-guards and always rolls back on exit.
    - Disallows ``commit()``.

    Parameters
    ----------
    isolation_level:
        Optional isolation level hint, e.g. ``"READ COMMITTED"``.
    enforce_db_readonly:
        If ``True`` (default), applies ``SET TRANSACTION READ ONLY`` when supported.
    session_factory:
        Optional factory for a private session (closed on exit).

    Notes
    -----
    *SQLite*: ``SET TRANSACTION`` does not exist; write-guards still prevent writes.
    """

    _WRITE_PREFIXES = (
        "insert",
        "update",
        "delete",
        "merge",
        "alter",
        "drop",
        "truncate",
        "create",
        "replace",
        "grant",
        "revoke",
    )
    _SET_TRANSACTION_DIALECTS = ("postgresql", "mysql", "mariadb")
    _ISOLATION_LEVELS = ("READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE", "READ UNCOMMITTED")

    def __init__(
        self,
        *,
        isolation_level: str | None = "READ COMMITTED",
        enforce_db_readonly: bool = True,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self._owns_session = session_factory is not None
        session = session_factory() if session_factory is not None else db.session()
        super().__init__(session=session)
        self.isolation_level = isolation_level
        self.enforce_db_readonly = enforce_db_readonly

        self._conn: Connection | None = None
        self._txn_ctx: SessionTransaction | None = None
        self._listeners_installed = False

    # ----------------------------- Context Manager -----------------------------

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        """Enter a transactional scope that enforces read protections.

        When the session already has a transaction (an outer fixture or an
        earlier autobegin), the scope attaches to it: guards are installed
        but no ``SET TRANSACTION`` directive is issued.
        """
        self._txn_ctx = None
        self._conn = None

        try:
            txn_ctx = self.session.begin()
            txn_ctx.__enter__()
            self._txn_ctx = txn_ctx
        except InvalidRequestError:
            pass

        self._conn = self.session.connection()
        dialect = self._conn.dialect.name

        self._install_listeners()

        if self._txn_ctx is not None and dialect in self._SET_TRANSACTION_DIALECTS:
            try:
                if self.isolation_level:
                    iso = self.isolation_level.upper().strip()
                    if iso not in self._ISOLATION_LEVELS:
                        raise ValueError(f"Unknown isolation level: {self.isolation_level!r}")
                    self.session.execute(text(f"SET TRANSACTION ISOLATION LEVEL {iso}"))
                if self.enforce_db_readonly:
                    self.session.execute(text("SET TRANSACTION READ ONLY"))
            except SQLAlchemyError as exc:
                log.warning("SET TRANSACTION directives failed (%s); guards only.", exc)

        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        """Always remove guards. Roll back only if we own the transaction."""
        try:
            if self._txn_ctx is not None:
                with suppress(SQLAlchemyError):
                    self.session.rollback()
                try:
                    self._txn_ctx.__exit__(exc_type, exc, tb)
                finally:
                    self._txn_ctx = None
        finally:
            self._remove_listeners()
            self._conn = None
            if self._owns_session:
                self.session.close()
        if isinstance(exc, OperationalError):
            raise TransientStoreError() from exc

    # ----------------------------- Public API ---------------------------------

    def commit(self) -> None:
        """
        Disallow commit in read-only Unit of Work.

        :raises RuntimeError: always, to prevent accidental writes.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()

    # ----------------------------- Guards & Listeners --------------------------

    def _install_listeners(self) -> None:
        """Install ORM/db-level listeners to prevent any write attempt."""
        if self._listeners_installed:
            return

        def _before_flush(session, flush_context, instances):
            if session.new or session.dirty or session.deleted:
                raise RuntimeError(
                    "Read-only UnitOfWork: ORM flush blocked (new/dirty/deleted objects present)."
                )

        event.listen(self.session, "before_flush", _before_flush)

        def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            first_token = statement.lstrip().split(None, 1)[0].lower() if statement else ""
            if first_token.startswith(self._WRITE_PREFIXES):
                raise RuntimeError(
                    f"Read-only UnitOfWork: SQL statement blocked: {first_token.upper()}"
                )

        target = self._conn if self._conn is not None else self.session.get_bind()
        event.listen(target, "before_cursor_execute", _before_cursor_execute)

        self._ro__before_flush = _before_flush
        self._ro__before_cursor_execute = _before_cursor_execute
        self._listeners_installed = True

    def _remove_listeners(self) -> None:
        if not self._listeners_installed:
            return

        with suppress(InvalidRequestError):
            event.remove(self.session, "before_flush", self._ro__before_flush)

        with suppress(InvalidRequestError):
            target = self._conn if self._conn is not None else self.session.get_bind()
            event.remove(target, "before_cursor_execute", self._ro__before_cursor_execute)

        self._listeners_installed = False

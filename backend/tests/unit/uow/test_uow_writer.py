"""
Unit tests for SQLAlchemyUnitOfWork (writer), using factories.
"""

from __future__ import annotations

import pytest
from hyperlocal.models import User
from hyperlocal.services._shared.errors import TransientStoreError
from hyperlocal.uow import SQLAlchemyUnitOfWork
from sqlalchemy.exc import OperationalError

from tests.factories.user import UserFactory


class TestSQLAlchemyUnitOfWorkWriter:
    def test_writer_uow_commits_on_success(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN we create a user via repo inside the context and leave without exception
        THEN the transaction is committed and the row is visible afterwards.
        """
        initial = db.session.query(User).count()

        with SQLAlchemyUnitOfWork() as uow:
            uow.users.add(UserFactory.build())

        after = db.session.query(User).count()
        assert after == initial + 1

    def test_writer_uow_rolls_back_on_exception(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN an exception is raised inside the context
        THEN the transaction is rolled back and no rows are persisted.
        """
        initial = db.session.query(User).count()

        with pytest.raises(RuntimeError), SQLAlchemyUnitOfWork() as uow:
            uow.users.add(UserFactory.build())
            raise RuntimeError("boom")

        after = db.session.query(User).count()
        assert after == initial

    def test_rollback_keeps_previously_committed_rows(self, app, db, session):
        """
        GIVEN a user committed before the scope
        WHEN a later scope fails
        THEN only the failed scope's writes disappear.
        """
        existing = UserFactory()

        with pytest.raises(RuntimeError), SQLAlchemyUnitOfWork() as uow:
            uow.users.set_banned(existing.id, True)
            raise RuntimeError("boom")

        assert db.session.get(User, existing.id).is_banned is False

    def test_operational_error_becomes_transient(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN the store raises OperationalError (e.g. lock timeout)
        THEN callers see a retryable TransientStoreError.
        """
        with pytest.raises(TransientStoreError), SQLAlchemyUnitOfWork():
            raise OperationalError("UPDATE posts", {}, Exception("database is locked"))

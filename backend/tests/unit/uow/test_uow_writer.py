"""
Unit tests for SQLAlchemyUnitOfWork (writer), using factories.
"""

from __future__ import annotations

import pytest
from app.models import Account
from app.uow import SQLAlchemyUnitOfWork
from sqlalchemy import func, select
from tests.factories.account import AccountFactory


def _count(db) -> int:
    return db.session.execute(select(func.count(Account.id))).scalar_one()


class TestSQLAlchemyUnitOfWorkWriter:
    def test_writer_uow_commits_on_success(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN an account is added through the repository and the block exits cleanly
        THEN the transaction is committed and the row is visible afterwards.
        """
        initial = _count(db)

        with SQLAlchemyUnitOfWork() as uow:
            uow.accounts.add(AccountFactory.build())

        assert _count(db) == initial + 1

    def test_writer_uow_rolls_back_on_exception(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN an exception is raised inside the context
        THEN the transaction is rolled back and no rows are persisted.
        """
        initial = _count(db)

        with pytest.raises(RuntimeError), SQLAlchemyUnitOfWork() as uow:
            uow.accounts.add(AccountFactory.build())
            raise RuntimeError("boom")

        assert _count(db) == initial

    def test_repositories_share_the_uow_session(self, app, db, session):
        """Every repository and the catalog adapter work on the same session."""
        with SQLAlchemyUnitOfWork() as uow:
            sessions = {
                id(uow.accounts.session),
                id(uow.addresses.session),
                id(uow.carts.session),
                id(uow.orders.session),
                id(uow.products.session),
                id(uow.coupons.session),
            }
        assert len(sessions) == 1

import pytest
from app.models import Account
from app.uow import (
    SQLAlchemyReadOnlyUnitOfWork as ROuow,
)
from app.uow import (
    SQLAlchemyUnitOfWork as RWuow,
)
from sqlalchemy import func, select, text
from tests.factories.account import AccountFactory


class TestSQLAlchemyReadOnlyUnitOfWork:
    def test_blocks_orm_flush_writes(self, app, db, session):
        """
        Flushing ORM changes inside the RO UoW raises.
        """
        with ROuow() as uow, pytest.raises(RuntimeError, match="ORM flush blocked"):
            uow.session.add(AccountFactory.build())
            uow.session.flush()

    def test_blocks_core_dml(self, app, db, session):
        """
        Raw SQL DML is blocked inside the RO UoW.
        """
        with ROuow() as uow, pytest.raises(RuntimeError, match="SQL statement blocked"):
            uow.session.execute(
                text("DELETE FROM accounts WHERE email = :email"), {"email": "x@example.com"}
            )

    def test_allows_reads(self, app, db, session):
        """
        Read operations work normally within the RO UoW.
        """
        with RWuow() as uow:
            uow.session.add(AccountFactory.build())

        with ROuow() as uow:
            count = uow.session.execute(select(func.count(Account.id))).scalar_one()
            assert count >= 1

    def test_disallows_commit(self, app, db, session):
        """
        RO UoW rejects commit().
        """
        with ROuow() as uow, pytest.raises(RuntimeError, match="does not allow commit"):
            uow.commit()

    def test_mutations_do_not_persist(self, app, db, session):
        """
        Attempted modifications are blocked and the stored value is unchanged.
        """
        with RWuow() as uow:
            account = AccountFactory.build()
            uow.accounts.add(account)
            uow.session.flush()
            account_id = account.id

        with ROuow() as uow, pytest.raises(RuntimeError, match="ORM flush blocked"):
            a = uow.session.get(Account, account_id)
            original_email = a.email
            a.email = "mutated-in-ro@example.com"
            uow.session.flush()

        with RWuow() as uow:
            uow.session.expire_all()
            persisted = uow.session.get(Account, account_id)
            assert persisted.email == original_email

"""Order repository with ownership-scoped queries."""

from __future__ import annotations

from typing import cast

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import selectinload

from app.models.order import Order, OrderStatus
from app.repositories.base import BaseRepository, Page, Pagination


class OrderRepository(BaseRepository[Order]):
    """Persistence for :class:`Order`.

    Ownership: an account sees its own orders plus guest orders (no account)
    placed with its email address.
    """

    model = Order

    def _default_eagerload(self, stmt):
        return stmt.options(selectinload(Order.lines), selectinload(Order.notes))

    def _sortable_fields(self):
        return {
            "id": Order.id,
            "created_at": Order.created_at,
            "total": Order.total,
            "status": Order.status,
        }

    @staticmethod
    def _owned_by(account_id: int, email: str):
        return or_(
            Order.account_id == account_id,
            and_(Order.account_id.is_(None), Order.email == email.strip().lower()),
        )

    def get_owned(
        self, order_id: int, account_id: int, email: str, *, for_update: bool = False
    ) -> Order | None:
        """Return the order only when the account owns it.

        :param order_id: Order id.
        :type order_id: int
        :param account_id: Requesting account.
        :type account_id: int
        :param email: Requesting account email (guest-order match).
        :type email: str
        :param for_update: Lock the row.
        :type for_update: bool
        :rtype: Order | None
        """
        stmt = self._default_eagerload(
            select(Order).where(Order.id == order_id, self._owned_by(account_id, email))
        )
        if for_update:
            stmt = stmt.with_for_update()
        return cast(Order | None, self.session.execute(stmt).scalars().first())

    def list_owned(
        self,
        account_id: int,
        email: str,
        pagination: Pagination,
        *,
        status: OrderStatus | None = None,
    ) -> Page[Order]:
        """Newest-first page of orders visible to the account."""
        stmt = select(Order).where(self._owned_by(account_id, email))
        if status is not None:
            stmt = stmt.where(Order.status == status)
        if not pagination.sort:
            pagination.sort = ["-created_at"]
        return self.paginate_stmt(stmt, pagination, newest_first=True)

"""Cart repository: lazy creation and row locking of the active cart."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.models.cart import Cart, CartLine
from app.repositories.base import BaseRepository


class CartRepository(BaseRepository[Cart]):
    """Persistence for :class:`Cart` and its :class:`CartLine` children."""

    model = Cart

    def _default_eagerload(self, stmt):
        return stmt.options(selectinload(Cart.lines))

    def get_for_account(self, account_id: int, *, for_update: bool = False) -> Cart | None:
        """Return the account's cart, optionally locked with ``FOR UPDATE``.

        :param account_id: Owner id.
        :type account_id: int
        :param for_update: Lock the cart row for the rest of the transaction.
        :type for_update: bool
        :rtype: Cart | None
        """
        stmt = self._default_eagerload(select(Cart).where(Cart.account_id == account_id))
        if for_update:
            stmt = stmt.with_for_update()
        return cast(Cart | None, self.session.execute(stmt).scalars().first())

    def get_or_create(self, account_id: int) -> Cart:
        """Return the locked cart of the account, creating it on first use."""
        cart = self.get_for_account(account_id, for_update=True)
        if cart is None:
            cart = self.add(Cart(account_id=account_id, applied_coupons=[]))
        return cart

    def add_line(self, cart: Cart, line: CartLine) -> CartLine:
        line.position = cart.next_position()
        cart.lines.append(line)
        self.flush()
        return line

    def remove_line(self, cart: Cart, line: CartLine) -> None:
        cart.lines.remove(line)  # delete-orphan removes the row
        self.flush()

    def clear(self, cart: Cart) -> int:
        """Delete every line and drop applied coupons; return items removed."""
        removed = cart.item_count
        cart.lines.clear()
        cart.applied_coupons = []
        self.flush()
        return removed

# app/services/orders/service.py
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from app.models.account import Account
from app.models.address import ADDRESS_FIELDS, BILLING, SHIPPING
from app.models.base import as_utc
from app.models.order import Order, OrderLine, OrderStatus
from app.services._shared import cache_keys
from app.services._shared.base import BaseService, ServiceContext
from app.services._shared.dto import PageMeta
from app.services._shared.errors import (
    EmptyCartError,
    InvalidInputError,
    InvalidTransitionError,
    NotCancellableError,
    NotFoundError,
)
from app.services._shared.ports.account_lock import AccountLockManager
from app.services._shared.ports.cache import Cache
from app.services._shared.pricing import ZERO, allocate, coupon_discount, money
from app.services.cart.service import resolve_item
from app.services.orders.dto import (
    CreateOrderIn,
    NoteOut,
    OrderCreated,
    OrderLineOut,
    OrderListOut,
    OrderOut,
    OrderQueryIn,
    StatusOut,
    TrackingOut,
)
from app.uow.sqlalchemy_uow import SQLAlchemyRepositoryContainer

logger = logging.getLogger(__name__)

OrderCreatedHandler = Callable[[OrderCreated], None]

# ----------------------------- State machine ------------------------------- #

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.PROCESSING, OrderStatus.ON_HOLD, OrderStatus.CANCELLED, OrderStatus.FAILED}
    ),
    OrderStatus.ON_HOLD: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset(
        {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.ON_HOLD}
    ),
    OrderStatus.COMPLETED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.FAILED: frozenset({OrderStatus.PENDING, OrderStatus.CANCELLED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

CANCELLABLE = frozenset({OrderStatus.PENDING, OrderStatus.ON_HOLD, OrderStatus.PROCESSING})

REQUIRED_BILLING_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "address_1",
    "city",
    "postcode",
    "country",
)

CREATED_NOTE = "Order created via API"
CANCELLED_NOTE = "Order cancelled by customer via API"


def parse_status(value: str | OrderStatus) -> OrderStatus:
    """
    Accept ``processing``, ``wc-processing`` or an :class:`OrderStatus`.

    :raises InvalidInputError: Unknown status slug.
    """
    if isinstance(value, OrderStatus):
        return value
    slug = (value or "").strip().lower().removeprefix("wc-")
    try:
        return OrderStatus(slug)
    except ValueError:
        raise InvalidInputError(
            f"Invalid order status: {value}", details={"status": ["Unknown order status."]}
        ) from None


def _clean(fields: Mapping[str, Any] | None) -> dict[str, str]:
    """Keep known address fields with a non-blank value, stripped."""
    out: dict[str, str] = {}
    for name in ADDRESS_FIELDS:
        value = (fields or {}).get(name)
        if value is not None and str(value).strip():
            out[name] = str(value).strip()
    return out


def _address(fields: Mapping[str, str]) -> dict[str, str]:
    return {name: fields.get(name, "") for name in ADDRESS_FIELDS}


# ------------------------------- Service ----------------------------------- #


class OrderService(BaseService):
    """
    Order engine: checkout from the cart, customer cancellation, read
    models and operator status transitions.

    Checkout runs under the account lock in a single transaction: stock
    decrements, the order snapshot and the cart clearing commit together or
    not at all.
    """

    def __init__(
        self,
        *,
        cache: Cache | None = None,
        locks: AccountLockManager | None = None,
        lock_timeout: float = 10.0,
        currency: str = "USD",
        on_order_created: Sequence[OrderCreatedHandler] = (),
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx, cache=cache, locks=locks, lock_timeout=lock_timeout)
        self.currency = currency
        self.on_order_created = list(on_order_created)

    # ------------------------------------------------------------------ #
    # Checkout
    # ------------------------------------------------------------------ #

    def create_order(self, account_id: int, dto: CreateOrderIn) -> OrderOut:
        """
        Place an order from the account's cart.

        Steps, in one transaction: lock the cart, re-check every line,
        decrement stock, snapshot lines at their captured prices, apply
        coupons, save the addresses, compute totals, record the order as
        ``pending`` and empty the cart.

        :param account_id: Buyer.
        :param dto: Addresses, payment method and note.
        :returns: The placed order.
        :raises EmptyCartError: Nothing to order.
        :raises InvalidInputError: Required billing fields missing after fallback.
        :raises InsufficientStockError: A line exceeds the remaining stock.
        :raises NotPurchasableError: A line's product can no longer be bought.
        """
        with self.account_lock(account_id), self.rw_uow() as uow:
            account = self._account(uow, account_id)
            cart = uow.carts.get_for_account(account_id, for_update=True)
            if cart is None or cart.is_empty:
                raise EmptyCartError()

            billing, shipping = self._resolve_addresses(uow, account, dto)

            lines: list[OrderLine] = []
            for cart_line in cart.lines:
                item = resolve_item(uow.catalog, cart_line.product_id, cart_line.variation_id)
                uow.catalog.decrement_stock(
                    cart_line.product_id, cart_line.variation_id, cart_line.quantity
                )
                unit_price = money(cart_line.unit_price)
                subtotal = money(unit_price * cart_line.quantity)
                lines.append(
                    OrderLine(
                        product_id=cart_line.product_id,
                        variation_id=cart_line.variation_id,
                        name=item.name,
                        sku=item.sku,
                        quantity=cart_line.quantity,
                        unit_price=unit_price,
                        subtotal=subtotal,
                        total=subtotal,
                        options=dict(cart_line.options or {}),
                    )
                )

            subtotal = money(sum((ln.subtotal for ln in lines), ZERO))
            coupons = [
                c
                for c in (uow.catalog.find_coupon(code) for code in cart.applied_coupons)
                if c is not None and c.is_valid
            ]
            discount = coupon_discount(subtotal, coupons)
            for line, share in zip(lines, allocate([ln.subtotal for ln in lines], discount)):
                line.total = money(line.subtotal - share)

            order = Order(
                account_id=account.id,
                email=billing["email"].lower(),
                status=OrderStatus.PENDING,
                currency=self.currency,
                payment_method=dto.payment_method,
                payment_method_title=dto.payment_method_title
                or dto.payment_method.replace("_", " ").title(),
                billing=_address(billing),
                shipping=_address(shipping),
                coupon_codes=[c.code for c in coupons],
                subtotal=subtotal,
                discount_total=discount,
                tax_total=ZERO,
                shipping_total=ZERO,
                total=money(subtotal - discount),
                customer_note=dto.customer_note or None,
                lines=lines,
            )
            order.add_note(CREATED_NOTE)
            uow.orders.add(order)

            uow.addresses.upsert(account.id, BILLING, billing)
            uow.addresses.upsert(account.id, SHIPPING, shipping)
            uow.carts.clear(cart)
            out = self._order_out(order)

        self.invalidate(
            cache_keys.cart(account_id),
            cache_keys.profile(account_id),
            cache_keys.addresses(account_id),
        )
        self.invalidate_prefix(cache_keys.orders_prefix(account_id))
        logger.info(
            "order.created",
            extra={"account_id": account_id, "order_id": out.id, "total": str(out.total)},
        )
        self.notify(
            self.on_order_created, OrderCreated(account_id=account_id, order=out), name="order_created"
        )
        return out

    def _resolve_addresses(
        self, uow: SQLAlchemyRepositoryContainer, account: Account, dto: CreateOrderIn
    ) -> tuple[dict[str, str], dict[str, str]]:
        saved = {a.type: _clean(a.to_dict()) for a in uow.addresses.list_for(account.id)}

        billing = {**saved.get(BILLING, {}), **_clean(dto.billing)}
        billing.setdefault("email", account.email)
        missing = [name for name in REQUIRED_BILLING_FIELDS if not billing.get(name)]
        if missing:
            raise InvalidInputError(
                "Missing required billing fields",
                details={f"billing_{name}": ["This field is required."] for name in missing},
            )

        shipping = _clean(dto.shipping) or saved.get(SHIPPING) or dict(billing)
        return billing, shipping

    # ------------------------------------------------------------------ #
    # Cancellation / transitions
    # ------------------------------------------------------------------ #

    def cancel_order(self, account_id: int, order_id: int) -> OrderOut:
        """
        Cancel an owned order and put its stock back.

        :raises NotFoundError: Unknown order or not owned by the account.
        :raises NotCancellableError: Status is not pending, on-hold or processing.
        """
        with self.rw_uow() as uow:
            account = self._account(uow, account_id)
            order = uow.orders.get_owned(order_id, account.id, account.email, for_update=True)
            if order is None:
                raise NotFoundError("Order", order_id, detail="Order not found")
            if order.status not in CANCELLABLE:
                raise NotCancellableError(
                    f"Order cannot be cancelled in status '{order.status.value}'"
                )
            self._restock(uow, order)
            order.status = OrderStatus.CANCELLED
            order.add_note(CANCELLED_NOTE, is_customer_note=True)
            uow.orders.flush()
            out = self._order_out(order)

        self._invalidate_order(account_id, order_id)
        logger.info("order.cancelled", extra={"account_id": account_id, "order_id": order_id})
        return out

    def transition(
        self, order_id: int, new_status: str | OrderStatus, note: str | None = None
    ) -> OrderOut:
        """
        Operator status change, checked against :data:`ALLOWED_TRANSITIONS`.

        Moving to ``cancelled`` restores stock; moving to ``completed``
        stamps ``completed_at``.

        :raises NotFoundError: Unknown order.
        :raises InvalidTransitionError: Transition not allowed from the current status.
        """
        target = parse_status(new_status)
        with self.rw_uow() as uow:
            order = uow.orders.get_for_update(order_id)
            if order is None:
                raise NotFoundError("Order", order_id, detail="Order not found")
            current = order.status
            if target not in ALLOWED_TRANSITIONS[current]:
                raise InvalidTransitionError(
                    f"Cannot change order status from '{current.value}' to '{target.value}'"
                )
            if target is OrderStatus.CANCELLED:
                self._restock(uow, order)
            if target is OrderStatus.COMPLETED:
                order.completed_at = datetime.now(UTC)
            order.status = target
            order.add_note(note or f"Order status changed from {current.label} to {target.label}.")
            uow.orders.flush()
            owner = order.account_id
            if owner is None and order.email:
                # Guest orders are listed for the account registered under their email
                match = uow.accounts.get_by_email(order.email)
                owner = match.id if match is not None else None
            out = self._order_out(order)

        if owner is not None:
            self._invalidate_order(owner, order_id)
        logger.info(
            "order.status_changed",
            extra={"order_id": order_id, "from": current.value, "to": target.value},
        )
        return out

    @staticmethod
    def _restock(uow: SQLAlchemyRepositoryContainer, order: Order) -> None:
        for line in order.lines:
            uow.catalog.restore_stock(line.product_id, line.variation_id, line.quantity)

    def _invalidate_order(self, account_id: int, order_id: int) -> None:
        self.invalidate(
            cache_keys.order(account_id, order_id), cache_keys.tracking(account_id, order_id)
        )
        self.invalidate_prefix(cache_keys.orders_prefix(account_id))

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def list_orders(self, account_id: int, query: OrderQueryIn | None = None) -> OrderListOut:
        """Newest-first page of the orders visible to the account."""
        query = query or OrderQueryIn()
        status = parse_status(query.status) if query.status else None
        pagination = self.ensure_pagination(page=query.page, limit=query.per_page)
        with self.ro_uow() as uow:
            account = self._account(uow, account_id)
            page = uow.orders.list_owned(account.id, account.email, pagination, status=status)
            items = [self._order_out(order) for order in page.items]
        return OrderListOut(
            items=items,
            meta=PageMeta(
                page=page.page, per_page=page.limit, total=page.total, total_pages=page.pages
            ),
        )

    def get_order(self, account_id: int, order_id: int) -> OrderOut:
        with self.ro_uow() as uow:
            return self._order_out(self._owned(uow, account_id, order_id))

    def get_tracking(self, account_id: int, order_id: int) -> TrackingOut:
        with self.ro_uow() as uow:
            order = self._owned(uow, account_id, order_id)
            return TrackingOut(
                order_id=order.id,
                status=order.status.value,
                status_label=order.status.label,
                created_at=as_utc(order.created_at),
                updated_at=as_utc(order.updated_at),
                completed_at=as_utc(order.completed_at),
                tracking_number=order.tracking_number,
                tracking_provider=order.tracking_provider,
                tracking_link=order.tracking_link,
                notes=[
                    NoteOut(id=n.id, content=n.content, created_at=as_utc(n.created_at))
                    for n in order.notes
                    if n.is_customer_note
                ],
            )

    @staticmethod
    def list_statuses() -> list[StatusOut]:
        return [
            StatusOut(key=f"wc-{status.value}", slug=status.value, label=status.label)
            for status in OrderStatus
        ]

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _account(uow: SQLAlchemyRepositoryContainer, account_id: int) -> Account:
        account = uow.accounts.get(account_id)
        if account is None:
            raise NotFoundError("Account", account_id)
        return account

    def _owned(self, uow: SQLAlchemyRepositoryContainer, account_id: int, order_id: int) -> Order:
        account = self._account(uow, account_id)
        order = uow.orders.get_owned(order_id, account.id, account.email)
        if order is None:
            raise NotFoundError("Order", order_id, detail="Order not found")
        return order

    @staticmethod
    def _order_out(order: Order) -> OrderOut:
        return OrderOut(
            id=order.id,
            status=order.status.value,
            status_label=order.status.label,
            email=order.email,
            currency=order.currency,
            payment_method=order.payment_method,
            payment_method_title=order.payment_method_title,
            billing=dict(order.billing or {}),
            shipping=dict(order.shipping or {}),
            coupon_codes=list(order.coupon_codes or []),
            subtotal=money(order.subtotal),
            discount_total=money(order.discount_total),
            tax_total=money(order.tax_total),
            shipping_total=money(order.shipping_total),
            total=money(order.total),
            customer_note=order.customer_note,
            created_at=as_utc(order.created_at),
            updated_at=as_utc(order.updated_at),
            completed_at=as_utc(order.completed_at),
            items=[
                OrderLineOut(
                    id=line.id,
                    product_id=line.product_id,
                    variation_id=line.variation_id,
                    name=line.name,
                    sku=line.sku,
                    quantity=line.quantity,
                    price=money(line.unit_price),
                    subtotal=money(line.subtotal),
                    total=money(line.total),
                    options=dict(line.options or {}),
                )
                for line in order.lines
            ],
        )

# app/services/cart/service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from app.models.cart import Cart, CartLine
from app.services._shared import cache_keys
from app.services._shared.base import BaseService, ServiceContext
from app.services._shared.errors import (
    InsufficientStockError,
    InvalidCouponError,
    InvalidInputError,
    InvalidVariationError,
    NotFoundError,
    NotPurchasableError,
    VariationRequiredError,
)
from app.services._shared.ports.account_lock import AccountLockManager
from app.services._shared.ports.cache import Cache
from app.services._shared.ports.catalog import (
    OUT_OF_STOCK,
    Catalog,
    ProductView,
    StockLevel,
    VariationView,
)
from app.services._shared.pricing import ZERO, coupon_discount, line_key, money
from app.services.cart.dto import (
    AddItemIn,
    CartCountOut,
    CartLineOut,
    CartOut,
    CartTotalsOut,
    LineItemOut,
    RemovedLineOut,
)

logger = logging.getLogger(__name__)


# ----------------------------- Catalog lookup ------------------------------ #


@dataclass(frozen=True, slots=True)
class ResolvedItem:
    """Catalog state of one (product, variation) selection."""

    product: ProductView
    variation: VariationView | None
    stock: StockLevel

    @property
    def price(self) -> Decimal | None:
        if self.variation is not None and self.variation.price is not None:
            return self.variation.price
        return self.product.price

    @property
    def sku(self) -> str | None:
        if self.variation is not None and self.variation.sku:
            return self.variation.sku
        return self.product.sku

    @property
    def name(self) -> str:
        if self.variation is None or not self.variation.attributes:
            return self.product.name
        values = ", ".join(str(v) for v in self.variation.attributes.values())
        return f"{self.product.name} - {values}"


def resolve_item(catalog: Catalog, product_id: int, variation_id: int | None) -> ResolvedItem:
    """
    Load and check a selection for purchase.

    :raises NotFoundError: Unknown product.
    :raises NotPurchasableError: Not published, no price, or out of stock.
    :raises VariationRequiredError: Variable product without a variation.
    :raises InvalidVariationError: Variation does not belong to the product.
    """
    product = catalog.get_product(product_id)
    if product is None:
        raise NotFoundError("Product", product_id, detail="Product not found")
    if not product.purchasable:
        raise NotPurchasableError()

    variation = None
    if product.is_variable and not variation_id:
        raise VariationRequiredError()
    if variation_id:
        variation = catalog.get_variation(product_id, variation_id)
        if variation is None:
            raise InvalidVariationError()

    stock = variation.stock if variation is not None and variation.stock else product.stock
    if not stock.in_stock:
        raise NotPurchasableError("Product is out of stock")

    item = ResolvedItem(product=product, variation=variation, stock=stock)
    if item.price is None:
        raise NotPurchasableError()
    return item


def ensure_stock(catalog: Catalog, product_id: int, variation_id: int | None, quantity: int) -> None:
    """:raises InsufficientStockError: ``quantity`` exceeds sellable stock."""
    check = catalog.check_stock(product_id, variation_id, quantity)
    if not check.ok:
        raise InsufficientStockError(check.available or 0, product_id=product_id)


# ------------------------------- Service ----------------------------------- #


class CartService(BaseService):
    """
    Cart manager of an account.

    Every mutation runs under the account lock, inside one read-write unit of
    work with the cart row locked, and drops the cached cart payload.
    Totals are recomputed from live catalog prices on each read; the price
    captured on a line is what an order will charge.
    """

    def __init__(
        self,
        *,
        cache: Cache | None = None,
        locks: AccountLockManager | None = None,
        lock_timeout: float = 10.0,
        currency: str = "USD",
        currency_symbol: str = "$",
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx, cache=cache, locks=locks, lock_timeout=lock_timeout)
        self.currency = currency
        self.currency_symbol = currency_symbol

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get_cart(self, account_id: int) -> CartOut:
        with self.ro_uow() as uow:
            cart = uow.carts.get_for_account(account_id)
            return self._cart_out(uow.catalog, cart)

    def count(self, account_id: int) -> CartCountOut:
        cart = self.get_cart(account_id)
        return CartCountOut(count=cart.item_count, total=cart.totals.total)

    # ------------------------------------------------------------------ #
    # Line mutations
    # ------------------------------------------------------------------ #

    def add_item(self, account_id: int, dto: AddItemIn) -> LineItemOut:
        """
        Add a selection, merging it into an identical line when present.

        :raises InvalidInputError: ``quantity`` below 1.
        :raises InsufficientStockError: Merged quantity exceeds managed stock.
        """
        if dto.quantity < 1:
            raise InvalidInputError(
                "Quantity must be at least 1", details={"quantity": ["Must be at least 1."]}
            )
        variation_id = dto.variation_id or None
        key = line_key(dto.product_id, variation_id, dto.options)

        with self.account_lock(account_id), self.rw_uow() as uow:
            item = resolve_item(uow.catalog, dto.product_id, variation_id)
            cart = uow.carts.get_or_create(account_id)
            line = cart.line(key)
            merged = line is not None
            quantity = dto.quantity + (line.quantity if line is not None else 0)
            ensure_stock(uow.catalog, dto.product_id, variation_id, quantity)

            if line is not None:
                line.quantity = quantity
                line.unit_price = money(item.price)
                uow.carts.flush()
            else:
                uow.carts.add_line(
                    cart,
                    CartLine(
                        line_key=key,
                        product_id=dto.product_id,
                        variation_id=variation_id,
                        options=dict(dto.options),
                        quantity=quantity,
                        unit_price=money(item.price),
                    ),
                )
            cart_out = self._cart_out(uow.catalog, cart)

        self._changed(account_id, "cart.item_added", key=key, quantity=quantity)
        line_out = next(ln for ln in cart_out.items if ln.key == key)
        return LineItemOut(line=line_out, merged=merged, cart=cart_out)

    def update_quantity(self, account_id: int, key: str, quantity: int) -> CartOut:
        """
        Set the quantity of a line; ``quantity <= 0`` removes it.

        :raises NotFoundError: Unknown key (``available_keys`` in details).
        :raises InsufficientStockError: ``quantity`` exceeds managed stock.
        """
        with self.account_lock(account_id), self.rw_uow() as uow:
            cart = uow.carts.get_for_account(account_id, for_update=True)
            line = self._line(cart, key)
            if quantity <= 0:
                uow.carts.remove_line(cart, line)
            else:
                ensure_stock(uow.catalog, line.product_id, line.variation_id, quantity)
                line.quantity = quantity
                line.unit_price = self._live_price(uow.catalog, line)
                uow.carts.flush()
            cart_out = self._cart_out(uow.catalog, cart)

        self._changed(account_id, "cart.item_updated", key=key, quantity=max(quantity, 0))
        return cart_out

    def remove_item(self, account_id: int, key: str) -> RemovedLineOut:
        """:raises NotFoundError: Unknown key."""
        with self.account_lock(account_id), self.rw_uow() as uow:
            cart = uow.carts.get_for_account(account_id, for_update=True)
            line = self._line(cart, key)
            previous = cart.item_count
            removed = self._line_out(uow.catalog, line)
            uow.carts.remove_line(cart, line)
            cart_out = self._cart_out(uow.catalog, cart)

        self._changed(account_id, "cart.item_removed", key=key)
        return RemovedLineOut(
            removed=removed,
            previous_count=previous,
            current_count=cart_out.item_count,
            remaining_keys=[ln.key for ln in cart_out.items],
            cart=cart_out,
        )

    def clear(self, account_id: int) -> int:
        """Empty the cart and drop its coupons; return the number of items removed."""
        with self.account_lock(account_id), self.rw_uow() as uow:
            cart = uow.carts.get_for_account(account_id, for_update=True)
            removed = uow.carts.clear(cart) if cart is not None else 0

        self._changed(account_id, "cart.cleared", removed=removed)
        return removed

    # ------------------------------------------------------------------ #
    # Coupons
    # ------------------------------------------------------------------ #

    def apply_coupon(self, account_id: int, code: str) -> CartOut:
        """
        Apply a coupon code to the cart.

        :raises InvalidInputError: Empty code.
        :raises InvalidCouponError: Unknown, inactive, expired or already applied.
        """
        code = (code or "").strip().lower()
        if not code:
            raise InvalidInputError(
                "Coupon code is required", details={"coupon_code": ["Missing data for required field."]}
            )
        with self.account_lock(account_id), self.rw_uow() as uow:
            coupon = uow.catalog.find_coupon(code)
            if coupon is None or not coupon.is_valid:
                raise InvalidCouponError()
            cart = uow.carts.get_or_create(account_id)
            if coupon.code in cart.applied_coupons:
                raise InvalidCouponError("Coupon already applied")
            cart.applied_coupons = [*cart.applied_coupons, coupon.code]
            uow.carts.flush()
            cart_out = self._cart_out(uow.catalog, cart)

        self._changed(account_id, "cart.coupon_applied", coupon=code)
        return cart_out

    def remove_coupon(self, account_id: int, code: str) -> CartOut:
        """Remove a coupon code; removing an absent code is not an error."""
        code = (code or "").strip().lower()
        with self.account_lock(account_id), self.rw_uow() as uow:
            cart = uow.carts.get_for_account(account_id, for_update=True)
            if cart is not None and code in cart.applied_coupons:
                cart.applied_coupons = [c for c in cart.applied_coupons if c != code]
                uow.carts.flush()
            cart_out = self._cart_out(uow.catalog, cart)

        self._changed(account_id, "cart.coupon_removed", coupon=code)
        return cart_out

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _changed(self, account_id: int, event: str, **extra: Any) -> None:
        self.invalidate(cache_keys.cart(account_id))
        logger.info(event, extra={"account_id": account_id, **extra})

    @staticmethod
    def _line(cart: Cart | None, key: str) -> CartLine:
        line = cart.line(key) if cart is not None else None
        if line is None:
            keys = [ln.line_key for ln in cart.lines] if cart is not None else []
            raise NotFoundError(
                "Cart item", key, detail="Cart item not found", extra={"available_keys": keys}
            )
        return line

    @staticmethod
    def _live_price(catalog: Catalog, line: CartLine) -> Decimal:
        product = catalog.get_product(line.product_id)
        if product is None:
            return money(line.unit_price)
        price = product.price
        if line.variation_id:
            variation = catalog.get_variation(line.product_id, line.variation_id)
            if variation is not None and variation.price is not None:
                price = variation.price
        return money(price if price is not None else line.unit_price)

    def _line_out(self, catalog: Catalog, line: CartLine) -> CartLineOut:
        product = catalog.get_product(line.product_id)
        variation = (
            catalog.get_variation(line.product_id, line.variation_id)
            if product is not None and line.variation_id
            else None
        )
        captured = money(line.unit_price)
        if product is None:
            # Product vanished from the catalog; keep the captured data.
            return CartLineOut(
                key=line.line_key,
                product_id=line.product_id,
                variation_id=line.variation_id,
                name="",
                sku=None,
                quantity=line.quantity,
                price=captured,
                current_price=captured,
                line_subtotal=money(captured * line.quantity),
                options=dict(line.options or {}),
                stock_status=OUT_OF_STOCK,
                stock_quantity=None,
                backorders_allowed=False,
                in_stock=False,
            )

        stock = variation.stock if variation is not None and variation.stock else product.stock
        item = ResolvedItem(product=product, variation=variation, stock=stock)
        current = money(item.price) if item.price is not None else captured
        return CartLineOut(
            key=line.line_key,
            product_id=line.product_id,
            variation_id=line.variation_id,
            name=item.name,
            sku=item.sku,
            quantity=line.quantity,
            price=captured,
            current_price=current,
            line_subtotal=money(current * line.quantity),
            options=dict(line.options or {}),
            stock_status=stock.status,
            stock_quantity=stock.quantity if stock.managed else None,
            backorders_allowed=stock.backorders_allowed,
            in_stock=stock.in_stock,
        )

    def _cart_out(self, catalog: Catalog, cart: Cart | None) -> CartOut:
        if cart is None or cart.is_empty:
            return CartOut(
                items=[],
                totals=CartTotalsOut(currency=self.currency, currency_symbol=self.currency_symbol),
                applied_coupons=list(cart.applied_coupons) if cart is not None else [],
            )

        items = [self._line_out(catalog, line) for line in cart.lines]
        subtotal = money(sum((ln.line_subtotal for ln in items), ZERO))
        coupons = [c for c in (catalog.find_coupon(code) for code in cart.applied_coupons) if c]
        discount = coupon_discount(subtotal, coupons)
        totals = CartTotalsOut(
            subtotal=subtotal,
            discount_total=discount,
            total=money(subtotal - discount),
            currency=self.currency,
            currency_symbol=self.currency_symbol,
        )
        return CartOut(
            items=items,
            totals=totals,
            applied_coupons=list(cart.applied_coupons),
            needs_shipping=self._needs_shipping(catalog, cart.lines),
        )

    @staticmethod
    def _needs_shipping(catalog: Catalog, lines: list[CartLine]) -> bool:
        for line in lines:
            product = catalog.get_product(line.product_id)
            if product is None or not product.is_virtual:
                return True
        return False

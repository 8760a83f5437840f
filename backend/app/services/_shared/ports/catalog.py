"""
Catalog / inventory port.

The product catalog is owned by an external system; the cart and order
services only see these read-models and the stock mutation contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Protocol

PUBLISHED = "publish"
OUT_OF_STOCK = "outofstock"


@dataclass(frozen=True, slots=True)
class StockLevel:
    """
    Effective stock for a purchasable unit.

    :ivar managed: Whether quantities are tracked at all.
    :ivar quantity: Units on hand when ``managed``.
    :ivar backorders_allowed: Whether overselling is permitted.
    :ivar status: ``instock`` | ``outofstock`` | ``onbackorder``.
    """

    managed: bool
    quantity: int | None
    backorders_allowed: bool
    status: str

    @property
    def available(self) -> int | None:
        """Sellable units, or ``None`` when unlimited."""
        if not self.managed or self.backorders_allowed:
            return None
        return max(0, int(self.quantity or 0))

    @property
    def in_stock(self) -> bool:
        if self.status == OUT_OF_STOCK and not self.backorders_allowed:
            return False
        available = self.available
        return available is None or available > 0


@dataclass(frozen=True, slots=True)
class ProductView:
    id: int
    name: str
    sku: str | None
    type: str
    status: str
    price: Decimal | None
    regular_price: Decimal | None
    sale_price: Decimal | None
    is_virtual: bool
    stock: StockLevel

    @property
    def is_variable(self) -> bool:
        return self.type == "variable"

    @property
    def purchasable(self) -> bool:
        return self.status == PUBLISHED and self.price is not None


@dataclass(frozen=True, slots=True)
class VariationView:
    id: int
    product_id: int
    sku: str | None
    price: Decimal | None
    attributes: dict[str, Any] = field(default_factory=dict)
    stock: StockLevel | None = None  # None -> parent product stock applies


@dataclass(frozen=True, slots=True)
class StockCheck:
    ok: bool
    available: int | None


@dataclass(frozen=True, slots=True)
class CouponView:
    code: str
    discount_type: str  # percent | fixed_cart
    amount: Decimal
    is_valid: bool


class Catalog(Protocol):
    """
    Read products/coupons and move stock.

    Stock mutations MUST participate in the caller's transaction so that an
    order placement either commits every decrement or none of them.
    """

    def get_product(self, product_id: int) -> ProductView | None: ...

    def get_variation(self, product_id: int, variation_id: int) -> VariationView | None:
        """Return the variation only when it belongs to ``product_id``."""

    def check_stock(self, product_id: int, variation_id: int | None, quantity: int) -> StockCheck: ...

    def decrement_stock(self, product_id: int, variation_id: int | None, quantity: int) -> None:
        """Reduce managed stock; raise ``InsufficientStockError`` when short."""

    def restore_stock(self, product_id: int, variation_id: int | None, quantity: int) -> None: ...

    def find_coupon(self, code: str) -> CouponView | None: ...

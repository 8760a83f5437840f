# comments in English; reST docstrings
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from app.models.catalog import Product, ProductVariation, StockFieldsMixin
from app.repositories.catalog import CouponRepository, ProductRepository
from app.services._shared.errors import InsufficientStockError
from app.services._shared.ports.catalog import (
    Catalog,
    CouponView,
    ProductView,
    StockCheck,
    StockLevel,
    VariationView,
)


def _level(holder: StockFieldsMixin) -> StockLevel:
    return StockLevel(
        managed=bool(holder.manage_stock),
        quantity=holder.stock_quantity,
        backorders_allowed=bool(holder.backorders_allowed),
        status=holder.stock_status,
    )


@dataclass(slots=True)
class SQLAlchemyCatalog(Catalog):
    """
    Catalog port backed by the ``products`` / ``product_variations`` /
    ``coupons`` tables.

    It runs on the Unit-of-Work session, so stock decrements commit or roll
    back together with the order that caused them.

    The stock *holder* of a line is the variation when the variation manages
    its own stock, otherwise the parent product.

    :param session: Session of the calling Unit of Work.
    """

    session: Session
    products: ProductRepository = field(init=False)
    coupons: CouponRepository = field(init=False)

    def __post_init__(self) -> None:
        self.products = ProductRepository(session=self.session)
        self.coupons = CouponRepository(session=self.session)

    # -------------------- reads --------------------

    def get_product(self, product_id: int) -> ProductView | None:
        product = self.products.get(product_id)
        if product is None:
            return None
        return ProductView(
            id=product.id,
            name=product.name,
            sku=product.sku,
            type=product.type,
            status=product.status,
            price=product.price,
            regular_price=product.regular_price,
            sale_price=product.sale_price,
            is_virtual=bool(product.is_virtual),
            stock=_level(product),
        )

    def get_variation(self, product_id: int, variation_id: int) -> VariationView | None:
        variation = self.products.get_variation(product_id, variation_id)
        if variation is None:
            return None
        return VariationView(
            id=variation.id,
            product_id=variation.product_id,
            sku=variation.sku,
            price=variation.price,
            attributes=dict(variation.attributes or {}),
            stock=_level(variation) if variation.manage_stock else None,
        )

    def check_stock(self, product_id: int, variation_id: int | None, quantity: int) -> StockCheck:
        holder = self._holder(product_id, variation_id)
        if holder is None:
            return StockCheck(ok=False, available=0)
        level = _level(holder)
        available = level.available
        if not level.in_stock:
            return StockCheck(ok=False, available=0 if available is None else available)
        return StockCheck(ok=available is None or quantity <= available, available=available)

    def find_coupon(self, code: str) -> CouponView | None:
        coupon = self.coupons.get_by_code(code)
        if coupon is None:
            return None
        return CouponView(
            code=coupon.code,
            discount_type=coupon.discount_type,
            amount=coupon.amount,
            is_valid=coupon.is_valid_at(datetime.now(UTC)),
        )

    # -------------------- stock mutations --------------------

    def decrement_stock(self, product_id: int, variation_id: int | None, quantity: int) -> None:
        """
        Take ``quantity`` units from the holder's managed stock.

        :raises InsufficientStockError: When stock is managed, backorders are
            off and fewer than ``quantity`` units remain.
        """
        holder = self._holder(product_id, variation_id, for_update=True)
        if holder is None or not holder.manage_stock:
            return
        on_hand = int(holder.stock_quantity or 0)
        if not holder.backorders_allowed and quantity > on_hand:
            raise InsufficientStockError(on_hand, product_id=product_id)
        holder.stock_quantity = on_hand - quantity
        holder.sync_stock_status()
        self.session.flush()

    def restore_stock(self, product_id: int, variation_id: int | None, quantity: int) -> None:
        holder = self._holder(product_id, variation_id, for_update=True)
        if holder is None or not holder.manage_stock:
            return
        holder.stock_quantity = int(holder.stock_quantity or 0) + quantity
        holder.sync_stock_status()
        self.session.flush()

    # -------------------- helpers --------------------

    def _holder(
        self, product_id: int, variation_id: int | None, *, for_update: bool = False
    ) -> Product | ProductVariation | None:
        if variation_id:
            variation = (
                self.products.get_variation_for_update(product_id, variation_id)
                if for_update
                else self.products.get_variation(product_id, variation_id)
            )
            if variation is not None and variation.manage_stock:
                return variation
        if for_update:
            return self.products.get_for_update(product_id)
        return self.products.get(product_id)

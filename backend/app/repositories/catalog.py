"""Repositories for the catalog tables (products, variations, coupons)."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from app.models.catalog import Coupon, Product, ProductVariation
from app.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    model = Product

    def get_variation(self, product_id: int, variation_id: int) -> ProductVariation | None:
        """Return the variation only when it belongs to ``product_id``."""
        stmt = select(ProductVariation).where(
            ProductVariation.id == variation_id,
            ProductVariation.product_id == product_id,
        )
        return cast(ProductVariation | None, self.session.execute(stmt).scalars().first())

    def get_variation_for_update(
        self, product_id: int, variation_id: int
    ) -> ProductVariation | None:
        stmt = (
            select(ProductVariation)
            .where(
                ProductVariation.id == variation_id,
                ProductVariation.product_id == product_id,
            )
            .with_for_update()
        )
        return cast(ProductVariation | None, self.session.execute(stmt).scalars().first())

    def get_by_sku(self, sku: str) -> Product | None:
        stmt = select(Product).where(Product.sku == sku)
        return cast(Product | None, self.session.execute(stmt).scalars().first())


class CouponRepository(BaseRepository[Coupon]):
    model = Coupon

    def get_by_code(self, code: str) -> Coupon | None:
        stmt = select(Coupon).where(Coupon.code == code.strip().lower())
        return cast(Coupon | None, self.session.execute(stmt).scalars().first())

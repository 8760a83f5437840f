from app.models.account import Account
from app.models.address import ADDRESS_FIELDS, ADDRESS_TYPES, Address
from app.models.cart import Cart, CartLine
from app.models.catalog import Coupon, Product, ProductVariation
from app.models.order import Order, OrderLine, OrderNote, OrderStatus

__all__ = [
    "ADDRESS_FIELDS",
    "ADDRESS_TYPES",
    "Account",
    "Address",
    "Cart",
    "CartLine",
    "Coupon",
    "Order",
    "OrderLine",
    "OrderNote",
    "OrderStatus",
    "Product",
    "ProductVariation",
]

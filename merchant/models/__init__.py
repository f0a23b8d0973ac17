# Merchant Models

from .product import Product, ProductListResponse
from .cart import RemoteCart, AddToCartRequest, UpdateCartItemRequest, CartResponse
from .order import DiscountCode, ValidateDiscountRequest, AuthorizePaymentRequest

__all__ = [
    "Product",
    "ProductListResponse",
    "RemoteCart",
    "AddToCartRequest",
    "UpdateCartItemRequest",
    "CartResponse",
    "DiscountCode",
    "ValidateDiscountRequest",
    "AuthorizePaymentRequest",
]

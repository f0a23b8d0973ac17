# Database modules

from .products import product_db, ProductDatabase
from .carts import cart_db, CartDatabase
from .orders import order_db, return_db, OrderDatabase, ReturnDatabase
from .discounts import discount_db, DiscountDatabase, DiscountRejected

__all__ = [
    "product_db",
    "ProductDatabase",
    "cart_db",
    "CartDatabase",
    "order_db",
    "return_db",
    "OrderDatabase",
    "ReturnDatabase",
    "discount_db",
    "DiscountDatabase",
    "DiscountRejected",
]

# API Routes

from .products import router as products_router
from .cart import router as cart_router
from .orders import router as orders_router
from .discounts import router as discounts_router
from .payments import router as payments_router

__all__ = [
    "products_router",
    "cart_router",
    "orders_router",
    "discounts_router",
    "payments_router",
]

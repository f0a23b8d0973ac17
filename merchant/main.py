"""
Merchant Application

Backend the storefront and POS engine talk to: per-user carts, product
stock, promo code validation, orders, returns and a mock payment terminal.
"""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from .routes import (
    products_router,
    cart_router,
    orders_router,
    discounts_router,
    payments_router,
)

# Load environment variables
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "config", ".env"))

# Configure logging
logging.basicConfig(
    level=os.getenv("MERCHANT_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Merchant starting up...")
    logger.info(f"Card limit: {os.getenv('MERCHANT_CARD_LIMIT', 'default')}")
    yield
    logger.info("Merchant shutting down...")


# Create FastAPI app
app = FastAPI(
    title="Merchant",
    description="Remote carts, orders and returns for the storefront and POS",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("MERCHANT_CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(products_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(discounts_router)
app.include_router(payments_router)


@app.get("/")
async def home():
    """API index"""
    return {
        "message": "Merchant API",
        "docs": "/docs",
        "endpoints": {
            "products": "/api/products",
            "cart": "/api/cart/{identity}",
            "orders": "/api/orders",
            "returns": "/api/returns",
            "discounts": "/api/discounts/validate",
            "payments": "/api/payments/authorize",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "merchant"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "merchant.main:app",
        host=os.getenv("MERCHANT_HOST", "0.0.0.0"),
        port=int(os.getenv("MERCHANT_PORT", "8001")),
        reload=True,
    )

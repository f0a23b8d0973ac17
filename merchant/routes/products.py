"""Product API routes for merchant service"""

from fastapi import APIRouter, HTTPException

from ..database.products import product_db
from ..models.product import Product, ProductListResponse

router = APIRouter(prefix="/api/products", tags=["Products"])


@router.get("", response_model=ProductListResponse)
async def list_products():
    """List the catalog with current stock"""
    products = product_db.get_all_products()
    return ProductListResponse(products=products, total=len(products))


@router.get("/{product_id}", response_model=Product)
async def get_product(product_id: str):
    """Get product details"""
    product = product_db.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product

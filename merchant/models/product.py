"""Product models for merchant service"""

from typing import Optional

from pydantic import BaseModel

from storecore.models import ProductSnapshot


class Product(ProductSnapshot):
    """Product in the catalog"""
    sku: str
    description: str = ""
    image_url: Optional[str] = None

    class Config:
        from_attributes = True

    @property
    def in_stock(self) -> bool:
        return self.stock_quantity > 0

    def snapshot(self) -> ProductSnapshot:
        """Fields a cart line carries"""
        return ProductSnapshot.model_validate(self.model_dump(include=set(ProductSnapshot.model_fields)))


class ProductListResponse(BaseModel):
    """Response from product listing"""
    products: list[Product]
    total: int

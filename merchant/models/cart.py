"""Cart models for merchant service"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from storecore.models import LineItem


class RemoteCart(BaseModel):
    """Shopping cart belonging to one user"""
    identity: str
    items: list[LineItem] = []
    created_at: datetime
    updated_at: datetime


class AddToCartRequest(BaseModel):
    """Request to add item to cart"""
    product_id: str
    quantity: int = Field(default=1, gt=0)


class UpdateCartItemRequest(BaseModel):
    """Request to update cart item quantity"""
    quantity: int = Field(gt=0)


class CartResponse(BaseModel):
    """Cart API response"""
    items: list[LineItem]
    message: Optional[str] = None

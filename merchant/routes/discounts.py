"""Promo code API routes for merchant service"""

from fastapi import APIRouter, HTTPException

from storecore.models import DiscountDescriptor

from ..database.discounts import DiscountRejected, discount_db
from ..models.order import ValidateDiscountRequest

router = APIRouter(prefix="/api/discounts", tags=["Discounts"])


@router.post("/validate", response_model=DiscountDescriptor)
async def validate_discount(request: ValidateDiscountRequest):
    """Validate a promo code against a subtotal"""
    try:
        return discount_db.validate(request.code, request.subtotal)
    except DiscountRejected as e:
        raise HTTPException(status_code=400, detail=str(e))

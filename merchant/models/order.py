"""Order, discount and payment models for merchant service"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from storecore.models import DiscountType, PaymentMethod


class DiscountCode(BaseModel):
    """Promo code definition"""
    code: str
    type: DiscountType
    value: Decimal = Field(ge=0)
    min_purchase: Decimal = Decimal("0")
    max_uses: Optional[int] = None
    used_count: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: bool = True


class ValidateDiscountRequest(BaseModel):
    """Request to validate a promo code against a subtotal"""
    code: str
    subtotal: Decimal = Field(ge=0)


class AuthorizePaymentRequest(BaseModel):
    """Request to authorize a card or e-wallet payment"""
    amount: Decimal = Field(gt=0)
    method: PaymentMethod

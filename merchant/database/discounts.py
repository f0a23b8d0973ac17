"""Promo code storage for merchant service"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from storecore.models import DiscountDescriptor, DiscountType

from ..models.order import DiscountCode

# Seed promo codes
DISCOUNTS: dict[str, DiscountCode] = {
    "WELCOME10": DiscountCode(code="WELCOME10", type=DiscountType.PERCENTAGE, value=Decimal("10")),
    "SAVE500": DiscountCode(
        code="SAVE500",
        type=DiscountType.FIXED,
        value=Decimal("500"),
        min_purchase=Decimal("3000"),
    ),
    "ONETIME": DiscountCode(code="ONETIME", type=DiscountType.FIXED, value=Decimal("200"), max_uses=1),
    "EXPIRED": DiscountCode(
        code="EXPIRED",
        type=DiscountType.PERCENTAGE,
        value=Decimal("20"),
        end_date=datetime(2020, 1, 1),
    ),
}


class DiscountRejected(Exception):
    """Promo code cannot be applied"""
    pass


class DiscountDatabase:
    """In-memory promo code storage"""

    def __init__(self):
        self.discounts = {code: discount.model_copy() for code, discount in DISCOUNTS.items()}

    def get_discount(self, code: str) -> Optional[DiscountCode]:
        return self.discounts.get(code.strip().upper())

    def validate(self, code: str, subtotal: Decimal, now: Optional[datetime] = None) -> DiscountDescriptor:
        """
        Check a code against a subtotal.

        Raises:
            DiscountRejected: not found, inactive, outside its dates,
                used up, or minimum purchase not met
        """
        now = now or datetime.utcnow()
        discount = self.get_discount(code)

        if not discount or not discount.is_active:
            raise DiscountRejected("Invalid discount code")
        if discount.start_date and now < discount.start_date:
            raise DiscountRejected("Discount code is not active yet")
        if discount.end_date and now > discount.end_date:
            raise DiscountRejected("Discount code has expired")
        if discount.max_uses is not None and discount.used_count >= discount.max_uses:
            raise DiscountRejected("Discount code usage limit reached")
        if subtotal < discount.min_purchase:
            raise DiscountRejected(f"Minimum purchase of {discount.min_purchase} required")

        return DiscountDescriptor(code=discount.code, type=discount.type, value=discount.value)

    def redeem(self, code: str) -> None:
        """Count one use of a code"""
        discount = self.get_discount(code)
        if discount:
            discount.used_count += 1

    def reset(self) -> None:
        self.discounts = {code: discount.model_copy() for code, discount in DISCOUNTS.items()}


# Singleton instance
discount_db = DiscountDatabase()

"""Discount Resolver"""

import logging
from decimal import Decimal

from .errors import GatewayError, InvalidCodeError
from .models import DiscountDescriptor

logger = logging.getLogger(__name__)


class DiscountResolver:
    """
    Validates promo codes through the merchant collaborator.

    Makes exactly one outbound call per resolution and never retries.
    """

    def __init__(self, gateway):
        self.gateway = gateway

    async def resolve(self, code: str, subtotal: Decimal) -> DiscountDescriptor:
        """
        Resolve `code` against `subtotal`.

        Raises:
            InvalidCodeError: code is blank, rejected, or could not be validated
        """
        code = (code or "").strip()
        if not code:
            raise InvalidCodeError("Enter a discount code")

        try:
            discount = await self.gateway.validate_discount_code(code, subtotal)
        except GatewayError as e:
            logger.warning(f"Discount validation for {code} failed: {e.message}")
            raise InvalidCodeError(f"Could not validate code {code}") from e

        logger.debug(f"Discount {discount.code} resolved: {discount.type.value} {discount.value}")
        return discount

"""Payment terminal API routes for merchant service"""

import os
import uuid
from decimal import Decimal

from fastapi import APIRouter

from storecore.models import PaymentAuthorization

from ..models.order import AuthorizePaymentRequest

router = APIRouter(prefix="/api/payments", tags=["Payments"])

# Mock card limit: larger amounts are declined
DEFAULT_CARD_LIMIT = Decimal("100000")


@router.post("/authorize", response_model=PaymentAuthorization)
async def authorize_payment(request: AuthorizePaymentRequest):
    """
    Authorize a card or e-wallet payment.

    Mock terminal: approves amounts up to MERCHANT_CARD_LIMIT.
    """
    limit = Decimal(os.getenv("MERCHANT_CARD_LIMIT", str(DEFAULT_CARD_LIMIT)))
    if request.amount > limit:
        return PaymentAuthorization(approved=False, message="Card declined: amount over limit")

    return PaymentAuthorization(
        approved=True,
        reference=f"AUTH-{uuid.uuid4().hex[:10].upper()}",
    )

"""Checkout Orchestrator"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from . import pricing
from .cart_store import CartStore, RemoteRegime
from .config import Settings, get_settings
from .errors import OperationResult, OrderCreationError
from .models import (
    LineItem,
    Order,
    OrderItem,
    OrderPayload,
    PaymentMethod,
    ShippingAddress,
    ShippingMethod,
    SourceChannel,
)

logger = logging.getLogger(__name__)


def shipping_cost(method: ShippingMethod, subtotal: Decimal, settings: Settings) -> Decimal:
    """
    Shipping charge for `method`.

    Pickup is free, express always costs the express rate, standard is
    free at or above the free-shipping threshold.
    """
    if method == ShippingMethod.PICKUP:
        return Decimal("0")
    if method == ShippingMethod.EXPRESS:
        return settings.express_shipping_rate
    if subtotal >= settings.free_shipping_threshold:
        return Decimal("0")
    return settings.standard_shipping_rate


def order_items(items: list[LineItem]) -> list[OrderItem]:
    """Price-resolved snapshot of cart lines"""
    return [
        OrderItem(
            product_id=item.product_id,
            product_name=item.product.name,
            quantity=item.quantity,
            unit_price=pricing.round_currency(pricing.unit_price(item.product)),
            line_total=pricing.round_currency(pricing.line_total(item)),
        )
        for item in items
    ]


@dataclass
class CheckoutQuote:
    """Totals shown before the order is placed"""
    subtotal: Decimal
    discount_amount: Decimal
    shipping_cost: Decimal
    grand_total: Decimal


@dataclass
class ShippingSelection:
    method: ShippingMethod = ShippingMethod.STANDARD
    address: Optional[ShippingAddress] = None


@dataclass
class PaymentSelection:
    method: PaymentMethod = PaymentMethod.CARD


class CheckoutOrchestrator:
    """
    Turns the settled storefront cart into one order.

    Issues exactly one order-creation call per submission and never
    retries; a retry is a new submission by the user.
    """

    def __init__(self, cart: CartStore, gateway, settings: Optional[Settings] = None):
        self.cart = cart
        self.gateway = gateway
        self.settings = settings or get_settings()
        self.last_order: Optional[Order] = None
        self._submitting = False

    @property
    def submitting(self) -> bool:
        return self._submitting

    def quote(self, method: ShippingMethod = ShippingMethod.STANDARD) -> CheckoutQuote:
        subtotal = self.cart.subtotal
        discount = self.cart.discount_amount
        shipping = shipping_cost(method, subtotal, self.settings)
        return CheckoutQuote(
            subtotal=subtotal,
            discount_amount=discount,
            shipping_cost=shipping,
            grand_total=pricing.total(subtotal, discount, shipping),
        )

    def build_payload(self, shipping: ShippingSelection, payment: PaymentSelection) -> OrderPayload:
        quote = self.quote(shipping.method)
        discount = self.cart.discount
        regime = self.cart.regime
        return OrderPayload(
            items=order_items(self.cart.items),
            subtotal=pricing.round_currency(quote.subtotal),
            discount_amount=pricing.round_currency(quote.discount_amount),
            discount_code=discount.code if discount and quote.discount_amount > 0 else None,
            shipping_method=shipping.method,
            shipping_cost=pricing.round_currency(quote.shipping_cost),
            shipping_address=shipping.address,
            total_amount=pricing.round_currency(quote.grand_total),
            payment_method=payment.method,
            customer_id=regime.identity if isinstance(regime, RemoteRegime) else None,
            source_channel=SourceChannel.STOREFRONT,
        )

    async def submit(
        self,
        shipping: ShippingSelection,
        payment: PaymentSelection,
    ) -> OperationResult:
        """
        Place the order.

        On success the cart is cleared and the result carries the new
        order id. On failure the cart is left untouched.
        """
        if self._submitting:
            return OperationResult.fail(OrderCreationError("Checkout is already in progress"))
        if self.cart.busy:
            return OperationResult.fail(OrderCreationError("Cart is still updating, try again"))
        if not self.cart.items:
            return OperationResult.fail(OrderCreationError("Cart is empty"))
        if shipping.method != ShippingMethod.PICKUP and shipping.address is None:
            return OperationResult.fail(OrderCreationError("A shipping address is required"))

        self._submitting = True
        try:
            payload = self.build_payload(shipping, payment)
            try:
                order = await self.gateway.create_order(payload)
            except OrderCreationError as e:
                logger.warning(f"Checkout failed: {e.message}")
                return OperationResult.fail(e)

            self.last_order = order
            logger.info(f"Order {order.order_id} placed: {order.total_amount} via {order.payment_method.value}")

            cleared = await self.cart.clear_cart()
            return OperationResult.ok(order.order_id, warning=cleared.error)
        finally:
            self._submitting = False

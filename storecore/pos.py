"""
POS Transaction Engine

An always-local cart for in-person sales. Adds a stock ceiling, manual
discounts, tax, cash tendering, card/e-wallet authorization and returns
against historical orders. Never touches the per-user remote cart.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Union

from . import pricing
from .checkout import order_items
from .config import Settings, get_settings
from .errors import (
    GatewayError,
    InsufficientStockError,
    InsufficientTenderError,
    OperationResult,
    OrderCreationError,
    OrderLookupError,
    PaymentDeclinedError,
    ReturnError,
)
from .lines import CartLines
from .models import (
    DiscountDescriptor,
    DiscountType,
    LineItem,
    Order,
    OrderPayload,
    PaymentMethod,
    ProductSnapshot,
    ReturnLine,
    ReturnRequest,
    SourceChannel,
)

logger = logging.getLogger(__name__)

MANUAL_DISCOUNT_CODE = "MANUAL"
ELECTRONIC_METHODS = (PaymentMethod.CARD, PaymentMethod.E_WALLET)

Amount = Union[Decimal, int, str]


class PaymentStatus(str, Enum):
    """Card/e-wallet authorization state"""
    IDLE = "idle"
    AWAITING = "awaiting"
    APPROVED = "approved"
    DECLINED = "declined"
    CANCELLED = "cancelled"


@dataclass
class PaymentState:
    """Payment in progress for the current sale"""
    method: Optional[PaymentMethod] = None
    status: PaymentStatus = PaymentStatus.IDLE
    amount: Optional[Decimal] = None
    reference: Optional[str] = None


@dataclass
class ReturnSession:
    """Order being returned and the quantities selected per product"""
    order: Order
    selected: dict[str, int] = field(default_factory=dict)


def refund_amount(order: Order, selected: dict[str, int]) -> Decimal:
    """
    Refund for returning `selected` quantities of `order`.

    The returned merchandise's share of what was paid for goods
    (subtotal less discount plus tax). Shipping is not refunded.
    """
    if order.subtotal <= 0:
        return Decimal("0.00")

    prices = {item.product_id: item.unit_price for item in order.items}
    returned = sum(
        (prices[product_id] * quantity for product_id, quantity in selected.items()),
        Decimal("0"),
    )
    paid_for_goods = order.subtotal - order.discount_amount + (order.tax_amount or Decimal("0"))
    refund = paid_for_goods * returned / order.subtotal
    return pricing.round_currency(min(max(refund, Decimal("0")), paid_for_goods))


class PosTerminal:
    """
    One terminal session's sale.

    State lives only for the session: `new_sale()` and `logout()` drop it.
    """

    def __init__(
        self,
        gateway,
        settings: Optional[Settings] = None,
        cashier_id: Optional[str] = None,
        tax_rate: Optional[Decimal] = None,
    ):
        self.gateway = gateway
        self.settings = settings or get_settings()
        self.cashier_id = cashier_id or self.settings.cashier_id
        self.tax_rate = self.settings.tax_rate if tax_rate is None else Decimal(tax_rate)
        self.catalog: dict[str, ProductSnapshot] = {}
        self.lines = CartLines()
        self.manual_discount: Optional[DiscountDescriptor] = None
        self.payment = PaymentState()
        self.returns: Optional[ReturnSession] = None
        self.last_receipt: Optional[Order] = None
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    # ==================== Catalog ====================

    def load_catalog(self, products: Iterable[ProductSnapshot]) -> None:
        for product in products:
            self._set_stock(product.model_copy(), product.stock_quantity)

    async def sync_stock(self) -> OperationResult:
        """Refresh known stock from the merchant"""
        try:
            products = await self.gateway.list_products()
        except GatewayError as e:
            logger.warning(f"Stock sync failed: {e.message}")
            return OperationResult.fail(e)
        self.load_catalog(products)
        return OperationResult.ok(len(products))

    def known_stock(self, product: ProductSnapshot) -> int:
        known = self.catalog.get(product.id)
        return known.stock_quantity if known else product.stock_quantity

    def _set_stock(self, product: ProductSnapshot, stock_quantity: int) -> None:
        self.catalog[product.id] = product.model_copy(update={"stock_quantity": max(stock_quantity, 0)})
        self.lines.update_stock(product.id, max(stock_quantity, 0))

    # ==================== Cart ====================

    def add_to_cart(self, product: ProductSnapshot, quantity: int = 1) -> OperationResult:
        """Add to the sale unless it would exceed known stock"""
        if quantity < 1:
            return OperationResult.ok(self.lines.items)

        available = self.known_stock(product)
        requested = self.lines.quantity_of(product.id) + quantity
        if requested > available:
            return OperationResult.fail(InsufficientStockError(product.id, requested, available))

        if product.id not in self.catalog:
            self.catalog[product.id] = product.model_copy()
        self.lines.add(self.catalog[product.id], quantity)
        return OperationResult.ok(self.lines.items)

    def update_quantity(self, product_id: str, quantity: int) -> OperationResult:
        """Set an exact quantity within known stock. Quantities below 1 are ignored."""
        item = self.lines.find(product_id)
        if quantity < 1 or item is None:
            return OperationResult.ok(self.lines.items)

        available = self.known_stock(item.product)
        if quantity > available:
            return OperationResult.fail(InsufficientStockError(product_id, quantity, available))

        self.lines.set_quantity(product_id, quantity)
        return OperationResult.ok(self.lines.items)

    def remove_from_cart(self, product_id: str) -> None:
        self.lines.remove(product_id)

    def clear_cart(self) -> None:
        self.lines.clear()
        self.manual_discount = None
        self.payment = PaymentState()

    @property
    def items(self) -> list[LineItem]:
        return self.lines.items

    # ==================== Discount & totals ====================

    def set_manual_discount(self, discount_type: DiscountType, value: Amount) -> DiscountDescriptor:
        value = Decimal(value)
        if value < 0:
            raise ValueError("Discount value cannot be negative")
        self.manual_discount = DiscountDescriptor(
            code=MANUAL_DISCOUNT_CODE,
            type=DiscountType(discount_type),
            value=value,
        )
        return self.manual_discount

    def clear_manual_discount(self) -> None:
        self.manual_discount = None

    @property
    def item_count(self) -> int:
        return self.lines.item_count

    @property
    def subtotal(self) -> Decimal:
        return self.lines.subtotal

    @property
    def discount_amount(self) -> Decimal:
        return pricing.discount_amount(self.subtotal, self.manual_discount)

    @property
    def tax_amount(self) -> Decimal:
        return pricing.tax_amount(self.subtotal, self.discount_amount, self.tax_rate)

    @property
    def total(self) -> Decimal:
        return pricing.total(self.subtotal, self.discount_amount, self.tax_amount)

    @property
    def amount_due(self) -> Decimal:
        """Total rounded to currency precision, the amount the customer pays"""
        return pricing.round_currency(self.total)

    # ==================== Cash ====================

    def change_for(self, tendered: Amount) -> Decimal:
        return pricing.change_due(Decimal(tendered), self.amount_due)

    def can_complete_cash(self, tendered: Amount) -> bool:
        return bool(self.lines) and self.change_for(tendered) >= 0

    async def complete_cash_sale(self, tendered: Amount) -> OperationResult:
        tendered = Decimal(tendered)
        change = self.change_for(tendered)
        if change < 0:
            return OperationResult.fail(
                InsufficientTenderError(f"Tendered {tendered} is short of {self.amount_due}")
            )
        return await self._record_sale(PaymentMethod.CASH, tendered, change)

    # ==================== Card / e-wallet ====================

    async def authorize_payment(self, method: PaymentMethod = PaymentMethod.CARD) -> OperationResult:
        """
        Ask the payment terminal to authorize the amount due.

        The attempt moves AWAITING -> APPROVED or DECLINED; a
        `cancel_payment()` while awaiting wins over a late approval.
        """
        if method not in ELECTRONIC_METHODS:
            raise ValueError(f"{method} is not authorized electronically")
        if not self.lines:
            return OperationResult.fail(PaymentDeclinedError("Nothing to charge"))
        if self.payment.status == PaymentStatus.AWAITING:
            return OperationResult.fail(PaymentDeclinedError("An authorization is already in progress"))

        attempt = PaymentState(method=method, status=PaymentStatus.AWAITING, amount=self.amount_due)
        self.payment = attempt

        try:
            authorization = await self.gateway.authorize_payment(attempt.amount, method)
        except GatewayError as e:
            if attempt.status == PaymentStatus.AWAITING:
                attempt.status = PaymentStatus.DECLINED
            logger.warning(f"{method.value} authorization failed: {e.message}")
            return OperationResult.fail(PaymentDeclinedError(f"Payment terminal error: {e.message}"))

        if attempt.status == PaymentStatus.CANCELLED or attempt is not self.payment:
            return OperationResult.fail(PaymentDeclinedError("Payment was cancelled"))

        if not authorization.approved:
            attempt.status = PaymentStatus.DECLINED
            return OperationResult.fail(PaymentDeclinedError(authorization.message or "Payment declined"))

        attempt.status = PaymentStatus.APPROVED
        attempt.reference = authorization.reference
        return OperationResult.ok(attempt)

    def cancel_payment(self) -> bool:
        if self.payment.status not in (PaymentStatus.AWAITING, PaymentStatus.APPROVED):
            return False
        self.payment.status = PaymentStatus.CANCELLED
        return True

    async def complete_card_sale(self) -> OperationResult:
        """Record the sale for an approved card/e-wallet payment"""
        payment = self.payment
        if payment.status != PaymentStatus.APPROVED:
            return OperationResult.fail(PaymentDeclinedError("Payment is not approved"))
        if payment.amount != self.amount_due:
            self.payment = PaymentState()
            return OperationResult.fail(PaymentDeclinedError("Sale changed after authorization; authorize again"))
        return await self._record_sale(payment.method, payment.amount, Decimal("0.00"))

    # ==================== Sale ====================

    def build_payload(self, method: PaymentMethod, tendered: Decimal, change: Decimal) -> OrderPayload:
        discount = self.manual_discount
        return OrderPayload(
            items=order_items(self.lines.items),
            subtotal=pricing.round_currency(self.subtotal),
            discount_amount=pricing.round_currency(self.discount_amount),
            discount_code=discount.code if discount and self.discount_amount > 0 else None,
            tax_amount=pricing.round_currency(self.tax_amount),
            total_amount=self.amount_due,
            payment_method=method,
            tendered_amount=pricing.round_currency(tendered),
            change_due=pricing.round_currency(change),
            cashier_id=self.cashier_id,
            source_channel=SourceChannel.POS,
        )

    async def _record_sale(self, method: PaymentMethod, tendered: Decimal, change: Decimal) -> OperationResult:
        if not self.lines:
            return OperationResult.fail(OrderCreationError("Cart is empty"))
        if self._lock.locked():
            return OperationResult.fail(OrderCreationError("A sale is already being recorded"))

        async with self._lock:
            payload = self.build_payload(method, tendered, change)
            try:
                order = await self.gateway.create_order(payload)
            except OrderCreationError as e:
                logger.warning(f"POS sale not recorded: {e.message}")
                return OperationResult.fail(e)

            for item in order.items:
                known = self.catalog.get(item.product_id)
                if known:
                    self._set_stock(known, known.stock_quantity - item.quantity)

            logger.info(f"POS sale {order.order_id} recorded: {order.total_amount} by {method.value}")
            self.last_receipt = order
            self.clear_cart()
            return OperationResult.ok(order)

    def new_sale(self) -> None:
        self.clear_cart()
        self.last_receipt = None
        self.returns = None

    def logout(self) -> None:
        self.new_sale()
        self.cashier_id = None

    # ==================== Returns ====================

    async def lookup_order(self, order_id: str) -> OperationResult:
        try:
            order = await self.gateway.lookup_order(order_id)
        except OrderLookupError as e:
            return OperationResult.fail(e)
        self.returns = ReturnSession(order=order)
        return OperationResult.ok(order)

    def select_return_item(self, product_id: str, quantity: int) -> OperationResult:
        """Choose how many units of an original line to return. 0 deselects."""
        if self.returns is None:
            return OperationResult.fail(ReturnError("Look up an order first"))

        line = next((item for item in self.returns.order.items if item.product_id == product_id), None)
        if line is None:
            return OperationResult.fail(ReturnError(f"{product_id} is not part of this order"))
        if quantity < 0 or quantity > line.quantity:
            return OperationResult.fail(
                ReturnError(f"Return quantity for {line.product_name} must be between 0 and {line.quantity}")
            )

        if quantity == 0:
            self.returns.selected.pop(product_id, None)
        else:
            self.returns.selected[product_id] = quantity
        return OperationResult.ok(dict(self.returns.selected))

    @property
    def refund_preview(self) -> Decimal:
        if self.returns is None:
            return Decimal("0.00")
        return refund_amount(self.returns.order, self.returns.selected)

    async def confirm_return(self, reason: str) -> OperationResult:
        """Record the refund and put returned units back into known stock"""
        session = self.returns
        if session is None or not session.selected:
            return OperationResult.fail(ReturnError("No items selected for return"))

        lines = [
            ReturnLine(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=session.selected[item.product_id],
                unit_price=item.unit_price,
            )
            for item in session.order.items
            if item.product_id in session.selected
        ]
        request = ReturnRequest(
            order_id=session.order.order_id,
            items=lines,
            reason=reason,
            refund_amount=refund_amount(session.order, session.selected),
            cashier_id=self.cashier_id,
            source_channel=SourceChannel.POS,
        )

        try:
            record = await self.gateway.create_return(request)
        except ReturnError as e:
            return OperationResult.fail(e)

        for line in record.items:
            known = self.catalog.get(line.product_id)
            if known:
                self._set_stock(known, known.stock_quantity + line.quantity)

        logger.info(f"Return {record.return_id} for order {record.order_id}: refund {record.refund_amount}")
        self.returns = None
        return OperationResult.ok(record)

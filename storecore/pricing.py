"""
Pricing Utilities

Pure functions shared by the storefront cart, checkout and the POS terminal.
Amounts are Decimals kept at full precision; round with `round_currency`
only when an amount is displayed or persisted.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from .models import DiscountDescriptor, DiscountType, LineItem, ProductSnapshot

ZERO = Decimal("0")
CENT = Decimal("0.01")


def round_currency(amount: Decimal) -> Decimal:
    """Round to 2 decimal places"""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def unit_price(product: ProductSnapshot) -> Decimal:
    """Sale price when the product is on sale and has one, else regular price"""
    if product.is_on_sale and product.sale_price:
        return product.sale_price
    return product.price


def line_total(item: LineItem) -> Decimal:
    return unit_price(item.product) * item.quantity


def subtotal(items: Iterable[LineItem]) -> Decimal:
    return sum((line_total(item) for item in items), ZERO)


def item_count(items: Iterable[LineItem]) -> int:
    return sum(item.quantity for item in items)


def discount_amount(subtotal: Decimal, discount: Optional[DiscountDescriptor]) -> Decimal:
    """
    Amount taken off `subtotal` by `discount`.

    PERCENTAGE takes `value` percent of the subtotal, FIXED takes `value`.
    The result is clamped to [0, subtotal].
    """
    if discount is None or subtotal <= ZERO:
        return ZERO

    if discount.type == DiscountType.PERCENTAGE:
        amount = subtotal * discount.value / Decimal(100)
    else:
        amount = discount.value

    return min(max(amount, ZERO), subtotal)


def tax_amount(subtotal: Decimal, discount: Decimal, rate: Decimal) -> Decimal:
    """Tax on the discounted subtotal"""
    return max(subtotal - discount, ZERO) * rate


def total(subtotal: Decimal, discount: Decimal, *extras: Decimal) -> Decimal:
    """
    Payable total: subtotal less discount plus extras (tax, shipping).

    Never negative. Each extra must be non-negative.
    """
    for extra in extras:
        if extra < ZERO:
            raise ValueError(f"Negative charge not allowed: {extra}")
    return max(ZERO, subtotal - discount + sum(extras, ZERO))


def change_due(tendered: Decimal, amount_due: Decimal) -> Decimal:
    return tendered - amount_due

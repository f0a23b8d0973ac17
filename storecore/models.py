"""Storecore data models shared by the engine and the merchant service"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class SourceOfTruth(str, Enum):
    """Which storage is authoritative for a cart"""
    LOCAL = "local"
    REMOTE = "remote"


class SourceChannel(str, Enum):
    STOREFRONT = "storefront"
    POS = "pos"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    E_WALLET = "e_wallet"
    BANK_TRANSFER = "bank_transfer"
    CASH_ON_DELIVERY = "cash_on_delivery"


class ShippingMethod(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    PICKUP = "pickup"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReturnStatus(str, Enum):
    PENDING = "pending"
    REFUNDED = "refunded"


# ==================== Cart ====================


class ProductSnapshot(BaseModel):
    """Product as seen by a cart at the time it was added"""
    id: str
    name: str
    price: Decimal = Field(ge=0)
    sale_price: Optional[Decimal] = Field(default=None, ge=0)
    is_on_sale: bool = False
    stock_quantity: int = Field(ge=0, default=0)


class LineItem(BaseModel):
    """One product and quantity entry within a cart"""
    product_id: str
    product: ProductSnapshot
    quantity: int = Field(ge=1)


class DiscountDescriptor(BaseModel):
    """A resolved, applicable promotional reduction"""
    code: str
    type: DiscountType
    value: Decimal


class CartState(BaseModel):
    """Read-only snapshot of a cart"""
    items: list[LineItem] = []
    discount: Optional[DiscountDescriptor] = None
    source_of_truth: SourceOfTruth = SourceOfTruth.LOCAL


# ==================== Orders ====================


class ShippingAddress(BaseModel):
    """Shipping address for order"""
    name: str
    street: str
    city: str
    state: str
    postal_code: str
    country: str = "PH"


class OrderItem(BaseModel):
    """Item in an order, priced at time of sale"""
    product_id: str
    product_name: str
    quantity: int = Field(gt=0)
    unit_price: Decimal
    line_total: Decimal

    class Config:
        frozen = True


class OrderPayload(BaseModel):
    """Request body for order creation"""
    items: list[OrderItem]
    subtotal: Decimal
    discount_amount: Decimal = Decimal("0.00")
    discount_code: Optional[str] = None
    tax_amount: Optional[Decimal] = None
    shipping_method: Optional[ShippingMethod] = None
    shipping_cost: Optional[Decimal] = None
    shipping_address: Optional[ShippingAddress] = None
    total_amount: Decimal
    payment_method: PaymentMethod
    tendered_amount: Optional[Decimal] = None
    change_due: Optional[Decimal] = None
    cashier_id: Optional[str] = None
    customer_id: Optional[str] = None
    source_channel: SourceChannel = SourceChannel.STOREFRONT


class Order(OrderPayload):
    """Completed order. Never mutated once created."""
    order_id: str
    status: OrderStatus = OrderStatus.PAID
    created_at: datetime

    class Config:
        frozen = True


class PaymentAuthorization(BaseModel):
    """Result of a card or e-wallet authorization"""
    approved: bool
    reference: Optional[str] = None
    message: Optional[str] = None


# ==================== Returns ====================


class ReturnLine(BaseModel):
    """Returned quantity of one original order line"""
    product_id: str
    product_name: str
    quantity: int = Field(gt=0)
    unit_price: Decimal


class ReturnRequest(BaseModel):
    """Request body for return creation"""
    order_id: str
    items: list[ReturnLine]
    reason: str
    refund_amount: Decimal = Field(ge=0)
    cashier_id: Optional[str] = None
    source_channel: SourceChannel = SourceChannel.POS


class ReturnRecord(ReturnRequest):
    """Recorded return. References the original order, never alters it."""
    return_id: str
    status: ReturnStatus = ReturnStatus.REFUNDED
    created_at: datetime

    class Config:
        frozen = True

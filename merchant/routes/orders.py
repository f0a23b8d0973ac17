"""Order and return API routes for merchant service"""

import logging
from decimal import Decimal

from fastapi import APIRouter, HTTPException

from storecore.models import Order, OrderPayload, ReturnRecord, ReturnRequest

from ..database.discounts import discount_db
from ..database.orders import order_db, return_db
from ..database.products import product_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Orders"])


@router.post("/orders", response_model=Order)
async def create_order(payload: OrderPayload):
    """
    Record an order.

    Verifies stock and that the subtotal matches the priced items,
    then decrements stock and counts promo code usage.
    """
    if not payload.items:
        raise HTTPException(status_code=400, detail="Order has no items")

    for item in payload.items:
        product = product_db.get_product(item.product_id)
        if not product:
            raise HTTPException(status_code=404, detail=f"Product {item.product_id} not found")
        if product.stock_quantity < item.quantity:
            raise HTTPException(
                status_code=400,
                detail=f"Insufficient stock for {item.product_name}",
            )

    items_subtotal = sum((item.line_total for item in payload.items), Decimal("0"))
    if abs(items_subtotal - payload.subtotal) > Decimal("0.01"):
        raise HTTPException(status_code=400, detail="Order subtotal does not match its items")

    for item in payload.items:
        product_db.adjust_stock(item.product_id, -item.quantity)

    if payload.discount_code:
        discount_db.redeem(payload.discount_code)

    order = order_db.create_order(payload)
    logger.info(
        f"Order {order.order_id} created: {order.total_amount} - "
        f"{order.source_channel.value} / {order.payment_method.value}"
    )
    return order


@router.get("/orders/{order_id}", response_model=Order)
async def get_order(order_id: str):
    """Get order details"""
    order = order_db.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.get("/orders", response_model=list[Order])
async def list_orders(limit: int = 50):
    """List recent orders"""
    return order_db.list_orders(limit=limit)


@router.post("/returns", response_model=ReturnRecord)
async def create_return(request: ReturnRequest):
    """
    Record a refund against an order and restock returned units.

    The original order is never modified.
    """
    order = order_db.get_order(request.order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if not request.items:
        raise HTTPException(status_code=400, detail="Return has no items")

    ordered = {item.product_id: item.quantity for item in order.items}
    already_returned = return_db.returned_quantities(order.order_id)
    for line in request.items:
        if line.product_id not in ordered:
            raise HTTPException(status_code=400, detail=f"{line.product_id} is not part of this order")
        remaining = ordered[line.product_id] - already_returned.get(line.product_id, 0)
        if line.quantity > remaining:
            raise HTTPException(
                status_code=400,
                detail=f"Only {remaining} of {line.product_name} can still be returned",
            )

    if request.refund_amount > order.total_amount:
        raise HTTPException(status_code=400, detail="Refund exceeds order total")

    for line in request.items:
        product_db.adjust_stock(line.product_id, line.quantity)

    record = return_db.create_return(request)
    logger.info(f"Return {record.return_id} for {order.order_id}: refunded {record.refund_amount}")
    return record


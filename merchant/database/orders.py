"""Order and return storage for merchant service"""

import uuid
from datetime import datetime
from typing import Optional

from storecore.models import Order, OrderPayload, ReturnRecord, ReturnRequest


class OrderDatabase:
    """In-memory order storage"""

    def __init__(self):
        self.orders: dict[str, Order] = {}

    def create_order(self, payload: OrderPayload) -> Order:
        """Record an order from a validated payload"""
        order = Order(
            **payload.model_dump(),
            order_id=f"ORD-{uuid.uuid4().hex[:8].upper()}",
            created_at=datetime.utcnow(),
        )
        self.orders[order.order_id] = order
        return order

    def get_order(self, order_id: str) -> Optional[Order]:
        """Get an order by ID"""
        return self.orders.get(order_id)

    def list_orders(self, limit: int = 50) -> list[Order]:
        """List recent orders"""
        orders = list(self.orders.values())
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders[:limit]


class ReturnDatabase:
    """In-memory return storage"""

    def __init__(self):
        self.returns: dict[str, ReturnRecord] = {}

    def create_return(self, request: ReturnRequest) -> ReturnRecord:
        record = ReturnRecord(
            **request.model_dump(),
            return_id=f"RET-{uuid.uuid4().hex[:8].upper()}",
            created_at=datetime.utcnow(),
        )
        self.returns[record.return_id] = record
        return record

    def returned_quantities(self, order_id: str) -> dict[str, int]:
        """Units already returned per product for an order"""
        totals: dict[str, int] = {}
        for record in self.returns.values():
            if record.order_id != order_id:
                continue
            for line in record.items:
                totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
        return totals


# Singleton instances
order_db = OrderDatabase()
return_db = ReturnDatabase()

"""
Shared fixtures

`FakeGateway` stands in for the merchant collaborator in unit tests;
`merchant_client` talks to the real FastAPI merchant in-process.
"""

import uuid
from datetime import datetime
from decimal import Decimal

import httpx
import pytest

from merchant.database import cart_db, discount_db, order_db, product_db, return_db
from merchant.main import app
from storecore.client import MerchantClient
from storecore.config import Settings
from storecore.errors import (
    GatewayError,
    InvalidCodeError,
    OrderCreationError,
    OrderLookupError,
    ReturnError,
)
from storecore.lines import CartLines
from storecore.models import (
    DiscountDescriptor,
    DiscountType,
    Order,
    PaymentAuthorization,
    ProductSnapshot,
    ReturnRecord,
)
from storecore.storage import CartMirror, MemoryStorage


class FakeGateway:
    """
    In-process merchant double.

    Flip a name into `failing` to make that call raise, e.g.
    `gateway.failing.add("add_remote_item")`.
    """

    def __init__(self, products=None):
        self.products = {product.id: product for product in products or []}
        self.remote_carts: dict[str, CartLines] = {}
        self.discounts: dict[str, DiscountDescriptor] = {}
        self.orders: dict[str, Order] = {}
        self.returns: list[ReturnRecord] = []
        self.authorization = PaymentAuthorization(approved=True, reference="AUTH-TEST")
        self.failing: set[str] = set()
        self.calls: list[str] = []

    def _call(self, name: str, error=GatewayError) -> None:
        self.calls.append(name)
        if name in self.failing:
            raise error(f"{name} unavailable")

    def remote_cart(self, identity: str) -> CartLines:
        return self.remote_carts.setdefault(identity, CartLines())

    async def list_products(self):
        self._call("list_products")
        return list(self.products.values())

    async def get_remote_cart(self, identity):
        self._call("get_remote_cart")
        return self.remote_cart(identity).items

    async def add_remote_item(self, identity, product_id, quantity=1):
        self._call("add_remote_item")
        self.remote_cart(identity).add(self.products[product_id], quantity)

    async def remove_remote_item(self, identity, product_id):
        self._call("remove_remote_item")
        self.remote_cart(identity).remove(product_id)

    async def set_remote_quantity(self, identity, product_id, quantity):
        self._call("set_remote_quantity")
        self.remote_cart(identity).set_quantity(product_id, quantity)

    async def clear_remote_cart(self, identity):
        self._call("clear_remote_cart")
        self.remote_cart(identity).clear()

    async def validate_discount_code(self, code, subtotal):
        self._call("validate_discount_code")
        discount = self.discounts.get(code)
        if discount is None:
            raise InvalidCodeError("Invalid discount code")
        return discount

    async def create_order(self, payload):
        self._call("create_order", OrderCreationError)
        order = Order(
            **payload.model_dump(),
            order_id=f"ORD-{uuid.uuid4().hex[:8].upper()}",
            created_at=datetime.utcnow(),
        )
        self.orders[order.order_id] = order
        return order

    async def lookup_order(self, order_id):
        self._call("lookup_order", OrderLookupError)
        if order_id not in self.orders:
            raise OrderLookupError("Order not found")
        return self.orders[order_id]

    async def create_return(self, request):
        self._call("create_return", ReturnError)
        record = ReturnRecord(
            **request.model_dump(),
            return_id=f"RET-{uuid.uuid4().hex[:8].upper()}",
            created_at=datetime.utcnow(),
        )
        self.returns.append(record)
        return record

    async def authorize_payment(self, amount, method):
        self._call("authorize_payment")
        return self.authorization


@pytest.fixture
def brake_pads():
    return ProductSnapshot(id="prod-001", name="Brake Pad Set", price=Decimal("1000"), stock_quantity=10)


@pytest.fixture
def engine_oil():
    return ProductSnapshot(
        id="prod-002",
        name="Engine Oil 4L",
        price=Decimal("2200"),
        sale_price=Decimal("1980"),
        is_on_sale=True,
        stock_quantity=5,
    )


@pytest.fixture
def last_battery():
    return ProductSnapshot(id="prod-006", name="Car Battery", price=Decimal("450"), stock_quantity=1)


@pytest.fixture
def gateway(brake_pads, engine_oil, last_battery):
    gateway = FakeGateway([brake_pads, engine_oil, last_battery])
    gateway.discounts["WELCOME10"] = DiscountDescriptor(
        code="WELCOME10", type=DiscountType.PERCENTAGE, value=Decimal("10")
    )
    return gateway


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        tax_rate=Decimal("0.08"),
        free_shipping_threshold=Decimal("2500"),
        standard_shipping_rate=Decimal("150"),
        express_shipping_rate=Decimal("300"),
        cashier_id="cashier-1",
    )


@pytest.fixture
def mirror():
    return CartMirror(MemoryStorage(), key="shopCoreCart")


@pytest.fixture
def merchant_state():
    """Reset the merchant's in-memory databases around each test"""

    def reset():
        product_db.reset()
        discount_db.reset()
        cart_db.carts.clear()
        order_db.orders.clear()
        return_db.returns.clear()

    reset()
    yield
    reset()


@pytest.fixture
async def merchant_client(merchant_state):
    client = MerchantClient("http://merchant.test", transport=httpx.ASGITransport(app=app))
    async with client:
        yield client

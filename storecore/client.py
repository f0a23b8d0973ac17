"""
Merchant API Client

HTTP client for the merchant collaborator: per-user remote carts,
discount validation, orders, returns, products and card authorization.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Callable, Optional

import httpx
from pydantic import BaseModel, TypeAdapter

from .config import Settings, get_settings
from .errors import (
    GatewayError,
    InvalidCodeError,
    OrderCreationError,
    OrderLookupError,
    ReturnError,
)
from .models import (
    DiscountDescriptor,
    LineItem,
    Order,
    OrderPayload,
    PaymentAuthorization,
    PaymentMethod,
    ProductSnapshot,
    ReturnRecord,
    ReturnRequest,
)

logger = logging.getLogger(__name__)

_line_items = TypeAdapter(list[LineItem])
_products = TypeAdapter(list[ProductSnapshot])


class MerchantClient:
    """
    Client for the merchant API.

    Every call either returns parsed models or raises a storecore error;
    nothing is retried.
    """

    def __init__(
        self,
        merchant_base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize merchant client.

        Args:
            merchant_base_url: Base URL of merchant API
            timeout: Seconds allowed per request
            transport: Optional httpx transport (e.g. ASGITransport in tests)
        """
        self.base_url = merchant_base_url.rstrip("/")
        self._http_client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MerchantClient":
        settings = settings or get_settings()
        return cls(settings.merchant_base_url, timeout=settings.request_timeout)

    async def close(self) -> None:
        """Close HTTP client"""
        await self._http_client.aclose()

    async def __aenter__(self) -> "MerchantClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        parse: Optional[Callable[[Any], Any]] = None,
    ) -> Any:
        """
        Make an HTTP request, raising GatewayError on any failure.

        `parse` turns the decoded JSON body into models; a body it cannot
        handle is a gateway failure like any other.
        """
        url = f"{self.base_url}{path}"
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        content = None
        if body is not None:
            content = body.model_dump_json() if isinstance(body, BaseModel) else json.dumps(body)

        try:
            response = await self._http_client.request(
                method=method,
                url=url,
                headers=headers,
                content=content,
            )
        except httpx.HTTPError as e:
            logger.error(f"Request {method} {url} failed: {e}")
            raise GatewayError(f"Merchant unreachable: {e}") from e

        if response.status_code >= 400:
            logger.error(f"Request failed: {response.status_code} - {response.text}")
            raise GatewayError(_detail(response), status_code=response.status_code)

        try:
            data = response.json()
            return parse(data) if parse else data
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Unexpected response from {method} {url}: {e}")
            raise GatewayError(f"Merchant returned an unexpected response: {e}") from e

    # ==================== Product APIs ====================

    async def list_products(self) -> list[ProductSnapshot]:
        return await self._request(
            "GET",
            "/api/products",
            parse=lambda data: _products.validate_python(data["products"]),
        )

    async def get_product(self, product_id: str) -> ProductSnapshot:
        return await self._request("GET", f"/api/products/{product_id}", parse=ProductSnapshot.model_validate)

    # ==================== Remote cart APIs ====================

    async def get_remote_cart(self, identity: str) -> list[LineItem]:
        return await self._request(
            "GET",
            f"/api/cart/{identity}",
            parse=lambda data: _line_items.validate_python(data["items"]),
        )

    async def add_remote_item(self, identity: str, product_id: str, quantity: int = 1) -> None:
        await self._request(
            "POST",
            f"/api/cart/{identity}/items",
            body={"product_id": product_id, "quantity": quantity},
        )

    async def remove_remote_item(self, identity: str, product_id: str) -> None:
        await self._request("DELETE", f"/api/cart/{identity}/items/{product_id}")

    async def set_remote_quantity(self, identity: str, product_id: str, quantity: int) -> None:
        await self._request(
            "PUT",
            f"/api/cart/{identity}/items/{product_id}",
            body={"quantity": quantity},
        )

    async def clear_remote_cart(self, identity: str) -> None:
        await self._request("DELETE", f"/api/cart/{identity}")

    # ==================== Discount APIs ====================

    async def validate_discount_code(self, code: str, subtotal: Decimal) -> DiscountDescriptor:
        """Raises InvalidCodeError when the merchant rejects the code"""
        try:
            return await self._request(
                "POST",
                "/api/discounts/validate",
                body={"code": code, "subtotal": str(subtotal)},
                parse=DiscountDescriptor.model_validate,
            )
        except GatewayError as e:
            if e.status_code is not None and 400 <= e.status_code < 500:
                raise InvalidCodeError(e.message) from e
            raise

    # ==================== Order APIs ====================

    async def create_order(self, payload: OrderPayload) -> Order:
        """Raises OrderCreationError for any failure"""
        try:
            return await self._request("POST", "/api/orders", body=payload, parse=Order.model_validate)
        except GatewayError as e:
            raise OrderCreationError(e.message) from e

    async def lookup_order(self, order_id: str) -> Order:
        try:
            return await self._request("GET", f"/api/orders/{order_id}", parse=Order.model_validate)
        except GatewayError as e:
            raise OrderLookupError(e.message) from e

    async def create_return(self, request: ReturnRequest) -> ReturnRecord:
        try:
            return await self._request("POST", "/api/returns", body=request, parse=ReturnRecord.model_validate)
        except GatewayError as e:
            raise ReturnError(e.message) from e

    # ==================== Payment APIs ====================

    async def authorize_payment(self, amount: Decimal, method: PaymentMethod) -> PaymentAuthorization:
        return await self._request(
            "POST",
            "/api/payments/authorize",
            body={"amount": str(amount), "method": method.value},
            parse=PaymentAuthorization.model_validate,
        )


def _detail(response: httpx.Response) -> str:
    """Error message from a FastAPI error body"""
    try:
        body = response.json()
    except ValueError:
        body = None
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, str):
        return detail
    return f"Merchant returned {response.status_code}"

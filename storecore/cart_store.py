"""
Cart Store

Owns the storefront cart for one session. The cart is either LOCAL
(anonymous, mirrored to durable local storage) or REMOTE (bound to an
authenticated identity, the merchant's per-user cart is authoritative).
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable, Iterable, Optional, Union

from . import pricing
from .discounts import DiscountResolver
from .errors import (
    GatewayError,
    InvalidCodeError,
    OperationResult,
    RecoverableSyncError,
    StorageError,
)
from .lines import CartLines
from .models import (
    CartState,
    DiscountDescriptor,
    LineItem,
    ProductSnapshot,
    SourceOfTruth,
)
from .storage import CartMirror

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalRegime:
    """No identity bound; the local mirror is authoritative"""

    @property
    def source(self) -> SourceOfTruth:
        return SourceOfTruth.LOCAL


@dataclass(frozen=True)
class RemoteRegime:
    """Bound to `identity`; the remote per-user cart is authoritative"""
    identity: str

    @property
    def source(self) -> SourceOfTruth:
        return SourceOfTruth.REMOTE


Regime = Union[LocalRegime, RemoteRegime]


class CartStore:
    """
    Storefront cart shared by every UI consumer of a session.

    Mutations are serialized: one runs to completion, including its remote
    calls, before the next starts. Remote failures never lose the user's
    change; it is applied locally and `error` is set until the next
    successful synchronization.
    """

    def __init__(
        self,
        gateway,
        mirror: CartMirror,
        identity: Optional[str] = None,
        resolver: Optional[DiscountResolver] = None,
    ):
        self.gateway = gateway
        self.mirror = mirror
        self.resolver = resolver or DiscountResolver(gateway)
        self._regime: Regime = RemoteRegime(identity) if identity else LocalRegime()
        self._lines = CartLines()
        self._discount: Optional[DiscountDescriptor] = None
        self._pending: set[str] = set()
        self._lock = asyncio.Lock()
        self.error: Optional[RecoverableSyncError] = None
        self.discrepancies: list[str] = []

    # ==================== Regime ====================

    @property
    def regime(self) -> Regime:
        return self._regime

    @property
    def source_of_truth(self) -> SourceOfTruth:
        return self._regime.source

    @property
    def busy(self) -> bool:
        """True while a mutation or remote call is in flight"""
        return self._lock.locked()

    async def initialize(self) -> CartState:
        """Load the cart on cold start"""
        async with self._lock:
            if isinstance(self._regime, LocalRegime):
                self._lines.replace(self._read_mirror())
            else:
                await self._load_remote(self._regime.identity)
        return self.state

    async def login(self, identity: str) -> CartState:
        """
        Bind an authenticated identity.

        Happens once per store. The remote cart replaces the local list;
        anonymous items are not migrated.
        """
        if isinstance(self._regime, RemoteRegime):
            raise RuntimeError(f"Cart already bound to {self._regime.identity}")

        async with self._lock:
            self._regime = RemoteRegime(identity)
            self._pending.clear()
            logger.info(f"Cart switched to remote regime for {identity}")
            await self._load_remote(identity)
        return self.state

    async def _load_remote(self, identity: str) -> None:
        try:
            items = await self.gateway.get_remote_cart(identity)
        except GatewayError as e:
            logger.warning(f"Could not load remote cart for {identity}: {e.message}")
            self._lines.clear()
            self.error = RecoverableSyncError(f"Your saved cart could not be loaded: {e.message}")
            return
        self._lines.replace(items)
        self.error = None

    # ==================== Mutations ====================

    async def add_to_cart(self, product: ProductSnapshot, quantity: int = 1) -> OperationResult:
        """Add `quantity` of `product`, merging with an existing line"""
        if quantity < 1:
            return OperationResult.ok(self.state)
        return await self._mutate(
            f"Adding {product.name}",
            lambda: self._lines.add(product, quantity),
            lambda identity: self.gateway.add_remote_item(identity, product.id, quantity),
            [product.id],
        )

    async def remove_from_cart(self, product_id: str) -> OperationResult:
        """Remove a product. Removing an absent product is a no-op."""
        return await self._mutate(
            "Removing an item",
            lambda: self._lines.remove(product_id),
            lambda identity: self.gateway.remove_remote_item(identity, product_id),
            [product_id],
        )

    async def update_quantity(self, product_id: str, quantity: int) -> OperationResult:
        """Set an exact quantity. Quantities below 1 are ignored."""
        if quantity < 1:
            return OperationResult.ok(self.state)
        return await self._mutate(
            "Updating a quantity",
            lambda: self._lines.set_quantity(product_id, quantity),
            lambda identity: self.gateway.set_remote_quantity(identity, product_id, quantity),
            [product_id],
        )

    async def clear_cart(self) -> OperationResult:
        """Empty items and discount together"""

        def apply() -> None:
            self._lines.clear()
            self._discount = None

        result = await self._mutate(
            "Clearing the cart",
            apply,
            self.gateway.clear_remote_cart,
        )
        self._discount = None
        return result

    async def _mutate(
        self,
        description: str,
        apply_local: Callable[[], object],
        call_remote: Callable[[str], Awaitable[object]],
        product_ids: Optional[Iterable[str]] = None,
    ) -> OperationResult:
        """`product_ids` defaults to every product in the cart once the lock is held"""
        async with self._lock:
            if product_ids is None:
                product_ids = [item.product_id for item in self._lines.items]
            touched = set(product_ids)
            if isinstance(self._regime, LocalRegime):
                apply_local()
                self._write_mirror()
                logger.debug(f"{description} applied locally")
                return OperationResult.ok(self.state)

            identity = self._regime.identity
            try:
                await call_remote(identity)
            except GatewayError as e:
                apply_local()
                self._pending.update(touched)
                self.error = RecoverableSyncError(f"{description} was not saved to your account: {e.message}")
                logger.warning(f"{description} failed remotely for {identity}, applied locally: {e.message}")
                return OperationResult.ok(self.state, warning=self.error)

            try:
                items = await self.gateway.get_remote_cart(identity)
            except GatewayError as e:
                apply_local()
                self.error = RecoverableSyncError(f"{description} was saved but the cart could not be refreshed: {e.message}")
                logger.warning(f"Cart refresh failed for {identity}: {e.message}")
                return OperationResult.ok(self.state, warning=self.error)

            self._synchronize(items, touched)
            return OperationResult.ok(self.state)

    def _synchronize(self, remote_items: list[LineItem], touched: set[str]) -> None:
        """Adopt the remote list; report fallback changes it does not reflect"""
        local = {item.product_id: item.quantity for item in self._lines.items}
        self._lines.replace(remote_items)
        remote = {item.product_id: item.quantity for item in self._lines.items}

        self.discrepancies = sorted(
            product_id
            for product_id in self._pending - touched
            if local.get(product_id, 0) != remote.get(product_id, 0)
        )
        if self.discrepancies:
            logger.warning(f"Unsaved cart changes dropped by remote cart: {', '.join(self.discrepancies)}")

        self._pending.clear()
        self.error = None

    # ==================== Local mirror ====================

    def _read_mirror(self) -> list[LineItem]:
        try:
            return self.mirror.load()
        except StorageError as e:
            logger.warning(f"Cart mirror unavailable, starting empty: {e.message}")
            return []

    def _write_mirror(self) -> None:
        try:
            self.mirror.save(self._lines.items)
        except StorageError as e:
            # Next successful mutation rewrites the whole list
            logger.warning(f"Cart mirror write failed: {e.message}")

    # ==================== Discounts ====================

    async def apply_discount(self, code: str) -> OperationResult:
        """Resolve `code` against the current subtotal. Failure keeps the previous discount."""
        async with self._lock:
            try:
                discount = await self.resolver.resolve(code, self.subtotal)
            except InvalidCodeError as e:
                return OperationResult.fail(e)
            self._discount = discount
            return OperationResult.ok(discount)

    def remove_discount(self) -> None:
        self._discount = None

    def clear_error(self) -> None:
        self.error = None

    # ==================== Derived values ====================

    @property
    def items(self) -> list[LineItem]:
        return self._lines.items

    @property
    def discount(self) -> Optional[DiscountDescriptor]:
        return self._discount

    @property
    def item_count(self) -> int:
        return self._lines.item_count

    @property
    def subtotal(self) -> Decimal:
        return self._lines.subtotal

    @property
    def discount_amount(self) -> Decimal:
        return pricing.discount_amount(self.subtotal, self._discount)

    @property
    def total(self) -> Decimal:
        return pricing.total(self.subtotal, self.discount_amount)

    @property
    def state(self) -> CartState:
        return CartState(
            items=self._lines.items,
            discount=self._discount,
            source_of_truth=self.source_of_truth,
        )

# Storecore: cart & transaction pricing engine

from .cart_store import CartStore, LocalRegime, RemoteRegime
from .checkout import CheckoutOrchestrator, PaymentSelection, ShippingSelection
from .client import MerchantClient
from .config import Settings, get_settings
from .discounts import DiscountResolver
from .errors import (
    InsufficientStockError,
    InvalidCodeError,
    OperationResult,
    OrderCreationError,
    PaymentDeclinedError,
    RecoverableSyncError,
    StoreCoreError,
)
from .pos import PaymentStatus, PosTerminal
from .storage import CartMirror, JsonFileStorage, MemoryStorage

__all__ = [
    "CartStore",
    "LocalRegime",
    "RemoteRegime",
    "CheckoutOrchestrator",
    "PaymentSelection",
    "ShippingSelection",
    "MerchantClient",
    "Settings",
    "get_settings",
    "DiscountResolver",
    "InsufficientStockError",
    "InvalidCodeError",
    "OperationResult",
    "OrderCreationError",
    "PaymentDeclinedError",
    "RecoverableSyncError",
    "StoreCoreError",
    "PaymentStatus",
    "PosTerminal",
    "CartMirror",
    "JsonFileStorage",
    "MemoryStorage",
]

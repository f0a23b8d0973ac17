"""Storecore error taxonomy"""

from dataclasses import dataclass
from typing import Any, Optional


class StoreCoreError(Exception):
    """Base exception for storecore errors"""

    code = "storecore_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.code


class GatewayError(StoreCoreError):
    """A collaborator call failed"""

    code = "gateway_error"

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StorageError(StoreCoreError):
    """Local cart mirror could not be read or written"""

    code = "storage_error"


class RecoverableSyncError(StoreCoreError):
    """A remote cart mutation failed; the change was applied locally only"""

    code = "recoverable_sync_error"


class InvalidCodeError(StoreCoreError):
    """Discount code was rejected"""

    code = "invalid_code"


class InsufficientStockError(StoreCoreError):
    """Requested quantity exceeds known stock"""

    code = "insufficient_stock"

    def __init__(self, product_id: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {product_id}: requested {requested}, available {available}"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class OrderCreationError(StoreCoreError):
    """Order was not recorded"""

    code = "order_creation_failed"


class PaymentDeclinedError(StoreCoreError):
    """Card or e-wallet payment was declined or cancelled"""

    code = "payment_declined"


class InsufficientTenderError(StoreCoreError):
    """Cash tendered does not cover the total"""

    code = "insufficient_tender"


class OrderLookupError(StoreCoreError):
    """Order could not be found"""

    code = "order_not_found"


class ReturnError(StoreCoreError):
    """Return selection is invalid or was rejected"""

    code = "return_rejected"


@dataclass
class OperationResult:
    """
    Outcome of a core operation, ready for the UI to render.

    `success` tells whether the user's intent was applied. A successful
    result may still carry a recoverable `error` (e.g. a cart change that
    was applied locally but not persisted remotely).
    """
    success: bool
    value: Any = None
    error: Optional[StoreCoreError] = None

    @classmethod
    def ok(cls, value: Any = None, warning: Optional[StoreCoreError] = None) -> "OperationResult":
        return cls(success=True, value=value, error=warning)

    @classmethod
    def fail(cls, error: StoreCoreError) -> "OperationResult":
        return cls(success=False, error=error)

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None

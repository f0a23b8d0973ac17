"""In-memory line item list used by every cart instance"""

from decimal import Decimal
from typing import Iterable, Optional

from . import pricing
from .models import LineItem, ProductSnapshot


class CartLines:
    """
    Ordered line items, at most one per product.

    Insertion order is display order. A line never holds a quantity
    below 1: setting such a quantity is ignored.
    """

    def __init__(self, items: Optional[Iterable[LineItem]] = None):
        self._items: list[LineItem] = []
        if items:
            self.replace(items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self.items)

    @property
    def items(self) -> list[LineItem]:
        """Copies of the current lines"""
        return [item.model_copy(deep=True) for item in self._items]

    def find(self, product_id: str) -> Optional[LineItem]:
        return next((item for item in self._items if item.product_id == product_id), None)

    def quantity_of(self, product_id: str) -> int:
        item = self.find(product_id)
        return item.quantity if item else 0

    def add(self, product: ProductSnapshot, quantity: int = 1) -> None:
        """Merge into the existing line for the product or append a new one"""
        if quantity < 1:
            return

        existing = self.find(product.id)
        if existing:
            existing.quantity += quantity
            existing.product = product.model_copy()
        else:
            self._items.append(
                LineItem(product_id=product.id, product=product.model_copy(), quantity=quantity)
            )

    def remove(self, product_id: str) -> None:
        self._items = [item for item in self._items if item.product_id != product_id]

    def set_quantity(self, product_id: str, quantity: int) -> bool:
        """Set exact quantity. Returns False when ignored."""
        if quantity < 1:
            return False
        item = self.find(product_id)
        if not item:
            return False
        item.quantity = quantity
        return True

    def clear(self) -> None:
        self._items = []

    def replace(self, items: Iterable[LineItem]) -> None:
        """Overwrite with `items`, merging duplicates and dropping empty lines"""
        self._items = []
        for item in items:
            if item.quantity >= 1:
                self.add(item.product, item.quantity)

    def update_stock(self, product_id: str, stock_quantity: int) -> None:
        item = self.find(product_id)
        if item:
            item.product = item.product.model_copy(update={"stock_quantity": stock_quantity})

    @property
    def item_count(self) -> int:
        return pricing.item_count(self._items)

    @property
    def subtotal(self) -> Decimal:
        return pricing.subtotal(self._items)

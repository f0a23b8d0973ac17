"""Per-user cart storage for merchant service"""

from datetime import datetime
from typing import Optional

from storecore.models import LineItem

from ..models.cart import RemoteCart
from ..models.product import Product


class CartDatabase:
    """In-memory cart storage keyed by user identity"""

    def __init__(self):
        self.carts: dict[str, RemoteCart] = {}

    def get_or_create_cart(self, identity: str) -> RemoteCart:
        """Get a user's cart, creating an empty one on first use"""
        cart = self.carts.get(identity)
        if cart is None:
            now = datetime.utcnow()
            cart = RemoteCart(identity=identity, items=[], created_at=now, updated_at=now)
            self.carts[identity] = cart
        return cart

    def find_item(self, identity: str, product_id: str) -> Optional[LineItem]:
        cart = self.get_or_create_cart(identity)
        return next((item for item in cart.items if item.product_id == product_id), None)

    def add_item(self, identity: str, product: Product, quantity: int = 1) -> RemoteCart:
        """Add an item to the cart"""
        cart = self.get_or_create_cart(identity)
        existing_item = self.find_item(identity, product.id)

        if existing_item:
            existing_item.quantity += quantity
            existing_item.product = product.snapshot()
        else:
            cart.items.append(
                LineItem(product_id=product.id, product=product.snapshot(), quantity=quantity)
            )

        cart.updated_at = datetime.utcnow()
        return cart

    def update_item_quantity(self, identity: str, product_id: str, quantity: int) -> Optional[RemoteCart]:
        """Update item quantity in cart. Returns None when the item is not in the cart."""
        cart = self.get_or_create_cart(identity)
        item = self.find_item(identity, product_id)
        if not item:
            return None

        item.quantity = quantity
        cart.updated_at = datetime.utcnow()
        return cart

    def remove_item(self, identity: str, product_id: str) -> RemoteCart:
        """Remove an item from the cart"""
        cart = self.get_or_create_cart(identity)
        cart.items = [item for item in cart.items if item.product_id != product_id]
        cart.updated_at = datetime.utcnow()
        return cart

    def clear_cart(self, identity: str) -> RemoteCart:
        """Clear all items from cart"""
        cart = self.get_or_create_cart(identity)
        cart.items = []
        cart.updated_at = datetime.utcnow()
        return cart


# Singleton instance
cart_db = CartDatabase()

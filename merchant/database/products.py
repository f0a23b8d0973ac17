"""Product database for merchant service"""

from decimal import Decimal
from typing import Optional

from ..models.product import Product

# Seed catalog
PRODUCTS: dict[str, Product] = {
    "prod-001": Product(
        id="prod-001",
        name="Brake Pad Set (Front)",
        description="Ceramic front brake pads for compact sedans.",
        price=Decimal("1850.00"),
        sku="BRK-PAD-F-001",
        stock_quantity=40,
    ),
    "prod-002": Product(
        id="prod-002",
        name="Synthetic Engine Oil 4L",
        description="Fully synthetic 5W-30 engine oil.",
        price=Decimal("2200.00"),
        sale_price=Decimal("1980.00"),
        is_on_sale=True,
        sku="OIL-5W30-4L",
        stock_quantity=60,
    ),
    "prod-003": Product(
        id="prod-003",
        name="Oil Filter",
        description="Spin-on oil filter, fits most 1.5L engines.",
        price=Decimal("350.00"),
        sku="FLT-OIL-015",
        stock_quantity=120,
    ),
    "prod-004": Product(
        id="prod-004",
        name="Spark Plug (Iridium)",
        description="Long-life iridium spark plug.",
        price=Decimal("480.00"),
        sku="SPK-IRD-001",
        stock_quantity=200,
    ),
    "prod-005": Product(
        id="prod-005",
        name="Wiper Blade 22in",
        description="Frameless all-season wiper blade.",
        price=Decimal("450.00"),
        sale_price=Decimal("399.00"),
        is_on_sale=False,
        sku="WPR-22-AS",
        stock_quantity=75,
    ),
    "prod-006": Product(
        id="prod-006",
        name="Car Battery 12V 60Ah",
        description="Maintenance-free battery with 18-month warranty.",
        price=Decimal("5600.00"),
        sku="BAT-12V-60",
        stock_quantity=8,
    ),
}


class ProductDatabase:
    """In-memory product database for merchant service"""

    def __init__(self):
        self.products = {pid: product.model_copy() for pid, product in PRODUCTS.items()}

    def get_product(self, product_id: str) -> Optional[Product]:
        """Get a product by ID"""
        return self.products.get(product_id)

    def get_all_products(self) -> list[Product]:
        """Get all products"""
        return list(self.products.values())

    def adjust_stock(self, product_id: str, delta: int) -> Optional[int]:
        """Apply a sale (negative) or restock (positive). Returns the new level, or None if refused."""
        product = self.products.get(product_id)
        if product is None or product.stock_quantity + delta < 0:
            return None
        product.stock_quantity += delta
        return product.stock_quantity

    def reset(self) -> None:
        self.products = {pid: product.model_copy() for pid, product in PRODUCTS.items()}


# Singleton instance
product_db = ProductDatabase()

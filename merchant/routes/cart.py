"""Per-user cart API routes for merchant service"""

from fastapi import APIRouter, HTTPException

from ..database.carts import cart_db
from ..database.products import product_db
from ..models.cart import AddToCartRequest, CartResponse, UpdateCartItemRequest

router = APIRouter(prefix="/api/cart", tags=["Cart"])


@router.get("/{identity}", response_model=CartResponse)
async def get_cart(identity: str):
    """Get a user's cart, creating it on first access"""
    cart = cart_db.get_or_create_cart(identity)
    return CartResponse(items=cart.items)


@router.post("/{identity}/items", response_model=CartResponse)
async def add_to_cart(identity: str, request: AddToCartRequest):
    """Add an item to the cart"""
    product = product_db.get_product(request.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    existing = cart_db.find_item(identity, product.id)
    new_quantity = request.quantity + (existing.quantity if existing else 0)
    if product.stock_quantity < new_quantity:
        raise HTTPException(
            status_code=400,
            detail=f"Insufficient stock. Available: {product.stock_quantity}",
        )

    cart = cart_db.add_item(identity, product, request.quantity)
    return CartResponse(
        items=cart.items,
        message=f"Added {request.quantity}x {product.name} to cart",
    )


@router.put("/{identity}/items/{product_id}", response_model=CartResponse)
async def update_cart_item(identity: str, product_id: str, request: UpdateCartItemRequest):
    """Update item quantity in cart"""
    product = product_db.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    if request.quantity > product.stock_quantity:
        raise HTTPException(
            status_code=400,
            detail=f"Insufficient stock. Available: {product.stock_quantity}",
        )

    cart = cart_db.update_item_quantity(identity, product_id, request.quantity)
    if not cart:
        raise HTTPException(status_code=404, detail="Item not in cart")

    return CartResponse(items=cart.items, message="Cart updated")


@router.delete("/{identity}/items/{product_id}", response_model=CartResponse)
async def remove_from_cart(identity: str, product_id: str):
    """Remove an item from the cart"""
    cart = cart_db.remove_item(identity, product_id)
    return CartResponse(items=cart.items, message="Item removed")


@router.delete("/{identity}", response_model=CartResponse)
async def clear_cart(identity: str):
    """Clear all items from cart"""
    cart = cart_db.clear_cart(identity)
    return CartResponse(items=cart.items, message="Cart cleared")

# backend/routes/cart.py
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status

from database import get_store
from schemas.cart import CartAddItem, CartUpdateItem, CartNotes, CartOut
from services.cart import Cart
from store.base import RelationStore

router = APIRouter(prefix="/cart", tags=["Cart"])
logger = logging.getLogger(__name__)

# The till's cart lives with the running application
def get_cart(request: Request) -> Cart:
    return request.app.state.cart

def _ensure_line(cart: Cart, product_id: str):
    if cart.get_line(product_id) is None:
        raise HTTPException(status_code=404, detail="Cart item not found")

@router.get("", response_model=CartOut)
def get_cart_summary(cart: Cart = Depends(get_cart)):
    return cart.snapshot()

@router.post("/add", response_model=CartOut, status_code=status.HTTP_200_OK)
def add_to_cart(
    payload: CartAddItem,
    cart: Cart = Depends(get_cart),
    store: RelationStore = Depends(get_store),
):
    product = store.get_product(payload.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if not product.is_available:
        raise HTTPException(status_code=400, detail="Product is not available")

    line = cart.add_product(product)
    logger.debug("Cart: %s x%d", line.name, line.quantity)
    return cart.snapshot()

# Quantity 0 or less removes the line
@router.put("/items/{product_id}", response_model=CartOut)
def update_cart_item(product_id: str, payload: CartUpdateItem, cart: Cart = Depends(get_cart)):
    _ensure_line(cart, product_id)
    cart.set_quantity(product_id, payload.quantity)
    return cart.snapshot()

@router.put("/items/{product_id}/notes", response_model=CartOut)
def update_cart_item_notes(product_id: str, payload: CartNotes, cart: Cart = Depends(get_cart)):
    _ensure_line(cart, product_id)
    cart.set_line_notes(product_id, payload.notes)
    return cart.snapshot()

@router.delete("/items/{product_id}", response_model=CartOut)
def delete_cart_item(product_id: str, cart: Cart = Depends(get_cart)):
    _ensure_line(cart, product_id)
    cart.remove_product(product_id)
    return cart.snapshot()

@router.put("/notes", response_model=CartOut)
def set_cart_notes(payload: CartNotes, cart: Cart = Depends(get_cart)):
    cart.set_notes(payload.notes)
    return cart.snapshot()

@router.delete("", response_model=CartOut)
def clear_cart(cart: Cart = Depends(get_cart)):
    cart.clear()
    return cart.snapshot()

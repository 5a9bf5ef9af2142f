# backend/routes/orders.py
from typing import Optional
from fastapi import APIRouter, Depends, Request, Query, status

from database import get_store
from routes.cart import get_cart
from schemas.order import OrderOut, OrderListResponse, OrderStatusPatch, OrderSubmitPayload
from services.cart import Cart
from services.orders import OrderService
from store.base import RelationStore

router = APIRouter(prefix="/orders", tags=["Orders"])

def get_order_service(request: Request, store: RelationStore = Depends(get_store)) -> OrderService:
    return OrderService(
        store,
        clock=request.app.state.clock,
        list_limit=request.app.state.settings.ORDERS_LIST_LIMIT,
        numbers=request.app.state.order_numbers,
    )

# Submit the current cart; the cart is emptied only when the order is stored
@router.post("", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
def submit_order(
    payload: OrderSubmitPayload,
    cart: Cart = Depends(get_cart),
    service: OrderService = Depends(get_order_service),
):
    return service.submit(cart, payload.payment_method, payload.notes)

# Most recent orders, newest first
@router.get("", response_model=OrderListResponse)
def list_orders(
    limit: Optional[int] = Query(None, ge=1, le=500),
    service: OrderService = Depends(get_order_service),
):
    items = service.list_recent(limit)
    return {"items": items, "total": len(items)}

@router.get("/{order_id}", response_model=OrderOut)
def get_order_detail(order_id: str, service: OrderService = Depends(get_order_service)):
    return service.get_order(order_id)

# Any status may be set from any other
@router.patch("/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: str,
    payload: OrderStatusPatch,
    service: OrderService = Depends(get_order_service),
):
    return service.set_status(order_id, payload.status)

@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(order_id: str, service: OrderService = Depends(get_order_service)):
    service.delete_order(order_id)

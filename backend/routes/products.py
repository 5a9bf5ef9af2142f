# backend/routes/products.py
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status

from database import get_store
from schemas.product import ProductCreate, ProductOut, ProductListResponse
from store.base import RelationStore

router = APIRouter(prefix="/products", tags=["Products"])

# =========================
# PRODUCT LIST
# =========================
@router.get("", response_model=ProductListResponse)
def list_products(
    include_unavailable: bool = Query(True, description="Also return products hidden from the POS"),
    category_id: Optional[str] = Query(None),
    store: RelationStore = Depends(get_store),
):
    items = store.list_products(available_only=not include_unavailable, category_id=category_id)
    return {"items": items, "total": len(items)}

@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, store: RelationStore = Depends(get_store)):
    product = store.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product

# =========================
# CRUD
# =========================
@router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(payload: ProductCreate, store: RelationStore = Depends(get_store)):
    return store.insert_product(payload)

# Price changes never touch existing orders: items keep price_at_time
@router.put("/{product_id}", response_model=ProductOut)
def update_product(product_id: str, payload: ProductCreate, store: RelationStore = Depends(get_store)):
    return store.update_product(product_id, payload)

@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: str, store: RelationStore = Depends(get_store)):
    store.delete_product(product_id)

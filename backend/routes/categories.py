# backend/routes/categories.py
from fastapi import APIRouter, Depends, HTTPException, Query, status

from database import get_store
from schemas.category import CategoryCreate, CategoryOut, CategoryListResponse
from store.base import RelationStore

router = APIRouter(prefix="/categories", tags=["Categories"])

# List categories for the management screen
@router.get("", response_model=CategoryListResponse)
def list_categories(
    include_inactive: bool = Query(True, description="Also return hidden categories"),
    store: RelationStore = Depends(get_store),
):
    items = store.list_categories(active_only=not include_inactive)
    return {"items": items, "total": len(items)}

@router.get("/{category_id}", response_model=CategoryOut)
def get_category(category_id: str, store: RelationStore = Depends(get_store)):
    category = store.get_category(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category

@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(payload: CategoryCreate, store: RelationStore = Depends(get_store)):
    return store.insert_category(payload)

# Full-row replace
@router.put("/{category_id}", response_model=CategoryOut)
def update_category(category_id: str, payload: CategoryCreate, store: RelationStore = Depends(get_store)):
    return store.update_category(category_id, payload)

# Fails with 409 while products still reference the category
@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: str, store: RelationStore = Depends(get_store)):
    store.delete_category(category_id)

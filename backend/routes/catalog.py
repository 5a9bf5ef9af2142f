# backend/routes/catalog.py
from typing import Optional, List
from fastapi import APIRouter, Depends, Query

from database import get_store
from schemas.category import CategoryOut
from schemas.product import ProductOut
from services.catalog import CatalogService
from store.base import RelationStore

router = APIRouter(
    prefix="/catalog",
    tags=["Catalog"]
)

def get_catalog_service(store: RelationStore = Depends(get_store)) -> CatalogService:
    return CatalogService(store)

# Active categories in display order (POS tabs)
@router.get("/categories", response_model=List[CategoryOut])
def list_active_categories(service: CatalogService = Depends(get_catalog_service)):
    return service.list_active_categories()

# Available products, optionally narrowed by name search and category tab
@router.get("/products", response_model=List[ProductOut])
def list_available_products(
    q: Optional[str] = Query(None, description="Search by product name"),
    category_id: Optional[str] = Query(None, description="Filter by category"),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.search_products(query=q, category_id=category_id)

# backend/services/catalog.py
from collections import Counter
from typing import Dict, List, Optional

from schemas.category import CategoryOut
from schemas.product import ProductOut
from store.base import RelationStore


class CatalogService:
    """Read views of the catalog as the POS screen shows it.

    Results reflect the store at call time; call again to see changes.
    """

    def __init__(self, store: RelationStore):
        self.store = store

    def list_active_categories(self) -> List[CategoryOut]:
        return self.store.list_categories(active_only=True)

    def list_available_products(self) -> List[ProductOut]:
        return self.store.list_products(available_only=True)

    def search_products(self, query: Optional[str] = None, category_id: Optional[str] = None) -> List[ProductOut]:
        # Name search + category tab of the POS screen
        products = self.list_available_products()
        if query:
            needle = query.strip().lower()
            products = [p for p in products if needle in p.name.lower()]
        if category_id:
            products = [p for p in products if p.category_id == category_id]
        return products

    def count_products_by_category(self) -> Dict[str, int]:
        counts = Counter(
            p.category_id for p in self.store.list_products(available_only=False) if p.category_id
        )
        return dict(counts)

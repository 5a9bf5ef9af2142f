# backend/utils/seed.py
import logging
from decimal import Decimal

from store.base import RelationStore

logger = logging.getLogger(__name__)

# Demo cafe menu: category -> [(product, price)]
DEFAULT_CATALOG = {
    "Coffee": [
        ("Americano", Decimal("3.50")),
        ("Cafe Latte", Decimal("4.25")),
        ("Cappuccino", Decimal("4.25")),
        ("Spanish Latte", Decimal("4.75")),
    ],
    "Non-Coffee": [
        ("Matcha Latte", Decimal("4.50")),
        ("Iced Chocolate", Decimal("4.00")),
    ],
    "Pastries": [
        ("Butter Croissant", Decimal("3.00")),
        ("Banana Bread", Decimal("2.75")),
    ],
}


def seed_catalog(store: RelationStore, catalog=None) -> int:
    """Load the demo menu into an empty store. Returns the number of products created."""
    catalog = catalog or DEFAULT_CATALOG
    if store.list_categories(active_only=False):
        logger.info("Catalog already populated, skipping seed")
        return 0

    created = 0
    for position, (category_name, products) in enumerate(catalog.items()):
        category = store.insert_category({"name": category_name, "display_order": position})
        for name, price in products:
            store.insert_product({"name": name, "price": price, "category_id": category.id})
            created += 1

    logger.info("Seeded %d categories and %d products", len(catalog), created)
    return created

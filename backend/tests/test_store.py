# backend/tests/test_store.py
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import text

from store.sql import SqlRelationStore, SCHEMA_VERSION
from utils.errors import (
    NotFoundError, PersistenceError, ReferentialIntegrityError, ValidationError,
)


def _header(number="ORD-1", total="7.00", **extra):
    data = {
        "order_number": number,
        "total_amount": total,
        "payment_method": "cash",
        "created_at": datetime(2026, 3, 2, 10, 0),
    }
    data.update(extra)
    return data


def _count(store, table):
    with store.engine.connect() as conn:
        return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()


# ---- lifecycle / snapshot ----

def test_initialize_creates_versioned_snapshot(storage):
    store = SqlRelationStore(storage)
    store.initialize()
    store.initialize()

    blob = storage.get("cafebianca_db")
    assert blob is not None
    conn = sqlite3.connect(":memory:")
    conn.deserialize(blob)
    assert conn.execute("PRAGMA user_version").fetchone()[0] == SCHEMA_VERSION
    tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"categories", "products", "orders", "order_items"} <= tables
    store.close()


def test_every_mutation_is_durable_after_return(storage, store, catalog):
    reopened = SqlRelationStore(storage)
    reopened.initialize()

    assert [c.name for c in reopened.list_categories()] == ["Coffee", "Pastries"]
    assert {p.name for p in reopened.list_products()} == {"Latte", "Mocha", "Croissant"}
    reopened.close()


def test_operations_require_initialize(storage):
    store = SqlRelationStore(storage)
    with pytest.raises(PersistenceError):
        store.list_categories()


def test_snapshot_from_newer_schema_is_refused(storage):
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE marker (x INTEGER)")
    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION + 1}")
    storage.put("cafebianca_db", conn.serialize())

    with pytest.raises(PersistenceError):
        SqlRelationStore(storage).initialize()


def test_corrupt_snapshot_is_reported(storage):
    storage.put("cafebianca_db", b"definitely not sqlite" * 100)

    with pytest.raises(PersistenceError):
        SqlRelationStore(storage).initialize()


def test_failed_snapshot_write_rolls_back_in_memory_state(store, storage, monkeypatch):
    before = storage.get("cafebianca_db")

    def broken_put(key, data):
        raise OSError("disk full")

    monkeypatch.setattr(storage, "put", broken_put)
    with pytest.raises(PersistenceError):
        store.insert_category({"name": "Tea"})

    assert store.list_categories(active_only=False) == []
    assert storage.get("cafebianca_db") == before


def test_snapshot_key_is_configurable(storage):
    store = SqlRelationStore(storage, key="till_2")
    store.initialize()
    store.insert_category({"name": "Tea"})

    assert storage.get("till_2") is not None
    assert storage.get("cafebianca_db") is None
    store.close()


# ---- categories ----

def test_category_defaults_and_ordering(store):
    store.insert_category({"name": "Tea", "display_order": 3})
    store.insert_category({"name": "Coffee", "display_order": 1, "description": ""})
    store.insert_category({"name": "Seasonal", "display_order": 0, "is_active": False})

    active = store.list_categories()
    assert [c.name for c in active] == ["Coffee", "Tea"]
    assert active[0].description is None
    assert active[0].is_active is True
    assert [c.name for c in store.list_categories(active_only=False)] == ["Seasonal", "Coffee", "Tea"]


def test_category_name_must_be_unique_and_non_empty(store):
    store.insert_category({"name": "Coffee", "is_active": False})

    with pytest.raises(ValidationError):
        store.insert_category({"name": "Coffee"})
    with pytest.raises(ValidationError):
        store.insert_category({"name": "   "})


def test_update_category_replaces_row(store):
    category = store.insert_category({"name": "Coffee", "description": "Hot", "display_order": 4})
    updated = store.update_category(category.id, {"name": "Espresso Bar"})

    assert updated.name == "Espresso Bar"
    assert updated.description is None
    assert updated.display_order == 0
    assert updated.created_at == category.created_at


def test_update_category_rejects_name_of_another_category(store):
    store.insert_category({"name": "Coffee"})
    tea = store.insert_category({"name": "Tea"})

    with pytest.raises(ValidationError):
        store.update_category(tea.id, {"name": "Coffee"})
    assert store.update_category(tea.id, {"name": "Tea", "display_order": 2}).display_order == 2


def test_update_missing_category(store):
    with pytest.raises(NotFoundError):
        store.update_category("nope", {"name": "X"})


def test_delete_category_blocked_while_products_reference_it(store, catalog):
    pastries = catalog["pastries"]

    with pytest.raises(ReferentialIntegrityError) as excinfo:
        store.delete_category(pastries.id)
    assert excinfo.value.product_count == 1
    assert store.get_category(pastries.id) is not None

    store.delete_product(catalog["croissant"].id)
    store.delete_category(pastries.id)
    assert store.get_category(pastries.id) is None


def test_delete_missing_category(store):
    with pytest.raises(NotFoundError):
        store.delete_category("nope")


# ---- products ----

def test_products_listed_by_name_and_filtered(store, catalog):
    store.update_product(catalog["mocha"].id, {
        "name": "Mocha", "price": "5.00", "category_id": catalog["coffee"].id, "is_available": False,
    })

    assert [p.name for p in store.list_products()] == ["Croissant", "Latte"]
    assert [p.name for p in store.list_products(available_only=False)] == ["Croissant", "Latte", "Mocha"]
    assert [p.name for p in store.list_products(category_id=catalog["coffee"].id)] == ["Latte"]


def test_product_validation(store):
    with pytest.raises(ValidationError):
        store.insert_product({"name": "", "price": "1.00"})
    with pytest.raises(ValidationError):
        store.insert_product({"name": "Tea", "price": "-1"})
    with pytest.raises(ValidationError):
        store.insert_product({"name": "Tea"})
    with pytest.raises(ValidationError):
        store.insert_product({"name": "Tea", "price": "1.00", "category_id": "missing"})


def test_uncategorized_product(store):
    product = store.insert_product({"name": "Water", "price": 1, "category_id": ""})

    assert product.category_id is None
    assert product.price == Decimal("1.00")
    assert product.is_available is True


def test_update_and_delete_missing_product(store):
    with pytest.raises(NotFoundError):
        store.update_product("nope", {"name": "X", "price": "1.00"})
    with pytest.raises(NotFoundError):
        store.delete_product("nope")


# ---- orders ----

def test_create_order_writes_header_and_items(store, catalog):
    order = store.create_order(_header(), [
        {"product_id": catalog["latte"].id, "quantity": 2, "price_at_time": "3.50", "notes": "hot"},
    ])

    assert order.status == "pending"
    assert order.completed_at is None
    assert order.items[0].product_name == "Latte"
    assert order.items[0].line_total == Decimal("7.00")
    assert _count(store, "orders") == 1
    assert _count(store, "order_items") == 1


def test_create_order_without_items_is_rejected(store):
    with pytest.raises(ValidationError):
        store.create_order(_header(), [])
    assert _count(store, "orders") == 0


def test_create_order_is_all_or_nothing(store, catalog):
    store.create_order(_header("ORD-1"), [
        {"product_id": catalog["latte"].id, "quantity": 1, "price_at_time": "3.50"},
    ])

    # Duplicate order number fails at commit; no header or item may survive
    with pytest.raises(ValidationError):
        store.create_order(_header("ORD-1"), [
            {"product_id": catalog["mocha"].id, "quantity": 1, "price_at_time": "5.00"},
            {"product_id": catalog["latte"].id, "quantity": 1, "price_at_time": "3.50"},
        ])
    assert _count(store, "orders") == 1
    assert _count(store, "order_items") == 1


def test_unknown_status_rejected(store, catalog):
    order = store.create_order(_header(), [
        {"product_id": catalog["latte"].id, "quantity": 1, "price_at_time": "3.50"},
    ])
    with pytest.raises(ValidationError):
        store.update_order_status(order.id, "refunded")
    with pytest.raises(NotFoundError):
        store.update_order_status("nope", "completed")


def test_delete_order_removes_items(store, catalog):
    order = store.create_order(_header(), [
        {"product_id": catalog["latte"].id, "quantity": 1, "price_at_time": "3.50"},
        {"product_id": catalog["mocha"].id, "quantity": 1, "price_at_time": "5.00"},
    ])
    store.delete_order(order.id)

    assert store.get_order(order.id) is None
    assert _count(store, "order_items") == 0
    with pytest.raises(NotFoundError):
        store.delete_order(order.id)


def test_deleted_product_keeps_order_history(store, catalog):
    order = store.create_order(_header(), [
        {"product_id": catalog["mocha"].id, "quantity": 2, "price_at_time": "5.00"},
    ])
    store.delete_product(catalog["mocha"].id)

    item = store.get_order(order.id).items[0]
    assert item.product_id == catalog["mocha"].id
    assert item.product_name == "Deleted product"
    assert item.price_at_time == Decimal("5.00")


def test_list_orders_filters_and_sorting(store, catalog):
    line = [{"product_id": catalog["latte"].id, "quantity": 1, "price_at_time": "3.50"}]
    first = store.create_order(_header("ORD-1", created_at=datetime(2026, 3, 1, 9)), line)
    second = store.create_order(_header("ORD-2", created_at=datetime(2026, 3, 2, 9)), line)
    third = store.create_order(_header("ORD-3", created_at=datetime(2026, 3, 3, 9)), line)
    store.update_order_status(second.id, "completed", datetime(2026, 3, 2, 10))

    assert [o.id for o in store.list_orders()] == [third.id, second.id, first.id]
    assert [o.id for o in store.list_orders(limit=2)] == [third.id, second.id]
    assert [o.id for o in store.list_orders(newest_first=False)] == [first.id, second.id, third.id]
    assert [o.id for o in store.list_orders(status="completed")] == [second.id]
    window = store.list_orders(date_from=datetime(2026, 3, 2), date_to=datetime(2026, 3, 2, 23, 59))
    assert [o.id for o in window] == [second.id]


def _shifted_zone(hours):
    # A fixed offset that differs from the host's local offset
    local_offset = datetime(2026, 3, 2, 9, 30).astimezone().utcoffset()
    return timezone(local_offset + timedelta(hours=hours))


def test_list_orders_converts_aware_window_to_local_time(store, catalog):
    item = {"product_id": catalog["latte"].id, "quantity": 2, "price_at_time": "3.50"}
    order = store.create_order(_header(created_at=datetime(2026, 3, 2, 9, 30)), [item])
    zone = _shifted_zone(8)

    same_instant = store.list_orders(
        date_from=datetime(2026, 3, 2, 9, 0).astimezone(zone),
        date_to=datetime(2026, 3, 2, 10, 0).astimezone(zone),
    )
    same_wall_clock = store.list_orders(
        date_from=datetime(2026, 3, 2, 9, 0, tzinfo=zone),
        date_to=datetime(2026, 3, 2, 10, 0, tzinfo=zone),
    )

    assert [o.id for o in same_instant] == [order.id]
    assert same_wall_clock == []


def test_aware_timestamps_are_stored_as_local_time(store, catalog):
    zone = _shifted_zone(-3)
    created = datetime(2026, 3, 2, 9, 30).astimezone(zone)
    item = {"product_id": catalog["latte"].id, "quantity": 1, "price_at_time": "3.50"}

    order = store.create_order(_header(created_at=created), [item])
    completed = store.update_order_status(order.id, "completed", created + timedelta(minutes=5))

    assert order.created_at == datetime(2026, 3, 2, 9, 30)
    assert completed.completed_at == datetime(2026, 3, 2, 9, 35)


def test_concurrent_writes_and_reads_stay_consistent(storage, store, catalog):
    item = {"product_id": catalog["croissant"].id, "quantity": 1, "price_at_time": "2.25"}

    def submit(n):
        store.create_order(_header(number=f"ORD-{n:04d}", total="2.25"), [item])
        return len(store.list_orders(limit=5))

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(submit, range(40)))

    assert _count(store, "orders") == 40
    assert _count(store, "order_items") == 40

    reopened = SqlRelationStore(storage)
    reopened.initialize()
    orders = reopened.list_orders()
    assert len(orders) == 40
    assert all(len(o.items) == 1 for o in orders)
    reopened.close()

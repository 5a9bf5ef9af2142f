# backend/tests/conftest.py
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app
from schemas.product import ProductOut
from services.orders import OrderService
from store.snapshot import SnapshotStorage
from store.sql import SqlRelationStore


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_product(product_id: str, name: str, price: str, **extra) -> ProductOut:
    return ProductOut(
        id=product_id,
        name=name,
        price=Decimal(price),
        created_at=datetime(2026, 1, 1),
        **extra,
    )


@pytest.fixture
def storage(tmp_path):
    return SnapshotStorage(tmp_path / "data")


@pytest.fixture
def store(storage):
    s = SqlRelationStore(storage)
    s.initialize()
    yield s
    s.close()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 30))


@pytest.fixture
def orders(store, clock):
    return OrderService(store, clock=clock)


@pytest.fixture
def catalog(store):
    coffee = store.insert_category({"name": "Coffee", "display_order": 1})
    pastries = store.insert_category({"name": "Pastries", "display_order": 2})
    latte = store.insert_product({"name": "Latte", "price": "3.50", "category_id": coffee.id})
    mocha = store.insert_product({"name": "Mocha", "price": "5.00", "category_id": coffee.id})
    croissant = store.insert_product({"name": "Croissant", "price": "2.25", "category_id": pastries.id})
    return {
        "coffee": coffee,
        "pastries": pastries,
        "latte": latte,
        "mocha": mocha,
        "croissant": croissant,
    }


@pytest.fixture
def settings(tmp_path):
    return Settings(_env_file=None, DATA_DIR=str(tmp_path / "api-data"), STORE_BACKEND="embedded")


@pytest.fixture
def client(settings, store, clock):
    app = create_app(settings, store=store)
    app.state.clock = clock
    return TestClient(app)

# backend/store/sql.py
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import create_engine, event, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, selectinload
from sqlalchemy.pool import StaticPool

from database import Base
from models.category import Category
from models.product import Product
from models.order import Order, OrderItem
from schemas.category import CategoryOut
from schemas.product import ProductOut
from schemas.order import OrderOut, OrderItemOut
from store.base import (
    RelationStore, Payload, DELETED_PRODUCT_NAME, local_naive,
    validate_category, validate_product, validate_order, validate_status,
)
from store.snapshot import SnapshotStorage
from utils.errors import (
    NotFoundError, PersistenceError, ReferentialIntegrityError, ValidationError,
)

logger = logging.getLogger(__name__)

# Stored in PRAGMA user_version of every snapshot
SCHEMA_VERSION = 1


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Map Order model to OrderOut schema
def _order_to_out(order: Order) -> OrderOut:
    items: List[OrderItemOut] = []
    for it in order.items:
        items.append(OrderItemOut(
            id=it.id,
            order_id=it.order_id,
            product_id=it.product_id,
            product_name=it.product.name if it.product else DELETED_PRODUCT_NAME,
            quantity=it.quantity,
            price_at_time=it.price_at_time,
            notes=it.notes,
            created_at=it.created_at,
        ))
    return OrderOut(
        id=order.id,
        order_number=order.order_number,
        customer_name=order.customer_name,
        total_amount=order.total_amount,
        status=order.status,
        payment_method=order.payment_method,
        created_at=order.created_at,
        completed_at=order.completed_at,
        items=items,
    )


class SqlRelationStore(RelationStore):
    """Embedded store: an in-memory SQLite database persisted as one snapshot.

    Every successful mutation serializes the whole database and writes it
    under `key` before returning. If that write fails the in-memory database
    is rolled back to the last persisted snapshot.

    All sessions share one sqlite3 connection; every read, write and
    snapshot operation holds `_lock` for its whole duration.
    """

    def __init__(self, storage: SnapshotStorage, key: str = "cafebianca_db"):
        self.storage = storage
        self.key = key
        self.engine = create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        event.listen(self.engine, "connect", _enable_foreign_keys)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        self._initialized = False
        self._last_snapshot: Optional[bytes] = None
        self._lock = threading.RLock()

    # ---- lifecycle / snapshot ----

    @contextmanager
    def _raw(self):
        # sqlite3.Connection behind the single pooled connection
        fairy = self.engine.raw_connection()
        try:
            yield fairy.driver_connection
        finally:
            fairy.close()

    def initialize(self) -> None:
        with self._lock:
            self._initialize()

    def _initialize(self) -> None:
        if self._initialized:
            return

        try:
            blob = self.storage.get(self.key)
        except OSError as e:
            raise PersistenceError(f"Cannot read snapshot {self.key}: {e}") from e

        with self._raw() as raw:
            try:
                if blob:
                    raw.deserialize(blob)
                version = raw.execute("PRAGMA user_version").fetchone()[0]
            except sqlite3.DatabaseError as e:
                raise PersistenceError(f"Snapshot {self.key} is not a valid database: {e}") from e

        if version > SCHEMA_VERSION:
            raise PersistenceError(
                f"Snapshot {self.key} has schema version {version}, this build supports {SCHEMA_VERSION}"
            )

        Base.metadata.create_all(bind=self.engine)

        if blob and version == SCHEMA_VERSION:
            self._last_snapshot = blob
            logger.info("Loaded existing database from snapshot %s", self.key)
        else:
            with self._raw() as raw:
                raw.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            self._persist()
            logger.info("Created database snapshot %s (schema v%d)", self.key, SCHEMA_VERSION)

        self._initialized = True

    def close(self) -> None:
        with self._lock:
            self.engine.dispose()
            self._initialized = False

    def _persist(self) -> None:
        with self._lock:
            with self._raw() as raw:
                data = raw.serialize()
            try:
                self.storage.put(self.key, data)
            except OSError as e:
                logger.exception("Failed to write snapshot %s", self.key)
                self._restore()
                raise PersistenceError(f"Cannot write snapshot {self.key}: {e}") from e
            self._last_snapshot = data

    def _restore(self) -> None:
        with self._lock:
            if self._last_snapshot is None:
                Base.metadata.drop_all(bind=self.engine)
                Base.metadata.create_all(bind=self.engine)
                return
            with self._raw() as raw:
                raw.deserialize(self._last_snapshot)

    def _ensure_ready(self) -> None:
        if not self._initialized:
            raise PersistenceError("Database not initialized. Call initialize() first.")

    @contextmanager
    def _read(self):
        with self._lock:
            self._ensure_ready()
            session: Session = self.SessionLocal()
            try:
                yield session
            except SQLAlchemyError as e:
                logger.exception("Read failed")
                raise PersistenceError(f"Database read failed: {e}") from e
            finally:
                session.close()

    @contextmanager
    def _write(self):
        # One session == one transaction == one snapshot write
        with self._lock:
            self._ensure_ready()
            session: Session = self.SessionLocal()
            try:
                yield session
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise ValidationError(f"Constraint violated: {e.orig}") from e
            except SQLAlchemyError as e:
                session.rollback()
                logger.exception("Write failed")
                raise PersistenceError(f"Database write failed: {e}") from e
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
            self._persist()

    # ---- categories ----

    def _check_category_name(self, session: Session, name: str, exclude_id: Optional[str] = None) -> None:
        q = session.query(Category).filter(Category.name == name)
        if exclude_id:
            q = q.filter(Category.id != exclude_id)
        if q.first():
            raise ValidationError(f"Category name already exists: {name}")

    def list_categories(self, active_only: bool = True) -> List[CategoryOut]:
        with self._read() as db:
            query = db.query(Category)
            if active_only:
                query = query.filter(Category.is_active.is_(True))
            rows = query.order_by(Category.display_order.asc(), Category.name.asc()).all()
            return [CategoryOut.model_validate(c) for c in rows]

    def get_category(self, category_id: str) -> Optional[CategoryOut]:
        with self._read() as db:
            category = db.get(Category, category_id)
            return CategoryOut.model_validate(category) if category else None

    def insert_category(self, data: Payload) -> CategoryOut:
        payload = validate_category(data)
        with self._write() as db:
            self._check_category_name(db, payload.name)
            category = Category(**payload.model_dump())
            db.add(category)
            db.flush()
            out = CategoryOut.model_validate(category)
        logger.info("Category %s created (%s)", out.id, out.name)
        return out

    def update_category(self, category_id: str, data: Payload) -> CategoryOut:
        payload = validate_category(data)
        with self._write() as db:
            category = db.get(Category, category_id)
            if not category:
                raise NotFoundError(f"Category {category_id} not found")
            self._check_category_name(db, payload.name, exclude_id=category_id)
            for field, value in payload.model_dump().items():
                setattr(category, field, value)
            db.flush()
            out = CategoryOut.model_validate(category)
        logger.info("Category %s updated", category_id)
        return out

    def delete_category(self, category_id: str) -> None:
        # Dependent check and delete share one transaction
        with self._write() as db:
            category = db.get(Category, category_id)
            if not category:
                raise NotFoundError(f"Category {category_id} not found")
            count = db.query(func.count(Product.id)).filter(Product.category_id == category_id).scalar()
            if count:
                raise ReferentialIntegrityError(category_id, count)
            db.delete(category)
        logger.info("Category %s deleted", category_id)

    # ---- products ----

    def _check_category_exists(self, session: Session, category_id: Optional[str]) -> None:
        if category_id and not session.get(Category, category_id):
            raise ValidationError(f"Unknown category: {category_id}")

    def list_products(self, available_only: bool = True, category_id: Optional[str] = None) -> List[ProductOut]:
        with self._read() as db:
            query = db.query(Product)
            if available_only:
                query = query.filter(Product.is_available.is_(True))
            if category_id:
                query = query.filter(Product.category_id == category_id)
            rows = query.order_by(Product.name.asc()).all()
            return [ProductOut.model_validate(p) for p in rows]

    def get_product(self, product_id: str) -> Optional[ProductOut]:
        with self._read() as db:
            product = db.get(Product, product_id)
            return ProductOut.model_validate(product) if product else None

    def insert_product(self, data: Payload) -> ProductOut:
        payload = validate_product(data)
        with self._write() as db:
            self._check_category_exists(db, payload.category_id)
            product = Product(**payload.model_dump())
            db.add(product)
            db.flush()
            out = ProductOut.model_validate(product)
        logger.info("Product %s created (%s, %s)", out.id, out.name, out.price)
        return out

    def update_product(self, product_id: str, data: Payload) -> ProductOut:
        payload = validate_product(data)
        with self._write() as db:
            product = db.get(Product, product_id)
            if not product:
                raise NotFoundError(f"Product {product_id} not found")
            self._check_category_exists(db, payload.category_id)
            for field, value in payload.model_dump().items():
                setattr(product, field, value)
            db.flush()
            out = ProductOut.model_validate(product)
        logger.info("Product %s updated", product_id)
        return out

    def delete_product(self, product_id: str) -> None:
        with self._write() as db:
            product = db.get(Product, product_id)
            if not product:
                raise NotFoundError(f"Product {product_id} not found")
            db.delete(product)
        logger.info("Product %s deleted", product_id)

    # ---- orders ----

    def _load_order(self, session: Session, order_id: str) -> Optional[Order]:
        return (
            session.query(Order)
            .options(selectinload(Order.items).selectinload(OrderItem.product))
            .filter(Order.id == order_id)
            .first()
        )

    def create_order(self, header: Payload, items: Iterable[Payload]) -> OrderOut:
        order_data, lines = validate_order(header, items)
        created_at = local_naive(order_data.created_at)
        with self._write() as db:
            order = Order(**{**order_data.model_dump(), "created_at": created_at})
            order.items = [
                OrderItem(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price_at_time=line.price_at_time,
                    notes=line.notes,
                    position=position,
                    created_at=created_at,
                )
                for position, line in enumerate(lines)
            ]
            db.add(order)
            db.flush()
            out = _order_to_out(self._load_order(db, order.id))
        logger.info("Order %s stored with %d item(s)", out.order_number, len(out.items))
        return out

    def get_order(self, order_id: str) -> Optional[OrderOut]:
        with self._read() as db:
            order = self._load_order(db, order_id)
            return _order_to_out(order) if order else None

    def update_order_status(self, order_id: str, status: str, completed_at: Optional[datetime] = None) -> OrderOut:
        validate_status(status)
        with self._write() as db:
            order = self._load_order(db, order_id)
            if not order:
                raise NotFoundError(f"Order {order_id} not found")
            order.status = status
            order.completed_at = local_naive(completed_at)
            db.flush()
            out = _order_to_out(order)
        return out

    def delete_order(self, order_id: str) -> None:
        with self._write() as db:
            order = self._load_order(db, order_id)
            if not order:
                raise NotFoundError(f"Order {order_id} not found")
            # Loaded items are deleted by the cascade before the header
            db.delete(order)

    def list_orders(
        self,
        limit: Optional[int] = None,
        status: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        newest_first: bool = True,
    ) -> List[OrderOut]:
        with self._read() as db:
            query = db.query(Order).options(selectinload(Order.items).selectinload(OrderItem.product))
            if status:
                query = query.filter(Order.status == status)
            if date_from:
                query = query.filter(Order.created_at >= local_naive(date_from))
            if date_to:
                query = query.filter(Order.created_at <= local_naive(date_to))
            if newest_first:
                query = query.order_by(Order.created_at.desc(), Order.order_number.desc())
            else:
                query = query.order_by(Order.created_at.asc(), Order.order_number.asc())
            if limit:
                query = query.limit(limit)
            return [_order_to_out(o) for o in query.all()]

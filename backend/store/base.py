# backend/store/base.py
"""
Persistence port shared by the embedded and the hosted backends.

Services are written once against `RelationStore`; each backend maps the
four relations (categories, products, orders, order_items) onto its own
storage and returns the pydantic row schemas.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Type, TypeVar, Union

import pydantic
from pydantic import BaseModel

from schemas.category import CategoryCreate, CategoryOut
from schemas.product import ProductCreate, ProductOut
from schemas.order import OrderCreate, OrderItemCreate, OrderOut
from utils.errors import ValidationError

DELETED_PRODUCT_NAME = "Deleted product"
ORDER_STATUSES = ("pending", "completed", "cancelled")

SchemaT = TypeVar("SchemaT", bound=BaseModel)
Payload = Union[BaseModel, Mapping[str, Any]]


def validate_payload(schema: Type[SchemaT], data: Payload) -> SchemaT:
    """Coerce a write payload into `schema`, raising the domain ValidationError."""
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump()
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "payload" for err in e.errors())
        raise ValidationError(f"Invalid {schema.__name__}: {fields}") from e


def local_naive(dt: Optional[datetime]) -> Optional[datetime]:
    # Stored timestamps are naive local wall-clock time
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


def validate_status(status: str) -> str:
    if status not in ORDER_STATUSES:
        raise ValidationError(f"Unknown order status: {status}")
    return status


class RelationStore(ABC):

    @abstractmethod
    def initialize(self) -> None:
        """Load or create the store. Safe to call more than once."""

    def close(self) -> None:
        pass

    # ---- categories ----
    @abstractmethod
    def list_categories(self, active_only: bool = True) -> List[CategoryOut]: ...

    @abstractmethod
    def get_category(self, category_id: str) -> Optional[CategoryOut]: ...

    @abstractmethod
    def insert_category(self, data: Payload) -> CategoryOut: ...

    @abstractmethod
    def update_category(self, category_id: str, data: Payload) -> CategoryOut: ...

    @abstractmethod
    def delete_category(self, category_id: str) -> None: ...

    # ---- products ----
    @abstractmethod
    def list_products(self, available_only: bool = True, category_id: Optional[str] = None) -> List[ProductOut]: ...

    @abstractmethod
    def get_product(self, product_id: str) -> Optional[ProductOut]: ...

    @abstractmethod
    def insert_product(self, data: Payload) -> ProductOut: ...

    @abstractmethod
    def update_product(self, product_id: str, data: Payload) -> ProductOut: ...

    @abstractmethod
    def delete_product(self, product_id: str) -> None: ...

    # ---- orders ----
    @abstractmethod
    def create_order(self, header: Payload, items: Iterable[Payload]) -> OrderOut:
        """Write one order header and its items as a single unit."""

    @abstractmethod
    def get_order(self, order_id: str) -> Optional[OrderOut]: ...

    @abstractmethod
    def update_order_status(self, order_id: str, status: str, completed_at: Optional[datetime] = None) -> OrderOut: ...

    @abstractmethod
    def delete_order(self, order_id: str) -> None:
        """Remove the order items, then the order header."""

    @abstractmethod
    def list_orders(
        self,
        limit: Optional[int] = None,
        status: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        newest_first: bool = True,
    ) -> List[OrderOut]: ...


def validate_order(header: Payload, items: Iterable[Payload]):
    order = validate_payload(OrderCreate, header)
    lines = [validate_payload(OrderItemCreate, it) for it in items]
    if not lines:
        raise ValidationError("An order needs at least one item")
    return order, lines


def validate_category(data: Payload) -> CategoryCreate:
    return validate_payload(CategoryCreate, data)


def validate_product(data: Payload) -> ProductCreate:
    return validate_payload(ProductCreate, data)

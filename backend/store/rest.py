# backend/store/rest.py
import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional, Type

import httpx

from schemas.category import CategoryOut
from schemas.product import ProductOut
from schemas.order import OrderOut
from store.base import (
    RelationStore, Payload, DELETED_PRODUCT_NAME,
    validate_category, validate_product, validate_order, validate_status,
)
from utils.errors import (
    NotFoundError, PersistenceError, PosError, ReferentialIntegrityError,
    SubmissionError, ValidationError,
)

logger = logging.getLogger(__name__)

ORDER_SELECT = "*,order_items(*,products(name))"


def _eq(value: Any) -> str:
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


def _aware(dt: datetime) -> datetime:
    # Naive timestamps are local wall-clock time
    return dt if dt.tzinfo else dt.astimezone()


def _order_from_row(row: dict) -> OrderOut:
    items = []
    for it in row.get("order_items") or []:
        product = it.get("products") or {}
        items.append({**it, "product_name": product.get("name") or DELETED_PRODUCT_NAME})
    data = {k: v for k, v in row.items() if k != "order_items"}
    return OrderOut.model_validate({**data, "items": items})


class RestRelationStore(RelationStore):
    """Hosted store speaking the PostgREST dialect (`/rest/v1/<relation>`).

    There is no multi-request transaction on this API: `create_order`
    compensates a failed item insert by deleting the freshly written header.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self.client = httpx.Client(
            base_url=base_url.rstrip("/") + "/rest/v1",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self._initialized = False

    def _request(
        self,
        method: str,
        path: str,
        *,
        params=None,
        json=None,
        returning: bool = False,
        error_cls: Type[PersistenceError] = PersistenceError,
    ):
        headers = {"Prefer": "return=representation"} if returning else None
        try:
            response = self.client.request(method, path, params=params, json=json, headers=headers)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error("%s %s timed out: %s", method, path, e)
            raise error_cls(f"Request to {path} timed out") from e
        except httpx.HTTPStatusError as e:
            detail = e.response.text
            logger.error("%s %s failed (%s): %s", method, path, e.response.status_code, detail)
            if 400 <= e.response.status_code < 500:
                raise ValidationError(f"Rejected by backend: {detail}") from e
            raise error_cls(f"Backend error {e.response.status_code}: {detail}") from e
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise error_cls(f"Request to {path} failed: {e}") from e
        return response.json() if response.content else None

    def initialize(self) -> None:
        if self._initialized:
            return
        self._request("GET", "/categories", params={"select": "id", "limit": "1"})
        self._initialized = True
        logger.info("Connected to hosted backend %s", self.client.base_url)

    def close(self) -> None:
        self.client.close()

    def _first(self, rows) -> Optional[dict]:
        return rows[0] if rows else None

    # ---- categories ----

    def list_categories(self, active_only: bool = True) -> List[CategoryOut]:
        params = [("select", "*"), ("order", "display_order.asc,name.asc")]
        if active_only:
            params.append(("is_active", _eq(True)))
        return [CategoryOut.model_validate(r) for r in self._request("GET", "/categories", params=params)]

    def get_category(self, category_id: str) -> Optional[CategoryOut]:
        row = self._first(self._request("GET", "/categories", params={"id": _eq(category_id)}))
        return CategoryOut.model_validate(row) if row else None

    def insert_category(self, data: Payload) -> CategoryOut:
        payload = validate_category(data)
        rows = self._request("POST", "/categories", json=payload.model_dump(mode="json"), returning=True)
        return CategoryOut.model_validate(rows[0])

    def update_category(self, category_id: str, data: Payload) -> CategoryOut:
        payload = validate_category(data)
        rows = self._request(
            "PATCH", "/categories", params={"id": _eq(category_id)},
            json=payload.model_dump(mode="json"), returning=True,
        )
        if not rows:
            raise NotFoundError(f"Category {category_id} not found")
        return CategoryOut.model_validate(rows[0])

    def delete_category(self, category_id: str) -> None:
        dependents = self._request(
            "GET", "/products", params={"select": "id", "category_id": _eq(category_id)}
        )
        if dependents:
            raise ReferentialIntegrityError(category_id, len(dependents))
        rows = self._request("DELETE", "/categories", params={"id": _eq(category_id)}, returning=True)
        if not rows:
            raise NotFoundError(f"Category {category_id} not found")

    # ---- products ----

    def list_products(self, available_only: bool = True, category_id: Optional[str] = None) -> List[ProductOut]:
        params = [("select", "*"), ("order", "name.asc")]
        if available_only:
            params.append(("is_available", _eq(True)))
        if category_id:
            params.append(("category_id", _eq(category_id)))
        return [ProductOut.model_validate(r) for r in self._request("GET", "/products", params=params)]

    def get_product(self, product_id: str) -> Optional[ProductOut]:
        row = self._first(self._request("GET", "/products", params={"id": _eq(product_id)}))
        return ProductOut.model_validate(row) if row else None

    def insert_product(self, data: Payload) -> ProductOut:
        payload = validate_product(data)
        rows = self._request("POST", "/products", json=payload.model_dump(mode="json"), returning=True)
        return ProductOut.model_validate(rows[0])

    def update_product(self, product_id: str, data: Payload) -> ProductOut:
        payload = validate_product(data)
        rows = self._request(
            "PATCH", "/products", params={"id": _eq(product_id)},
            json=payload.model_dump(mode="json"), returning=True,
        )
        if not rows:
            raise NotFoundError(f"Product {product_id} not found")
        return ProductOut.model_validate(rows[0])

    def delete_product(self, product_id: str) -> None:
        rows = self._request("DELETE", "/products", params={"id": _eq(product_id)}, returning=True)
        if not rows:
            raise NotFoundError(f"Product {product_id} not found")

    # ---- orders ----

    def create_order(self, header: Payload, items: Iterable[Payload]) -> OrderOut:
        order_data, lines = validate_order(header, items)
        body = order_data.model_dump(mode="json")
        body["created_at"] = _aware(order_data.created_at).isoformat()

        rows = self._request("POST", "/orders", json=body, returning=True, error_cls=SubmissionError)
        order_row = rows[0]
        order_id = order_row["id"]

        item_rows = [
            {**line.model_dump(mode="json"), "order_id": order_id, "created_at": body["created_at"]}
            for line in lines
        ]
        try:
            inserted = self._request(
                "POST", "/order_items", params={"select": "*,products(name)"},
                json=item_rows, returning=True, error_cls=SubmissionError,
            )
        except PosError as e:
            logger.error("Order %s items failed, removing header", order_row.get("order_number"))
            try:
                self._request("DELETE", "/orders", params={"id": _eq(order_id)})
            except PosError:
                logger.exception("Compensating delete of order %s failed", order_id)
            raise SubmissionError(f"Order items could not be stored: {e.message}") from e

        logger.info("Order %s stored with %d item(s)", order_row.get("order_number"), len(inserted))
        return _order_from_row({**order_row, "order_items": inserted})

    def get_order(self, order_id: str) -> Optional[OrderOut]:
        row = self._first(self._request("GET", "/orders", params={"select": ORDER_SELECT, "id": _eq(order_id)}))
        return _order_from_row(row) if row else None

    def update_order_status(self, order_id: str, status: str, completed_at: Optional[datetime] = None) -> OrderOut:
        validate_status(status)
        body = {"status": status, "completed_at": _aware(completed_at).isoformat() if completed_at else None}
        rows = self._request(
            "PATCH", "/orders", params={"select": ORDER_SELECT, "id": _eq(order_id)},
            json=body, returning=True,
        )
        if not rows:
            raise NotFoundError(f"Order {order_id} not found")
        return _order_from_row(rows[0])

    def delete_order(self, order_id: str) -> None:
        self._request("DELETE", "/order_items", params={"order_id": _eq(order_id)})
        rows = self._request("DELETE", "/orders", params={"id": _eq(order_id)}, returning=True)
        if not rows:
            raise NotFoundError(f"Order {order_id} not found")

    def list_orders(
        self,
        limit: Optional[int] = None,
        status: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        newest_first: bool = True,
    ) -> List[OrderOut]:
        direction = "desc" if newest_first else "asc"
        params = [("select", ORDER_SELECT), ("order", f"created_at.{direction},order_number.{direction}")]
        if status:
            params.append(("status", _eq(status)))
        if date_from:
            params.append(("created_at", f"gte.{_aware(date_from).isoformat()}"))
        if date_to:
            params.append(("created_at", f"lte.{_aware(date_to).isoformat()}"))
        if limit:
            params.append(("limit", str(limit)))
        return [_order_from_row(r) for r in self._request("GET", "/orders", params=params)]

# backend/services/orders.py
import logging
import threading
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List, Optional

from schemas.order import OrderOut
from services.cart import Cart
from store.base import RelationStore, validate_status
from utils.errors import EmptyOrderError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ("cash", "gcash")
DEFAULT_LIST_LIMIT = 50


class OrderNumberSequence:
    """Timestamp based order numbers, strictly increasing within one sequence.

    The app keeps one sequence on `app.state` so every request draws from it.
    """

    def __init__(self):
        self._last_issued = 0
        self._lock = threading.Lock()

    def next(self, now: datetime) -> str:
        stamp = int(now.strftime("%Y%m%d%H%M%S%f"))
        with self._lock:
            if stamp <= self._last_issued:
                stamp = self._last_issued + 1
            self._last_issued = stamp
        return f"ORD-{stamp}"


def money(value) -> Decimal:
    return Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class OrderService:
    """Turns the cart into stored orders and manages their lifecycle."""

    def __init__(
        self,
        store: RelationStore,
        clock: Callable[[], datetime] = datetime.now,
        list_limit: int = DEFAULT_LIST_LIMIT,
        numbers: Optional[OrderNumberSequence] = None,
    ):
        self.store = store
        self.clock = clock
        self.list_limit = list_limit
        self.numbers = numbers or OrderNumberSequence()

    def submit(self, cart: Cart, payment_method: str = "cash", notes: Optional[str] = None) -> OrderOut:
        """
        Store the cart as one order plus one item per cart line.

        The total and every line price are frozen from the cart as it is now.
        The cart is cleared only once the store confirmed the write; on any
        error it is left untouched so the order can be retried.
        """
        if cart.is_empty:
            raise EmptyOrderError()
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"Unknown payment method: {payment_method}")

        lines = cart.lines
        total = money(sum((line.price * line.quantity for line in lines), Decimal("0")))
        customer_name = notes if notes is not None else cart.notes
        now = self.clock()

        header = {
            "order_number": self.numbers.next(now),
            "customer_name": customer_name or None,
            "total_amount": total,
            "status": "pending",
            "payment_method": payment_method,
            "created_at": now,
        }
        items = [
            {
                "product_id": line.product_id,
                "quantity": line.quantity,
                "price_at_time": line.price,
                "notes": line.notes,
            }
            for line in lines
        ]

        try:
            order = self.store.create_order(header, items)
        except Exception:
            logger.error("Order submission failed (%d line(s), total %s)", len(items), total)
            raise

        cart.clear()
        logger.info("Order %s submitted: %s via %s", order.order_number, order.total_amount, payment_method)
        return order

    def set_status(self, order_id: str, new_status: str) -> OrderOut:
        # Any status may follow any other; completed_at tracks the completed state
        validate_status(new_status)
        completed_at = self.clock() if new_status == "completed" else None
        order = self.store.update_order_status(order_id, new_status, completed_at)
        logger.info("Order %s status -> %s", order.order_number, new_status)
        return order

    def delete_order(self, order_id: str) -> None:
        self.store.delete_order(order_id)
        logger.info("Order %s deleted", order_id)

    def get_order(self, order_id: str) -> OrderOut:
        order = self.store.get_order(order_id)
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def list_recent(self, limit: Optional[int] = None) -> List[OrderOut]:
        return self.store.list_orders(limit=limit or self.list_limit, newest_first=True)

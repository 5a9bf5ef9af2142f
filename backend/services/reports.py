# backend/services/reports.py
import calendar
from datetime import datetime, date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from schemas.order import OrderOut
from schemas.reports import SalesSummaryResponse, SalesSummaryItem, TopProduct
from services.orders import money
from store.base import RelationStore, local_naive
from utils.errors import ValidationError

PERIODS = ("day", "week", "month", "year", "custom")


def _months_back(dt: datetime, months: int) -> datetime:
    month_index = dt.year * 12 + dt.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def period_range(
    period: str,
    now: Optional[datetime] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """Resolve a dashboard period name to a closed [start, end] interval.

    Bounds are returned as naive local time; aware inputs are converted.
    """
    if period not in PERIODS:
        raise ValidationError(f"Unknown period: {period}")
    now = local_naive(now) or datetime.now()

    if period == "custom":
        start, end = local_naive(start), local_naive(end)
        if start and end:
            if start > end:
                raise ValidationError("date_from must not be after date_to")
            return start, end
        period = "week"

    if period == "day":
        return now.replace(hour=0, minute=0, second=0, microsecond=0), now
    if period == "week":
        return now - timedelta(days=7), now
    if period == "month":
        return _months_back(now, 1), now
    return _months_back(now, 12), now


def _local_day(dt: datetime) -> date:
    # Aware timestamps (hosted backend) are grouped on the local calendar
    return dt.astimezone().date() if dt.tzinfo else dt.date()


class ReportService:
    """Sales figures computed from completed orders only."""

    def __init__(self, store: RelationStore, top_limit: int = 5, days_limit: int = 7):
        self.store = store
        self.top_limit = top_limit
        self.days_limit = days_limit

    def completed_orders(self, start: datetime, end: datetime) -> List[OrderOut]:
        return self.store.list_orders(
            status="completed", date_from=start, date_to=end, newest_first=False,
        )

    def sales_summary(self, start: datetime, end: datetime) -> SalesSummaryResponse:
        orders = self.completed_orders(start, end)

        total_sales = sum((o.total_amount for o in orders), Decimal("0"))
        total_orders = len(orders)
        avg_order_value = total_sales / total_orders if total_orders else Decimal("0")

        return SalesSummaryResponse(
            total_sales=money(total_sales),
            total_orders=total_orders,
            avg_order_value=money(avg_order_value),
            top_products=self.top_products(orders),
            sales_by_day=self.sales_by_day(orders),
            date_from=start,
            date_to=end,
        )

    def top_products(self, orders: List[OrderOut]) -> List[TopProduct]:
        # Ties keep the order in which products first appear (oldest order first)
        stats: Dict[str, dict] = {}
        for order in orders:
            for item in order.items:
                entry = stats.setdefault(item.product_id, {
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "quantity": 0,
                    "revenue": Decimal("0"),
                })
                entry["quantity"] += item.quantity
                entry["revenue"] += item.price_at_time * item.quantity

        ranked = sorted(stats.values(), key=lambda e: e["revenue"], reverse=True)
        return [
            TopProduct(**{**e, "revenue": money(e["revenue"])})
            for e in ranked[: self.top_limit]
        ]

    def sales_by_day(self, orders: List[OrderOut]) -> List[SalesSummaryItem]:
        days: Dict[date, List] = {}
        for order in orders:
            bucket = days.setdefault(_local_day(order.created_at), [0, Decimal("0")])
            bucket[0] += 1
            bucket[1] += order.total_amount

        recent = sorted(days.items())[-self.days_limit:]
        return [
            SalesSummaryItem(date=d, orders=count, total_amount=money(amount))
            for d, (count, amount) in recent
        ]

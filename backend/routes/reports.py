# routes/reports.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from database import get_store
from schemas.reports import SalesSummaryResponse
from services.reports import ReportService, period_range
from store.base import RelationStore, local_naive

router = APIRouter(prefix="/reports", tags=["Reports"])

def _parse_iso(s: Optional[str]) -> Optional[datetime]:
    if not s:
        return None
    try:
        parsed = datetime.fromisoformat(s)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Bad datetime format: {s}")
    # Offsets are converted to local wall-clock time, the way orders are stored
    return local_naive(parsed)

def get_report_service(request: Request, store: RelationStore = Depends(get_store)) -> ReportService:
    settings = request.app.state.settings
    return ReportService(store, top_limit=settings.TOP_PRODUCTS_LIMIT, days_limit=settings.SALES_DAYS_LIMIT)

# Sales summary of completed orders
@router.get("/sales-summary", response_model=SalesSummaryResponse)
def report_sales_summary(
    request: Request,
    period: str = Query("week", pattern="^(day|week|month|year|custom)$"),
    date_from: Optional[str] = Query(None, description="ISO datetime from (custom period)"),
    date_to: Optional[str] = Query(None, description="ISO datetime to (custom period)"),
    service: ReportService = Depends(get_report_service),
):
    start, end = period_range(
        period,
        now=request.app.state.clock(),
        start=_parse_iso(date_from),
        end=_parse_iso(date_to),
    )
    return service.sales_summary(start, end)

# schemas/reports.py
from datetime import datetime, date
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel

# Revenue ranking entry
class TopProduct(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    revenue: Decimal

# Sales for one calendar day
class SalesSummaryItem(BaseModel):
    date: date
    orders: int
    total_amount: Decimal

class SalesSummaryResponse(BaseModel):
    total_sales: Decimal
    total_orders: int
    avg_order_value: Decimal
    top_products: List[TopProduct]
    sales_by_day: List[SalesSummaryItem]
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

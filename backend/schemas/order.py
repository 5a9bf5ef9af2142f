# backend/schemas/order.py
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, computed_field
from typing import List, Literal, Optional

from schemas.product import ORMBase

OrderStatus = Literal["pending", "completed", "cancelled"]
PaymentMethod = Literal["cash", "gcash"]


# Input schema for a single order line written by the order sink
class OrderItemCreate(ORMBase):
    product_id: str = Field(min_length=1)
    quantity: int = Field(gt=0)
    price_at_time: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    notes: Optional[str] = None


# Input schema for the order header written by the order sink
class OrderCreate(ORMBase):
    order_number: str = Field(min_length=1)
    customer_name: Optional[str] = None
    total_amount: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    status: OrderStatus = "pending"
    payment_method: PaymentMethod
    created_at: datetime


# Output schema for an individual order line item
class OrderItemOut(ORMBase):
    id: str
    order_id: str
    product_id: str
    product_name: str
    quantity: int
    price_at_time: Decimal
    notes: Optional[str] = None
    created_at: datetime

    @computed_field
    @property
    def line_total(self) -> Decimal:
        return self.price_at_time * self.quantity


# Output schema representing the full order details
class OrderOut(ORMBase):
    id: str
    order_number: str
    customer_name: Optional[str] = None
    total_amount: Decimal
    status: OrderStatus
    payment_method: Optional[PaymentMethod] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    items: List[OrderItemOut] = []


class OrderListResponse(BaseModel):
    items: List[OrderOut]
    total: int


# Request schema for submitting the current cart
class OrderSubmitPayload(BaseModel):
    payment_method: PaymentMethod = "cash"
    notes: Optional[str] = None


# Schema for updating order status
class OrderStatusPatch(BaseModel):
    status: OrderStatus

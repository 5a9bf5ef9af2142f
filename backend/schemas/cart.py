# backend/schemas/cart.py
from decimal import Decimal
from pydantic import BaseModel, Field, computed_field
from typing import List, Optional

# Request schema for adding a product to the cart
class CartAddItem(BaseModel):
    product_id: str

# Request schema for updating a line quantity (0 or less removes the line)
class CartUpdateItem(BaseModel):
    quantity: int

# Request schema for the shared cart notes
class CartNotes(BaseModel):
    notes: str = ""

# A single cart line, keyed by product
class CartLine(BaseModel):
    product_id: str
    name: str
    price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)
    image_url: Optional[str] = None
    notes: Optional[str] = None

    @computed_field
    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

# Response schema for the entire cart summary
class CartOut(BaseModel):
    items: List[CartLine]
    notes: str
    total_items: int
    total_amount: Decimal

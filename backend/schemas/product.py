# backend/schemas/product.py
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, ConfigDict, BeforeValidator
from typing import Annotated, Optional, List


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)


def blank_to_none(value):
    # Empty form fields mean "not set"
    if isinstance(value, str) and not value.strip():
        return None
    return value


OptionalText = Annotated[Optional[str], BeforeValidator(blank_to_none)]


# Shared base attributes for product entities
class ProductBase(ORMBase):
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    category_id: OptionalText = None
    image_url: OptionalText = None
    description: OptionalText = None
    is_available: bool = True


# Schema for creating a product and for full-row edits
class ProductCreate(ProductBase):
    pass


# Full product representation including ID
class ProductOut(ProductBase):
    id: str
    created_at: datetime


class ProductListResponse(ORMBase):
    items: List[ProductOut]
    total: int

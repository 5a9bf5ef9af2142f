# backend/schemas/category.py
from datetime import datetime
from pydantic import Field
from typing import Optional, List

from schemas.product import ORMBase, OptionalText


class CategoryBase(ORMBase):
    name: str = Field(min_length=1)
    description: OptionalText = None
    display_order: int = 0
    is_active: bool = True


# Schema for creating a category and for full-row edits
class CategoryCreate(CategoryBase):
    pass


class CategoryOut(CategoryBase):
    id: str
    created_at: datetime


class CategoryListResponse(ORMBase):
    items: List[CategoryOut]
    total: int

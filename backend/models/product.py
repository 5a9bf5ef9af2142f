# backend/models/product.py
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Numeric, Boolean, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base

# Model Product
# A sellable item of the catalog. `is_available` only controls visibility
# on the POS screen; unavailable products still exist and can be edited.
class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False, index=True)
    price = Column(Numeric(10, 2), CheckConstraint("price >= 0"), nullable=False)

    # NULL means "uncategorized"
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True, index=True)

    # May hold a data: URL with the whole encoded image
    image_url = Column(String, nullable=True)
    description = Column(String, nullable=True)
    is_available = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    category = relationship("Category", back_populates="products")

# backend/models/order.py
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Integer, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base

class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_number = Column(String, unique=True, nullable=False)
    customer_name = Column(String, nullable=True) # Cart notes end up here
    total_amount = Column(Numeric(10, 2), CheckConstraint("total_amount >= 0"), nullable=False) # Frozen at submission
    status = Column(String, nullable=False, default="pending", index=True)
    payment_method = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'completed', 'cancelled')", name="check_status_valid"),
        CheckConstraint("payment_method IN ('cash', 'gcash')", name="check_payment_method_valid"),
    )

    items = relationship(
        "OrderItem", back_populates="order",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="OrderItem.position",
    )

class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    # Not an enforced foreign key: the product may be deleted later without
    # touching the order history.
    product_id = Column(String(36), nullable=False, index=True)
    quantity = Column(Integer, CheckConstraint("quantity > 0"), nullable=False)
    price_at_time = Column(Numeric(10, 2), CheckConstraint("price_at_time >= 0"), nullable=False)
    notes = Column(String, nullable=True)
    position = Column(Integer, nullable=False, default=0) # Cart line order
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    order = relationship("Order", back_populates="items")
    product = relationship(
        "Product",
        primaryjoin="foreign(OrderItem.product_id) == Product.id",
        viewonly=True,
    )

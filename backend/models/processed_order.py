# backend/models/processed_order.py
from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint, func
from database import Base

# Marks a webhook line item as applied, so a redelivered event
# does not touch stock twice.
class ProcessedOrderLine(Base):
    __tablename__ = "processed_order_lines"
    __table_args__ = (
        UniqueConstraint("order_ref", "topic", "line_index", name="uq_processed_order_line"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_ref = Column(String(64), nullable=False, index=True)
    topic = Column(String(32), nullable=False)
    line_index = Column(Integer, nullable=False)
    sku = Column(String(128))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

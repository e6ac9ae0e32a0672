# backend/models/transaction.py
import enum
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Text, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base


class TransactionType(str, enum.Enum):
    ADD = "add"
    REMOVE = "remove"


# Ledger entry: one row per committed stock mutation, never updated.
# Product name/code/category are copied in so history survives renames
# and product deletion (product_id then becomes NULL).
class StockTransaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String(64), ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    product_code = Column(String(64))
    product_name = Column(String)
    category = Column(String(32), index=True)

    type = Column(String(16), nullable=False, index=True)
    quantity = Column(Numeric(14, 3), CheckConstraint("quantity > 0"), nullable=False)
    unit = Column(String(16))
    balance_after = Column(Numeric(14, 3), nullable=False)

    notes = Column(Text, default="")
    # Marketplace order reference when the mutation came from an order
    shopify_order_id = Column(String(64), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    product = relationship("Product")

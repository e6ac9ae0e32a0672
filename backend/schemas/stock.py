# backend/schemas/stock.py
from datetime import datetime
from decimal import Decimal
from typing import Optional, Literal

from pydantic import BaseModel, ConfigDict

from schemas.product import CamelModel, ProductResponse

StockMovementType = Literal["add", "remove"]


# Body of /stock/add and /stock/remove
class StockMovementRequest(CamelModel):
    product_id: Optional[str] = None
    quantity: Optional[Decimal] = None
    notes: Optional[str] = None
    shopify_order_id: Optional[str] = None


# Body of /stock/adjust (manual add or remove)
class StockAdjustRequest(CamelModel):
    product_id: Optional[str] = None
    quantity: Optional[Decimal] = None
    type: Optional[str] = None
    note: Optional[str] = None


class StockMovementResponse(CamelModel):
    success: bool = True
    new_stock: float
    product: ProductResponse


# Ledger rows keep the snake_case column names the history screens use
class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: Optional[str] = None
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    category: Optional[str] = None
    type: StockMovementType
    quantity: float
    unit: Optional[str] = None
    balance_after: float
    notes: Optional[str] = ""
    shopify_order_id: Optional[str] = None
    created_at: Optional[datetime] = None

# backend/schemas/dashboard.py
from typing import List
from pydantic import BaseModel

from schemas.product import CamelModel
from schemas.stock import TransactionResponse


class StockValue(BaseModel):
    oils: float


class DashboardResponse(CamelModel):
    total_products: int
    low_stock_count: int
    total_stock_value: StockValue
    recent_transactions: List[TransactionResponse]

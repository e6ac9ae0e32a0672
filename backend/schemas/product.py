# backend/schemas/product.py
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Products travel as camelCase JSON (productCode, currentStock, ...)
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class IncomingOrderOut(CamelModel):
    order_number: Optional[str] = None
    sku: Optional[str] = None
    quantity: float
    received_at: Optional[datetime] = None


# Shared product attributes
class ProductBase(CamelModel):
    tag: Optional[str] = None
    product_code: Optional[str] = None
    unit: Optional[str] = None
    min_stock_level: Optional[Decimal] = Field(default=None, ge=0)
    supplier: Optional[str] = None
    supplier_code: Optional[str] = None
    unit_per_box: Optional[int] = Field(default=None, ge=0)
    shopify_skus: Optional[Dict[str, str]] = None


# Schema for creating a product; identifier, tag, code and SKUs are generated when omitted
class ProductCreate(ProductBase):
    name: Optional[str] = None
    category: Optional[str] = None
    current_stock: Optional[Decimal] = Field(default=None, ge=0)


# Schema for partial product updates - all fields optional
class ProductUpdate(ProductBase):
    name: Optional[str] = None
    category: Optional[str] = None
    current_stock: Optional[Decimal] = Field(default=None, ge=0)


class ProductResponse(CamelModel):
    id: str
    tag: Optional[str] = None
    product_code: Optional[str] = None
    name: str
    category: str
    unit: Optional[str] = None
    current_stock: float
    min_stock_level: float
    supplier: Optional[str] = ""
    supplier_code: Optional[str] = ""
    unit_per_box: int
    stock_boxes: int
    shopify_skus: Dict[str, str] = {}
    incoming_orders: List[IncomingOrderOut] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SuccessResponse(BaseModel):
    success: bool = True

# backend/schemas/bom.py
from decimal import Decimal
from typing import List, Optional

from schemas.product import CamelModel


class BomComponentOut(CamelModel):
    seq: int
    component_code: str
    component_name: Optional[str] = None
    quantity: float


class BomComponentCreate(CamelModel):
    variant: Optional[str] = None
    component_code: Optional[str] = None
    component_name: Optional[str] = None
    quantity: Optional[Decimal] = None


class BomComponentUpdate(CamelModel):
    component_name: Optional[str] = None
    quantity: Optional[Decimal] = None


class BomResponse(CamelModel):
    success: bool = True
    bom: List[BomComponentOut]

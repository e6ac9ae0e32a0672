# backend/utils/sku_catalog.py
"""Fixed catalogue of marketplace SKU types.

Each SKU type is a sellable packaging format. It tells how many units of
the product's own unit (mL for oils) one sold item consumes, and which BOM
variant describes its packaging components.
"""
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional


@dataclass(frozen=True)
class SkuType:
    code: str
    volume: Decimal
    variant: Optional[str]
    title: str
    price: str = "0.00"


SKU_TYPES: Dict[str, SkuType] = {
    "SA_CA": SkuType("SA_CA", Decimal(400), "SA_CA", "400ml Cartridge", "50.00"),
    "SA_HF": SkuType("SA_HF", Decimal(500), "SA_HF", "500ml Half Liter", "60.00"),
    "SA_CDIFF": SkuType("SA_CDIFF", Decimal(700), "SA_CDIFF", "700ml Car Diffuser", "80.00"),
    "SA_1L": SkuType("SA_1L", Decimal(1000), "SA_1L", "1L Bottle", "100.00"),
    "SA_PRO": SkuType("SA_PRO", Decimal(1000), "SA_PRO", "1L Pro Bottle", "120.00"),
    "SA_RM": SkuType("SA_RM", Decimal(1), None, "Raw Material"),
    "SA_MAC": SkuType("SA_MAC", Decimal(1), None, "Machine / Spare"),
}

# Order matters when a raw SKU string is scanned for a type token
TOKEN_ORDER = ("SA_CA", "SA_1L", "SA_HF", "SA_PRO", "SA_CDIFF", "SA_RM", "SA_MAC")

AUTO_SKU_TYPES = {
    "OILS": ("SA_CA", "SA_1L", "SA_CDIFF", "SA_PRO", "SA_HF"),
    "RAW_MATERIALS": ("SA_RM",),
    "MACHINES_SPARES": ("SA_MAC",),
}

DEFAULT_VOLUME = Decimal(1)


def normalize_sku(sku) -> str:
    return str(sku or "").strip().upper()


def sku_type_of(sku: str, mapped_type: Optional[str] = None) -> Optional[str]:
    """Type of a SKU: the mapping's own type when known, else a token scan."""
    if mapped_type and mapped_type.upper() in SKU_TYPES:
        return mapped_type.upper()
    upper = normalize_sku(sku)
    for token in TOKEN_ORDER:
        if token in upper:
            return token
    return None


def unit_volume(sku_type: Optional[str]) -> Decimal:
    entry = SKU_TYPES.get(sku_type or "")
    return entry.volume if entry else DEFAULT_VOLUME


def variant_for(sku_type: Optional[str]) -> Optional[str]:
    entry = SKU_TYPES.get(sku_type or "")
    return entry.variant if entry else None


def generate_auto_skus(category: str, number: int) -> Dict[str, str]:
    padded = str(number).zfill(5)
    return {t: f"{t}_{padded}" for t in AUTO_SKU_TYPES.get(category, ())}


def sku_number_from_tag(tag: Optional[str], default: int) -> int:
    # "#SA00275" and "#SA275" both give 275
    if tag:
        match = re.search(r"\d+", tag)
        if match:
            return int(match.group(0))
    return default

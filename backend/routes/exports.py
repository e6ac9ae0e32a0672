# backend/routes/exports.py
import io
from datetime import datetime
from typing import Literal

import pandas as pd
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from database import get_db
from models.product import Product
from models.transaction import StockTransaction
from models.users import User
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/export", tags=["Export"])

PRODUCT_COLUMNS = [
    "id", "tag", "productCode", "name", "category", "unit",
    "currentStock", "minStockLevel", "supplier", "shopifySkus",
]
TRANSACTION_COLUMNS = [
    "id", "created_at", "product_id", "product_code", "product_name", "category",
    "type", "quantity", "unit", "balance_after", "notes", "shopify_order_id",
]


def product_rows(db: Session):
    return [
        {
            "id": p.id,
            "tag": p.tag,
            "productCode": p.product_code,
            "name": p.name,
            "category": p.category,
            "unit": p.unit,
            "currentStock": float(p.current_stock or 0),
            "minStockLevel": float(p.min_stock_level or 0),
            "supplier": p.supplier,
            "shopifySkus": p.shopify_skus,
        }
        for p in db.query(Product).order_by(Product.tag.asc(), Product.id.asc()).all()
    ]


def transaction_rows(db: Session):
    rows = (
        db.query(StockTransaction)
        .order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc())
        .all()
    )
    return [
        {
            "id": t.id,
            "created_at": t.created_at.isoformat() if t.created_at else None,
            "product_id": t.product_id,
            "product_code": t.product_code,
            "product_name": t.product_name,
            "category": t.category,
            "type": t.type,
            "quantity": float(t.quantity),
            "unit": t.unit,
            "balance_after": float(t.balance_after),
            "notes": t.notes,
            "shopify_order_id": t.shopify_order_id,
        }
        for t in rows
    ]


def csv_response(rows, columns, name: str) -> StreamingResponse:
    df = pd.DataFrame(rows, columns=columns)
    if "shopifySkus" in df.columns:
        # One cell per product: "SA_CA=SA_CA_00001; SA_1L=..."
        df["shopifySkus"] = df["shopifySkus"].apply(
            lambda skus: "; ".join(f"{k}={v}" for k, v in (skus or {}).items())
        )
    buffer = io.StringIO()
    df.to_csv(buffer, index=False)
    buffer.seek(0)
    filename = f"{name}_{datetime.now().strftime('%Y%m%d')}.csv"
    return StreamingResponse(
        iter([buffer.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/products")
def export_products(
    format: Literal["json", "csv"] = Query("json"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = product_rows(db)
    if format == "csv":
        return csv_response(rows, PRODUCT_COLUMNS, "products")
    return rows


@router.get("/transactions")
def export_transactions(
    format: Literal["json", "csv"] = Query("json"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = transaction_rows(db)
    if format == "csv":
        return csv_response(rows, TRANSACTION_COLUMNS, "transactions")
    return rows

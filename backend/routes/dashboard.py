# backend/routes/dashboard.py
from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db
from models.product import Product, ProductCategory
from models.transaction import StockTransaction
from models.users import User
from schemas.dashboard import DashboardResponse
from utils.tokenJWT import get_current_user

router = APIRouter(tags=["Dashboard"])

RECENT_TRANSACTIONS = 10


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    total_products = db.query(func.count(Product.id)).scalar() or 0

    # Products under their minimum stock level
    low_stock_count = (
        db.query(func.count(Product.id))
        .filter(Product.current_stock < Product.min_stock_level)
        .scalar()
    ) or 0

    oils_volume = (
        db.query(func.coalesce(func.sum(Product.current_stock), 0))
        .filter(Product.category == ProductCategory.OILS.value)
        .scalar()
    )

    recent = (
        db.query(StockTransaction)
        .order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc())
        .limit(RECENT_TRANSACTIONS)
        .all()
    )

    return {
        "total_products": total_products,
        "low_stock_count": low_stock_count,
        "total_stock_value": {"oils": round(float(oils_volume or 0), 2)},
        "recent_transactions": recent,
    }

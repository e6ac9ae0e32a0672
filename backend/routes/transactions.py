# backend/routes/transactions.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.transaction import StockTransaction
from models.users import User
from schemas.stock import TransactionResponse
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/transactions", tags=["Transactions"])


def query_transactions(db: Session, product_id=None, type=None, category=None):
    query = db.query(StockTransaction)
    if product_id:
        query = query.filter(StockTransaction.product_id == product_id)
    if type:
        query = query.filter(StockTransaction.type == type)
    if category and category.upper() != "ALL":
        query = query.filter(StockTransaction.category == category.upper())
    return query.order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc())


# Ledger history, newest first
@router.get("", response_model=List[TransactionResponse])
def list_transactions(
    limit: int = Query(100, ge=1, le=5000),
    offset: int = Query(0, ge=0),
    product_id: Optional[str] = Query(None, alias="productId"),
    type: Optional[str] = Query(None, pattern="^(add|remove)$"),
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return query_transactions(db, product_id, type, category).offset(offset).limit(limit).all()

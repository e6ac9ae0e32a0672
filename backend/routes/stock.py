# backend/routes/stock.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from models.transaction import TransactionType
from models.users import User
from services.stock_ledger import adjust_stock, AdjustResult
from schemas.stock import StockMovementRequest, StockAdjustRequest, StockMovementResponse
from utils.audit import write_log, client_ip
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/stock", tags=["Stock"])


def _result(result: AdjustResult) -> dict:
    return {"success": True, "new_stock": result.new_stock, "product": result.product}


def _audit(db: Session, request: Request, user: User, action: str, result: AdjustResult):
    write_log(
        db, user_id=user.id, action=action, resource="stock", ip=client_ip(request),
        meta={
            "product_id": result.product.id,
            "transaction_id": result.transaction.id,
            "balance_after": float(result.new_stock),
        },
    )


# Receive stock
@router.post("/add", response_model=StockMovementResponse)
def add_stock(
    payload: StockMovementRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = adjust_stock(
        db, payload.product_id, payload.quantity, TransactionType.ADD,
        payload.notes or "", payload.shopify_order_id,
    )
    _audit(db, request, current_user, "STOCK_ADD", result)
    return _result(result)


# Issue stock; fails with 409 when stock would go below zero
@router.post("/remove", response_model=StockMovementResponse)
def remove_stock(
    payload: StockMovementRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = adjust_stock(
        db, payload.product_id, payload.quantity, TransactionType.REMOVE,
        payload.notes or "", payload.shopify_order_id,
    )
    _audit(db, request, current_user, "STOCK_REMOVE", result)
    return _result(result)


# Manual adjustment in either direction
@router.post("/adjust", response_model=StockMovementResponse)
def manual_adjust(
    payload: StockAdjustRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = adjust_stock(db, payload.product_id, payload.quantity, payload.type, payload.note or "")
    _audit(db, request, current_user, "STOCK_ADJUSTMENT", result)
    return _result(result)

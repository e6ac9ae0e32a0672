# backend/routes/products.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.product import ProductCategory
from models.users import User
from services import product_service
from schemas.product import ProductCreate, ProductUpdate, ProductResponse, SuccessResponse
from utils.audit import write_log, client_ip
from utils.shopify_client import shopify_client
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/products", tags=["Products"])
logger = logging.getLogger(__name__)


# =========================
# PRODUCT LIST
# =========================
@router.get("", response_model=List[ProductResponse])
def list_products(
    category: Optional[str] = Query(None, description="OILS / RAW_MATERIALS / MACHINES_SPARES / ALL"),
    search: Optional[str] = Query(None, description="Name, product code or tag"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return product_service.list_products(db, category=category, search=search)


# =========================
# SINGLE PRODUCT
# =========================
@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return product_service.get_product(db, product_id)


# =========================
# CREATE PRODUCT
# =========================
@router.post("", response_model=ProductResponse)
async def create_product(
    payload: ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # Database work runs off the event loop, the Shopify push is awaited on it
    product = await run_in_threadpool(product_service.create_product, db, payload.model_dump(exclude_none=True))

    # Optional push of new oils to the Shopify catalogue; the local product stays either way
    if product.category == ProductCategory.OILS.value and settings.SHOPIFY_SYNC_ENABLED:
        try:
            await shopify_client.create_product(product)
            logger.info("Product synced to Shopify: %s", product.name)
        except Exception as e:
            logger.error("Shopify sync failed for %s: %s", product.id, e)

    await run_in_threadpool(
        write_log, db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products",
        ip=client_ip(request), meta={"id": product.id, "name": product.name},
    )
    await run_in_threadpool(db.refresh, product)
    return product


# =========================
# UPDATE PRODUCT
# =========================
@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    product = product_service.update_product(db, product_id, payload.model_dump(exclude_none=True))
    write_log(
        db, user_id=current_user.id, action="PRODUCT_UPDATE", resource="products",
        ip=client_ip(request), meta={"id": product_id, "fields": sorted(payload.model_fields_set)},
    )
    db.refresh(product)
    return product


# =========================
# DELETE PRODUCT
# =========================
@router.delete("/{product_id}", response_model=SuccessResponse)
def delete_product(
    product_id: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    product_service.delete_product(db, product_id)
    write_log(
        db, user_id=current_user.id, action="PRODUCT_DELETE", resource="products",
        ip=client_ip(request), meta={"id": product_id},
    )
    return {"success": True}


# =========================
# INCOMING ORDERS
# =========================
@router.delete("/{product_id}/incoming/{index}", response_model=SuccessResponse)
def clear_incoming_order(
    product_id: str,
    index: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    product_service.clear_incoming_order(db, product_id, index)
    write_log(
        db, user_id=current_user.id, action="INCOMING_ORDER_CLEAR", resource="products",
        ip=client_ip(request), meta={"id": product_id, "index": index},
    )
    return {"success": True}

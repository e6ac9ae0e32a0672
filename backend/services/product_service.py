# backend/services/product_service.py
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.product import Product, ProductCategory, ProductSequence, ProductSku, IncomingOrder
from models.transaction import StockTransaction, TransactionType
from services.exceptions import NotFoundError, InvalidArgumentError, ConflictError
from services.stock_ledger import apply_stock_change, compute_stock_boxes, lock_product
from utils.sku_catalog import (
    generate_auto_skus, normalize_sku, sku_number_from_tag, sku_type_of,
)

logger = logging.getLogger(__name__)

# Fields a PUT may change directly; stock goes through the ledger instead
EDITABLE_FIELDS = (
    "name", "category", "product_code", "tag", "unit",
    "min_stock_level", "supplier", "supplier_code", "unit_per_box",
)


def _category(value) -> str:
    if not value:
        raise InvalidArgumentError("Name and category are required")
    try:
        return ProductCategory(str(value).upper()).value
    except ValueError:
        allowed = ", ".join(c.value for c in ProductCategory)
        raise InvalidArgumentError(f"Unknown category {value!r}, expected one of {allowed}")


def _non_negative(value, field: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidArgumentError(f"{field} must be a number")
    if not number.is_finite() or number < 0:
        raise InvalidArgumentError(f"{field} must be zero or more")
    return number


def _unit_per_box(value) -> int:
    # 0 is a valid box size and means no box count
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError("unitPerBox must be a whole number")
    if number < 0:
        raise InvalidArgumentError("unitPerBox must be zero or more")
    return number


def get_product(db: Session, product_id: str) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError(f"Product not found: {product_id}")
    return product


def list_products(db: Session, category: Optional[str] = None, search: Optional[str] = None) -> List[Product]:
    query = db.query(Product)
    if category and category.upper() != "ALL":
        query = query.filter(Product.category == category.upper())
    if search:
        like = f"%{search}%"
        query = query.filter(or_(
            Product.name.ilike(like), Product.product_code.ilike(like), Product.tag.ilike(like)
        ))
    return query.order_by(Product.tag.asc(), Product.id.asc()).all()


def next_product_number(db: Session, category: str) -> int:
    """Issue the next identifier number for a category.

    The sequence row is locked, and never moves backwards, so numbers of
    deleted products are not handed out again. Products imported with
    explicit identifiers are accounted for by looking at existing ids too.
    """
    seq = (
        db.query(ProductSequence)
        .filter(ProductSequence.category == category)
        .with_for_update()
        .first()
    )
    if seq is None:
        seq = ProductSequence(category=category, last_value=0)
        db.add(seq)

    highest = seq.last_value or 0
    prefix = f"{category}_"
    for (existing_id,) in db.query(Product.id).filter(Product.id.like(f"{prefix}%")):
        suffix = existing_id[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))

    seq.last_value = highest + 1
    db.flush()
    return seq.last_value


def _set_skus(db: Session, product: Product, skus: Dict[str, str]) -> None:
    """Replace a product's SKU mapping, rejecting SKUs owned by another product."""
    wanted = {}
    for sku_type, sku in (skus or {}).items():
        sku = normalize_sku(sku)
        if not sku:
            continue
        if sku in wanted.values():
            raise ConflictError(f"SKU {sku} listed twice")
        wanted[str(sku_type).upper()] = sku

    if wanted:
        owners = (
            db.query(ProductSku)
            .filter(ProductSku.sku.in_(list(wanted.values())), ProductSku.product_id != product.id)
            .all()
        )
        if owners:
            taken = ", ".join(f"{o.sku} ({o.product_id})" for o in owners)
            raise ConflictError(f"SKU already mapped to another product: {taken}")

    product.skus.clear()
    db.flush()
    for sku_type, sku in wanted.items():
        product.skus.append(ProductSku(sku=sku, sku_type=sku_type))


def create_product(db: Session, data: dict) -> Product:
    """Create a product, assigning identifier, tag, code and default SKUs."""
    name = (data.get("name") or "").strip()
    if not name:
        raise InvalidArgumentError("Name and category are required")
    category = _category(data.get("category"))

    try:
        number = next_product_number(db, category)
        tag = data.get("tag") or f"#{category[:2]}{str(number).zfill(5)}"
        raw_box = data.get("unit_per_box")
        unit_per_box = 1 if raw_box is None else _unit_per_box(raw_box)

        product = Product(
            id=f"{category}_{number}",
            tag=tag,
            product_code=data.get("product_code") or f"{category}_{str(number).zfill(5)}",
            name=name,
            category=category,
            unit=data.get("unit") or "units",
            current_stock=Decimal(0),
            min_stock_level=_non_negative(data.get("min_stock_level") or 0, "minStockLevel"),
            supplier=data.get("supplier") or "",
            supplier_code=data.get("supplier_code") or "",
            unit_per_box=unit_per_box,
            stock_boxes=0,
        )
        db.add(product)
        db.flush()

        skus = data.get("shopify_skus") or {}
        if not skus:
            skus = generate_auto_skus(category, sku_number_from_tag(data.get("tag"), number))
            if skus:
                logger.info("Auto-generated SKUs for %s (%s): %s", product.id, category, ", ".join(skus.values()))
        _set_skus(db, product, skus)

        initial = _non_negative(data.get("current_stock") or 0, "currentStock")
        if initial > 0:
            apply_stock_change(db, product, initial, TransactionType.ADD, "Initial stock")

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(product)
    logger.info("Created product %s %s", product.id, product.name)
    return product


def update_product(db: Session, product_id: str, data: dict) -> Product:
    """Partial update; fields absent from ``data`` keep their value."""
    try:
        product = lock_product(db, product_id)

        for field in EDITABLE_FIELDS:
            if data.get(field) is None:
                continue
            value = data[field]
            if field == "category":
                value = _category(value)
            elif field == "min_stock_level":
                value = _non_negative(value, "minStockLevel")
            elif field == "unit_per_box":
                value = _unit_per_box(value)
            setattr(product, field, value)

        if data.get("shopify_skus") is not None:
            _set_skus(db, product, data["shopify_skus"])

        if data.get("current_stock") is not None:
            target = _non_negative(data["current_stock"], "currentStock")
            diff = target - Decimal(product.current_stock or 0)
            if diff > 0:
                apply_stock_change(db, product, diff, TransactionType.ADD, "Manual stock edit")
            elif diff < 0:
                apply_stock_change(db, product, -diff, TransactionType.REMOVE, "Manual stock edit")

        product.stock_boxes = compute_stock_boxes(product.current_stock, product.unit_per_box)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(product)
    return product


def delete_product(db: Session, product_id: str) -> None:
    """Delete a product; its ledger rows stay, detached from the product."""
    try:
        product = lock_product(db, product_id)
        detached = (
            db.query(StockTransaction)
            .filter(StockTransaction.product_id == product.id)
            .update({StockTransaction.product_id: None}, synchronize_session=False)
        )
        db.delete(product)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Deleted product %s, kept %d ledger rows", product_id, detached)


def resolve_product_by_sku(db: Session, sku: str) -> Optional[ProductSku]:
    """Exact lookup of a marketplace SKU; returns the mapping row or None."""
    normalized = normalize_sku(sku)
    if not normalized:
        return None
    return db.query(ProductSku).filter(ProductSku.sku == normalized).first()


def resolve_component(db: Session, code: str) -> Optional[Product]:
    """Find a BOM component by product code, tag or identifier."""
    return (
        db.query(Product)
        .filter(or_(Product.product_code == code, Product.tag == code, Product.id == code))
        .order_by(Product.id.asc())
        .first()
    )


def add_incoming_order(db: Session, product: Product, order_number, sku: str, quantity) -> IncomingOrder:
    entry = IncomingOrder(
        product_id=product.id,
        order_number=str(order_number) if order_number is not None else None,
        sku=sku,
        quantity=Decimal(str(quantity)),
        received_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    db.flush()
    return entry


def clear_incoming_order(db: Session, product_id: str, index: int) -> None:
    """Remove the incoming order at position ``index`` of the product's queue."""
    try:
        product = lock_product(db, product_id)
        queue = (
            db.query(IncomingOrder)
            .filter(IncomingOrder.product_id == product.id)
            .order_by(IncomingOrder.received_at.asc(), IncomingOrder.id.asc())
            .all()
        )
        if index < 0 or index >= len(queue):
            raise NotFoundError(f"No incoming order at index {index} for {product_id}")
        db.delete(queue[index])
        db.commit()
    except Exception:
        db.rollback()
        raise


def sku_type_for_mapping(mapping: ProductSku) -> Optional[str]:
    return sku_type_of(mapping.sku, mapping.sku_type)

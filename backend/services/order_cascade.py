# backend/services/order_cascade.py
"""Marketplace order events turned into stock mutations.

A fulfilled order removes stock for the product each line item's SKU
belongs to (SKU unit volume x quantity) and then for every component of the
SKU's BOM variant (component quantity x quantity). Each line item commits
on its own: a bad line is skipped and logged, the rest of the order still
goes through, and lines committed before a failure stay applied.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.processed_order import ProcessedOrderLine
from models.product import Product
from models.transaction import TransactionType
from services.bom_service import components_for, component_quantity
from services.exceptions import InvalidArgumentError, InsufficientStockError
from services.product_service import (
    add_incoming_order, resolve_component, resolve_product_by_sku, sku_type_for_mapping,
)
from services.stock_ledger import apply_stock_change, lock_product, lock_products, to_quantity
from utils.sku_catalog import normalize_sku, unit_volume, variant_for

logger = logging.getLogger(__name__)

TOPIC_FULFILLED = "orders/fulfilled"
TOPIC_FULFILLMENT_CREATED = "fulfillments/create"
TOPIC_ORDER_CREATED = "orders/create"

FULFILLMENT_TOPICS = (TOPIC_FULFILLED, TOPIC_FULFILLMENT_CREATED)

# Stored on ProcessedOrderLine.topic
KIND_FULFILLMENT = "fulfillment"
KIND_INTAKE = "intake"


@dataclass
class LineItem:
    index: int
    sku: str
    quantity: Decimal


@dataclass
class Movement:
    product_id: str
    quantity: Decimal
    balance_after: Decimal
    clamped: bool = False


@dataclass
class CascadeReport:
    order_ref: Optional[str]
    applied: List[dict] = field(default_factory=list)
    skipped: List[dict] = field(default_factory=list)

    def skip(self, index, sku, reason):
        logger.warning("Order %s line %s (%s) skipped: %s", self.order_ref, index, sku, reason)
        self.skipped.append({"line": index, "sku": sku, "reason": reason})


def parse_line_items(payload) -> List[LineItem]:
    """Validate the event shape; unusable lines are dropped, not fatal."""
    if not isinstance(payload, dict):
        raise InvalidArgumentError("Invalid webhook data")
    raw_items = payload.get("line_items")
    if raw_items is None or not isinstance(raw_items, list):
        raise InvalidArgumentError("Invalid webhook data: line_items must be a list")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            logger.info("Line %s is not an object, ignored", index)
            continue
        sku = normalize_sku(raw.get("sku"))
        try:
            qty = to_quantity(raw.get("quantity"))
        except InvalidArgumentError:
            qty = None
        if not sku or qty is None:
            logger.info("Line %s has no SKU or usable quantity, ignored", index)
            continue
        items.append(LineItem(index=index, sku=sku, quantity=qty))
    return items


def order_ref_of(payload: dict) -> Optional[str]:
    ref = payload.get("name") or payload.get("id")
    return str(ref) if ref is not None else None


def _already_processed(db: Session, order_ref: Optional[str], kind: str, index: int) -> bool:
    if not order_ref:
        return False
    return db.query(ProcessedOrderLine.id).filter(
        ProcessedOrderLine.order_ref == order_ref,
        ProcessedOrderLine.topic == kind,
        ProcessedOrderLine.line_index == index,
    ).first() is not None


def _mark_processed(db: Session, order_ref: Optional[str], kind: str, item: LineItem) -> None:
    if order_ref:
        db.add(ProcessedOrderLine(order_ref=order_ref, topic=kind, line_index=item.index, sku=item.sku))
        db.flush()


def remove_clamped(db: Session, product: Product, quantity: Decimal, note: str, order_ref: Optional[str]) -> Optional[Movement]:
    """Remove stock, flooring at zero instead of failing.

    Returns None when the product already had nothing left to remove.
    """
    try:
        entry = apply_stock_change(db, product, quantity, TransactionType.REMOVE, note, order_ref)
        return Movement(product.id, Decimal(entry.quantity), Decimal(entry.balance_after))
    except InsufficientStockError as exc:
        if exc.available <= 0:
            logger.warning("%s already at zero, %s %s not recorded (%s)", product.id, quantity, product.unit, note)
            return None
        logger.warning("%s short by %s %s, clamping to zero", product.id, quantity - exc.available, product.unit)
        entry = apply_stock_change(
            db, product, exc.available, TransactionType.REMOVE,
            f"{note} [clamped: requested {quantity}, available {exc.available}]", order_ref,
        )
        return Movement(product.id, Decimal(entry.quantity), Decimal(entry.balance_after), clamped=True)


def _fulfil_line(db: Session, item: LineItem, order_ref: Optional[str], report: CascadeReport) -> None:
    mapping = resolve_product_by_sku(db, item.sku)
    if not mapping:
        report.skip(item.index, item.sku, "sku_not_found")
        return

    sku_type = sku_type_for_mapping(mapping)
    volume = unit_volume(sku_type)
    variant = variant_for(sku_type)
    components = components_for(db, variant) if variant else []
    if variant and not components:
        logger.info("No BOM found for variant %s", variant)

    # Resolve every product of the line before taking any row lock
    targets = []
    for component in components:
        target = resolve_component(db, component.component_code)
        if not target:
            logger.warning("BOM component not found: %s (variant %s)", component.component_code, variant)
            report.skipped.append({
                "line": item.index, "sku": item.sku,
                "reason": "component_not_found", "component": component.component_code,
            })
            continue
        targets.append((component, target.id))

    locked = lock_products(db, [mapping.product_id] + [pid for _, pid in targets])

    # Primary product
    product = locked[mapping.product_id]
    total = volume * item.quantity
    note = f"Shopify Order {order_ref} - Fulfilled ({item.quantity}x {volume}{product.unit})"
    movements = []
    moved = remove_clamped(db, product, total, note, order_ref)
    if moved:
        movements.append(moved)
    logger.info("SKU %s: %s x %s = %s %s from %s", item.sku, item.quantity, volume, total, product.unit, product.id)

    # BOM components of the sold variant
    for component, target_id in targets:
        qty = component_quantity(component) * item.quantity
        moved = remove_clamped(
            db, locked[target_id], qty,
            f"Shopify Order {order_ref} - BOM Component ({item.quantity}x {variant})",
            order_ref,
        )
        if moved:
            movements.append(moved)

    _mark_processed(db, order_ref, KIND_FULFILLMENT, item)
    report.applied.append({
        "line": item.index,
        "sku": item.sku,
        "productId": product.id,
        "variant": variant,
        "movements": [
            {"productId": m.product_id, "quantity": float(m.quantity),
             "balanceAfter": float(m.balance_after), "clamped": m.clamped}
            for m in movements
        ],
    })


def _integrity_failure(db: Session, report: CascadeReport, kind: str, item: LineItem) -> None:
    """Classify a rolled back line: recorded by a concurrent delivery or a real failure."""
    if _already_processed(db, report.order_ref, kind, item.index):
        report.skip(item.index, item.sku, "duplicate")
        return
    logger.exception("Order %s line %s (%s) violated a constraint", report.order_ref, item.index, item.sku)
    report.skipped.append({"line": item.index, "sku": item.sku, "reason": "error"})


def handle_fulfillment(db: Session, line_items: List[LineItem], order_ref: Optional[str]) -> CascadeReport:
    """Debit stock and BOM components for a fulfilled order."""
    if line_items is None or not isinstance(line_items, list):
        raise InvalidArgumentError("line_items must be a list")

    report = CascadeReport(order_ref=order_ref)
    for item in line_items:
        if _already_processed(db, order_ref, KIND_FULFILLMENT, item.index):
            report.skip(item.index, item.sku, "duplicate")
            continue
        try:
            _fulfil_line(db, item, order_ref, report)
            db.commit()
        except IntegrityError:
            db.rollback()
            _integrity_failure(db, report, KIND_FULFILLMENT, item)
        except Exception:
            db.rollback()
            logger.exception("Order %s line %s (%s) failed", order_ref, item.index, item.sku)
            report.skipped.append({"line": item.index, "sku": item.sku, "reason": "error"})
    logger.info(
        "Order %s fulfilment: %d line(s) applied, %d skipped",
        order_ref, len(report.applied), len(report.skipped),
    )
    return report


def handle_order_created(db: Session, line_items: List[LineItem], order_ref: Optional[str]) -> CascadeReport:
    """Queue incoming orders on the matching products; stock is untouched."""
    if line_items is None or not isinstance(line_items, list):
        raise InvalidArgumentError("line_items must be a list")

    report = CascadeReport(order_ref=order_ref)
    for item in line_items:
        if _already_processed(db, order_ref, KIND_INTAKE, item.index):
            report.skip(item.index, item.sku, "duplicate")
            continue
        mapping = resolve_product_by_sku(db, item.sku)
        if not mapping:
            report.skip(item.index, item.sku, "sku_not_found")
            continue
        try:
            product = lock_product(db, mapping.product_id)
            add_incoming_order(db, product, order_ref, item.sku, item.quantity)
            _mark_processed(db, order_ref, KIND_INTAKE, item)
            db.commit()
        except IntegrityError:
            db.rollback()
            _integrity_failure(db, report, KIND_INTAKE, item)
            continue
        except Exception:
            db.rollback()
            logger.exception("Order %s line %s (%s) failed", order_ref, item.index, item.sku)
            report.skipped.append({"line": item.index, "sku": item.sku, "reason": "error"})
            continue
        logger.info("Incoming order added: %s - Order %s", product.id, order_ref)
        report.applied.append({"line": item.index, "sku": item.sku, "productId": product.id})
    return report

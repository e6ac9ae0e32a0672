# backend/services/stock_ledger.py
"""Stock mutations and the transaction ledger.

Every change of ``Product.current_stock`` goes through ``apply_stock_change``,
which writes the new stock, the derived box count and exactly one ledger row
in the caller's transaction. ``adjust_stock`` wraps it in its own
transaction with the product row locked (``SELECT ... FOR UPDATE``), so two
concurrent mutations of the same product are serialized by the database and
mutations of different products never wait on each other.
"""
import logging
import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Optional

from sqlalchemy.orm import Session

from models.product import Product
from models.transaction import StockTransaction, TransactionType
from services.exceptions import NotFoundError, InvalidArgumentError, InsufficientStockError

logger = logging.getLogger(__name__)

# Stock and ledger columns are Numeric(14, 3)
QUANTITY_STEP = Decimal("0.001")
MAX_QUANTITY = Decimal("99999999999.999")


@dataclass
class AdjustResult:
    new_stock: Decimal
    product: Product
    transaction: StockTransaction


def to_quantity(value) -> Decimal:
    """Parse a positive, finite quantity that fits the stock columns.

    Finer fractions than a thousandth are rounded half up; a quantity that
    rounds to zero is rejected.
    """
    if value is None or isinstance(value, bool):
        raise InvalidArgumentError("Quantity is required")
    try:
        qty = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidArgumentError(f"Invalid quantity: {value!r}")
    if not qty.is_finite() or qty <= 0:
        raise InvalidArgumentError("Quantity must be a positive number")
    if qty > MAX_QUANTITY:
        raise InvalidArgumentError(f"Quantity must not exceed {MAX_QUANTITY}")
    if qty.as_tuple().exponent < QUANTITY_STEP.as_tuple().exponent:
        qty = qty.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)
    if qty <= 0:
        raise InvalidArgumentError(f"Quantity must be at least {QUANTITY_STEP}")
    return qty


def to_direction(value) -> TransactionType:
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(str(value).lower())
    except ValueError:
        raise InvalidArgumentError('Type must be either "add" or "remove"')


def compute_stock_boxes(stock, unit_per_box) -> int:
    if not unit_per_box or unit_per_box <= 0:
        return 0
    return int(math.floor(Decimal(stock) / Decimal(unit_per_box)))


def lock_product(db: Session, product_id: str) -> Product:
    """Load a product with its row locked until the transaction ends."""
    if not product_id:
        raise InvalidArgumentError("productId is required")
    product = (
        db.query(Product)
        .filter(Product.id == product_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not product:
        raise NotFoundError(f"Product not found: {product_id}")
    return product


def lock_products(db: Session, product_ids) -> Dict[str, Product]:
    """Lock several products, always in identifier order.

    Transactions touching overlapping products then wait on the same first
    row instead of each holding a row the other needs.
    """
    return {pid: lock_product(db, pid) for pid in sorted(set(product_ids))}


def apply_stock_change(
    db: Session,
    product: Product,
    quantity,
    direction,
    note: str = "",
    order_ref: Optional[str] = None,
) -> StockTransaction:
    """Mutate a locked product and append its ledger row, without committing.

    Raises InsufficientStockError before writing anything when a removal
    would take stock below zero.
    """
    qty = to_quantity(quantity)
    kind = to_direction(direction)

    current = Decimal(product.current_stock or 0)
    if kind is TransactionType.ADD:
        new_stock = current + qty
        if new_stock > MAX_QUANTITY:
            raise InvalidArgumentError(f"Stock of {product.id} would exceed {MAX_QUANTITY}")
    else:
        new_stock = current - qty
        if new_stock < 0:
            raise InsufficientStockError(product.id, current, qty)

    product.current_stock = new_stock
    product.stock_boxes = compute_stock_boxes(new_stock, product.unit_per_box)

    entry = StockTransaction(
        product_id=product.id,
        product_code=product.product_code or product.tag,
        product_name=product.name,
        category=product.category,
        type=kind.value,
        quantity=qty,
        unit=product.unit or "units",
        balance_after=new_stock,
        notes=note or "",
        shopify_order_id=order_ref,
    )
    db.add(entry)
    db.flush()

    logger.debug("%s %s %s on %s -> %s", kind.value, qty, product.unit, product.id, new_stock)
    return entry


def adjust_stock(
    db: Session,
    product_id: str,
    quantity,
    direction,
    note: str = "",
    order_ref: Optional[str] = None,
) -> AdjustResult:
    """Apply one stock mutation as its own atomic unit of work."""
    try:
        qty = to_quantity(quantity)
        kind = to_direction(direction)
        product = lock_product(db, product_id)
        entry = apply_stock_change(db, product, qty, kind, note or f"Manual {kind.value} adjustment", order_ref)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(product)
    logger.info("Stock %s %s for %s, new balance %s", kind.value, qty, product.id, product.current_stock)
    return AdjustResult(new_stock=Decimal(product.current_stock), product=product, transaction=entry)

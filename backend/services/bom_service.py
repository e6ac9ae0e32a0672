# backend/services/bom_service.py
from collections import OrderedDict
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.bom import BomEntry
from services.exceptions import NotFoundError, InvalidArgumentError, ConflictError
from services.stock_ledger import to_quantity


def components_for(db: Session, variant: str) -> List[BomEntry]:
    return (
        db.query(BomEntry)
        .filter(BomEntry.variant == variant)
        .order_by(BomEntry.seq.asc(), BomEntry.id.asc())
        .all()
    )


def list_bom(db: Session, variant: Optional[str] = None) -> Dict[str, List[BomEntry]]:
    """BOM rows grouped by variant, each group ordered by seq."""
    query = db.query(BomEntry)
    if variant:
        query = query.filter(BomEntry.variant == variant)
    grouped: Dict[str, List[BomEntry]] = OrderedDict()
    for row in query.order_by(BomEntry.variant.asc(), BomEntry.seq.asc()).all():
        grouped.setdefault(row.variant, []).append(row)
    return grouped


def _find(db: Session, variant: str, component_code: str) -> Optional[BomEntry]:
    return (
        db.query(BomEntry)
        .filter(BomEntry.variant == variant, BomEntry.component_code == component_code)
        .first()
    )


def add_component(db: Session, variant: str, component_code: str, component_name: Optional[str], quantity) -> List[BomEntry]:
    if not variant or not component_code:
        raise InvalidArgumentError("variant and componentCode are required")
    qty = to_quantity(quantity)

    try:
        if _find(db, variant, component_code):
            raise ConflictError("Component already exists in this BOM")

        next_seq = (
            db.query(func.coalesce(func.max(BomEntry.seq), 0))
            .filter(BomEntry.variant == variant)
            .scalar()
        ) + 1
        db.add(BomEntry(
            variant=variant,
            seq=next_seq,
            component_code=component_code,
            component_name=component_name or component_code,
            quantity=qty,
        ))
        db.commit()
    except Exception:
        db.rollback()
        raise
    return components_for(db, variant)


def update_component(db: Session, variant: str, component_code: str, component_name: Optional[str] = None, quantity=None) -> List[BomEntry]:
    try:
        entry = _find(db, variant, component_code)
        if not entry:
            raise NotFoundError("Component not found")
        if component_name is not None:
            entry.component_name = component_name
        if quantity is not None:
            entry.quantity = to_quantity(quantity)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return components_for(db, variant)


def delete_component(db: Session, variant: str, component_code: str) -> List[BomEntry]:
    """Remove a component and renumber the rest 1..N-1 in their current order."""
    try:
        entry = _find(db, variant, component_code)
        if not entry:
            raise NotFoundError("Component not found")
        db.delete(entry)
        db.flush()

        for position, row in enumerate(components_for(db, variant), start=1):
            row.seq = position
        db.commit()
    except Exception:
        db.rollback()
        raise
    return components_for(db, variant)


def component_quantity(entry: BomEntry) -> Decimal:
    return Decimal(entry.quantity)

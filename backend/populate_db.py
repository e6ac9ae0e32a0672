"""Load a legacy database.json export into the current schema.

Usage: python populate_db.py [path/to/database.json]

Users, products (with SKU maps and incoming orders), ledger transactions and
BOM rows are upserted by their identifiers, so running it twice is safe.
"""
import json
import os
import sys
from datetime import datetime
from decimal import Decimal

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from database import SessionLocal, init_db
from models.users import User, UserRole
from models.product import Product, ProductSku, IncomingOrder
from models.transaction import StockTransaction
from models.bom import BomEntry
from services.stock_ledger import compute_stock_boxes
from utils.hashing import get_password_hash
from utils.sku_catalog import normalize_sku

# Configuration
DEFAULT_SOURCE = os.path.join(os.path.dirname(__file__), "database.json")
ADMIN_NAME = os.getenv("ADMIN_NAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")


def pick(row: dict, *keys, default=None):
    # Legacy exports mix camelCase and snake_case keys
    for key in keys:
        if row.get(key) not in (None, ""):
            return row[key]
    return default


def parse_json_field(value, fallback):
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return fallback
    return value if isinstance(value, type(fallback)) else fallback


def parse_ts(value):
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def import_users(session, users):
    count = 0
    for row in users:
        name = row.get("name")
        if not name or session.query(User).filter(User.name == name).first():
            continue
        password = row.get("password") or ""
        # bcryptjs hashes ($2a$/$2b$) are kept, anything else is treated as plain text
        password_hash = password if password.startswith("$2") else get_password_hash(password)
        session.add(User(name=name, password_hash=password_hash, role=row.get("role") or UserRole.USER.value))
        count += 1
    return count


def import_products(session, products):
    count = 0
    for row in products:
        product_id = row.get("id")
        if not product_id:
            continue
        product = session.query(Product).filter(Product.id == product_id).first() or Product(id=product_id)
        stock = Decimal(str(pick(row, "currentStock", "current_stock", default=0)))
        unit_per_box = int(pick(row, "unitPerBox", "unit_per_box", default=1))

        product.tag = row.get("tag")
        product.product_code = pick(row, "productCode", "product_code")
        product.name = row.get("name") or product_id
        product.category = (row.get("category") or "OILS").upper()
        product.unit = row.get("unit") or "units"
        product.current_stock = max(stock, Decimal(0))
        product.min_stock_level = Decimal(str(pick(row, "minStockLevel", "min_stock_level", default=0)))
        product.supplier = row.get("supplier") or ""
        product.supplier_code = pick(row, "supplierCode", "supplier_code", default="")
        product.unit_per_box = unit_per_box
        product.stock_boxes = compute_stock_boxes(product.current_stock, unit_per_box)
        session.add(product)
        session.flush()

        skus = parse_json_field(pick(row, "shopifySkus", "shopify_skus", default={}), {})
        product.skus.clear()
        session.flush()
        for sku_type, sku in skus.items():
            sku = normalize_sku(sku)
            taken = session.query(ProductSku).filter(ProductSku.sku == sku).first()
            if sku and not taken:
                product.skus.append(ProductSku(sku=sku, sku_type=str(sku_type).upper()))
            elif taken:
                print(f"  SKU {sku} already mapped to {taken.product_id}, skipped for {product_id}")

        if not product.incoming_orders:
            for order in parse_json_field(pick(row, "incoming_orders", "incomingOrders", default=[]), []):
                entry = IncomingOrder(
                    order_number=str(order.get("orderNumber") or ""),
                    sku=order.get("sku"),
                    quantity=Decimal(str(order.get("quantity") or 0)),
                )
                received_at = parse_ts(order.get("receivedAt"))
                if received_at:
                    entry.received_at = received_at
                product.incoming_orders.append(entry)
        count += 1
    return count


def import_transactions(session, transactions):
    if session.query(StockTransaction).count():
        print("  Ledger already has rows, transactions not imported")
        return 0
    count = 0
    for row in transactions:
        quantity = Decimal(str(row.get("quantity") or 0))
        if quantity <= 0:
            continue
        product_id = pick(row, "productId", "product_id")
        if product_id and not session.query(Product.id).filter(Product.id == product_id).first():
            product_id = None
        entry = StockTransaction(
            product_id=product_id,
            product_code=pick(row, "productCode", "product_code"),
            product_name=pick(row, "productName", "product_name"),
            category=row.get("category"),
            type=(row.get("type") or "add").lower(),
            quantity=quantity,
            unit=row.get("unit"),
            balance_after=Decimal(str(pick(row, "balanceAfter", "balance_after", default=0))),
            notes=row.get("notes") or "",
            shopify_order_id=pick(row, "shopifyOrderId", "shopify_order_id"),
        )
        created_at = parse_ts(pick(row, "createdAt", "created_at"))
        if created_at:
            entry.created_at = created_at
        session.add(entry)
        count += 1
    return count


def import_bom(session, bom):
    count = 0
    for variant, components in (bom or {}).items():
        for position, comp in enumerate(components, start=1):
            code = pick(comp, "componentCode", "component_code")
            if not code:
                continue
            entry = session.query(BomEntry).filter(
                BomEntry.variant == variant, BomEntry.component_code == code
            ).first() or BomEntry(variant=variant, component_code=code)
            entry.seq = int(comp.get("seq") or position)
            entry.component_name = pick(comp, "componentName", "component_name", default=code)
            entry.quantity = Decimal(str(comp.get("quantity") or 1))
            session.add(entry)
            count += 1
    return count


def ensure_admin(session):
    if session.query(User).filter(User.role == UserRole.ADMIN.value).first():
        return False
    session.add(User(name=ADMIN_NAME, password_hash=get_password_hash(ADMIN_PASSWORD), role=UserRole.ADMIN.value))
    return True


def load_all_data(path: str):
    init_db()
    session = SessionLocal()
    try:
        data = {}
        if os.path.exists(path):
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
        else:
            print(f"No export found at {path}, only the admin account is checked.")

        print(f"Users: {import_users(session, data.get('users') or [])}")
        print(f"Products: {import_products(session, data.get('products') or [])}")
        print(f"Transactions: {import_transactions(session, data.get('transactions') or [])}")
        print(f"BOM rows: {import_bom(session, data.get('bom') or {})}")
        if ensure_admin(session):
            print(f"Created admin user '{ADMIN_NAME}'")
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    load_all_data(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_SOURCE)

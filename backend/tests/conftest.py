import os
import tempfile
from decimal import Decimal

# Must be set before config/database are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="scent-uploads-")
os.environ["SHOPIFY_WEBHOOK_SECRET"] = ""
os.environ["SHOPIFY_SYNC_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
import models.users, models.product, models.transaction, models.bom  # noqa: F401,E401
import models.processed_order, models.attachment, models.log  # noqa: F401,E401
from models.bom import BomEntry
from models.product import Product, ProductSku
from models.users import User, UserRole
from utils.hashing import get_password_hash
from utils.tokenJWT import create_access_token

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    from main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def admin(db):
    user = User(name="admin", password_hash=get_password_hash("secret"), role=UserRole.ADMIN.value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def staff(db):
    user = User(name="packer", password_hash=get_password_hash("packer-pw"), role=UserRole.USER.value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_for(user):
    token = create_access_token(data={"sub": user.name, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(admin):
    return auth_for(admin)


@pytest.fixture()
def staff_headers(staff):
    return auth_for(staff)


@pytest.fixture()
def make_product(db):
    """Insert a product directly, bypassing identifier generation."""
    def _make(product_id, stock=0, unit="mL", category="OILS", unit_per_box=1, skus=None, code=None, tag=None):
        product = Product(
            id=product_id,
            tag=tag,
            product_code=code or product_id,
            name=f"Test {product_id}",
            category=category,
            unit=unit,
            current_stock=Decimal(str(stock)),
            min_stock_level=Decimal(0),
            unit_per_box=unit_per_box,
            stock_boxes=0,
        )
        for sku_type, sku in (skus or {}).items():
            product.skus.append(ProductSku(sku=sku, sku_type=sku_type))
        db.add(product)
        db.commit()
        db.refresh(product)
        return product
    return _make


@pytest.fixture()
def make_bom(db):
    def _make(variant, *components):
        for seq, (code, qty) in enumerate(components, start=1):
            db.add(BomEntry(variant=variant, seq=seq, component_code=code, component_name=code, quantity=Decimal(str(qty))))
        db.commit()
    return _make

# backend/models/product.py
import enum
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, ForeignKey, CheckConstraint, func
)
from sqlalchemy.orm import relationship
from database import Base


class ProductCategory(str, enum.Enum):
    OILS = "OILS"
    RAW_MATERIALS = "RAW_MATERIALS"
    MACHINES_SPARES = "MACHINES_SPARES"


# Model Product
# A stocked item: an essential oil, a raw material (bottles, caps, labels)
# or a machine / spare part. Stock is held in the product's own unit.
class Product(Base):
    __tablename__ = "products"

    # {CATEGORY}_{n}, issued by ProductSequence and never reused
    id = Column(String(64), primary_key=True, index=True)
    tag = Column(String(32), index=True)
    product_code = Column(String(64), index=True)
    name = Column(String, nullable=False, index=True)
    category = Column(String(32), nullable=False, index=True)
    unit = Column(String(16), nullable=False, default="units")

    # Stock data, kept consistent by services.stock_ledger
    current_stock = Column(Numeric(14, 3), CheckConstraint("current_stock >= 0"), nullable=False, default=0)
    min_stock_level = Column(Numeric(14, 3), nullable=False, default=0)
    unit_per_box = Column(Integer, CheckConstraint("unit_per_box >= 0"), nullable=False, default=1)
    stock_boxes = Column(Integer, nullable=False, default=0)

    supplier = Column(String, default="")
    supplier_code = Column(String, default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    skus = relationship(
        "ProductSku", back_populates="product",
        cascade="all, delete-orphan", order_by="ProductSku.sku_type",
    )
    incoming_orders = relationship(
        "IncomingOrder", back_populates="product",
        cascade="all, delete-orphan", order_by=lambda: [IncomingOrder.received_at, IncomingOrder.id],
    )

    # Marketplace SKU mapping {sku_type: sku}
    @property
    def shopify_skus(self):
        return {s.sku_type: s.sku for s in self.skus}


# Last identifier number issued per category
class ProductSequence(Base):
    __tablename__ = "product_sequences"

    category = Column(String(32), primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)


# One marketplace SKU pointing at exactly one product
class ProductSku(Base):
    __tablename__ = "product_skus"

    id = Column(Integer, primary_key=True, index=True)
    # Stored stripped and upper-cased, see utils.sku_catalog.normalize_sku
    sku = Column(String(128), unique=True, nullable=False, index=True)
    sku_type = Column(String(32), nullable=False)
    product_id = Column(String(64), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    product = relationship("Product", back_populates="skus")


# A sale placed on the marketplace and not yet fulfilled
class IncomingOrder(Base):
    __tablename__ = "incoming_orders"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String(64), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    order_number = Column(String(64))
    sku = Column(String(128))
    quantity = Column(Numeric(14, 3), nullable=False)
    received_at = Column(DateTime(timezone=True), server_default=func.now())

    product = relationship("Product", back_populates="incoming_orders")

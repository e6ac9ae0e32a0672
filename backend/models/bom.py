# backend/models/bom.py
from sqlalchemy import Column, Integer, String, Numeric, UniqueConstraint, CheckConstraint
from database import Base

# Bill of materials line: how many units of a component one sold unit
# of a variant consumes. seq is 1..N without gaps inside a variant.
class BomEntry(Base):
    __tablename__ = "bom"
    __table_args__ = (
        UniqueConstraint("variant", "component_code", name="uq_bom_variant_component"),
    )

    id = Column(Integer, primary_key=True, index=True)
    variant = Column(String(32), nullable=False, index=True)
    seq = Column(Integer, nullable=False)
    component_code = Column(String(64), nullable=False)
    component_name = Column(String)
    quantity = Column(Numeric(14, 3), CheckConstraint("quantity > 0"), nullable=False)

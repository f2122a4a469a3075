# backend/models/product.py
from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# Product master data as seen by the ledger.
# quantity_on_hand is a denormalized sum of remaining stock over ACTIVE batches,
# kept in sync by services.batch_store in the same transaction as every batch change.
class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("cost_price >= 0", name="ck_products_cost_price"),
        CheckConstraint("reorder_level >= 0", name="ck_products_reorder_level"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    code = Column(String, unique=True, nullable=False, index=True)

    # Current (last received) unit cost
    cost_price = Column(Numeric(12, 2), nullable=False, default=0)

    quantity_on_hand = Column(Integer, nullable=False, default=0)
    reorder_level = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    batches = relationship("InventoryBatch", back_populates="product")

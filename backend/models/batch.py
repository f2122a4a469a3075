# backend/models/batch.py
import enum
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Numeric, Date, DateTime, ForeignKey, CheckConstraint, Index, func,
)
from sqlalchemy.orm import relationship
from database import Base


class BatchStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    DEPLETED = "DEPLETED"
    EXPIRED = "EXPIRED"


class BatchSource(str, enum.Enum):
    GOODS_RECEIPT = "GOODS_RECEIPT"
    ADJUSTMENT = "ADJUSTMENT"


# A discrete lot of one product with its own cost and expiry.
# Batches are never deleted; a batch whose stock runs out becomes DEPLETED.
class InventoryBatch(Base):
    __tablename__ = "inventory_batches"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_batches_quantity_positive"),
        CheckConstraint(
            "remaining_quantity >= 0 AND remaining_quantity <= quantity",
            name="ck_batches_remaining_range",
        ),
        CheckConstraint("cost_price >= 0", name="ck_batches_cost_price"),
        Index("ix_batches_fefo", "product_id", "status", "expiry_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    batch_number = Column(String(100), unique=True, nullable=False, index=True)

    source_type = Column(String(30), nullable=True)
    source_id = Column(Integer, nullable=True)

    quantity = Column(Integer, nullable=False)
    remaining_quantity = Column(Integer, nullable=False)
    cost_price = Column(Numeric(12, 2), nullable=False)

    # NULL means the batch never expires and sorts last in FEFO order
    expiry_date = Column(Date, nullable=True)
    received_date = Column(DateTime, nullable=False, default=datetime.now)

    status = Column(String(20), nullable=False, default=BatchStatus.ACTIVE.value, index=True)
    notes = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="batches")

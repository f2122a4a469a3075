# backend/models/stock.py
import enum

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, CheckConstraint, Index, func
from sqlalchemy.orm import relationship
from database import Base


class MovementType(str, enum.Enum):
    GOODS_RECEIPT = "GOODS_RECEIPT"
    SALE = "SALE"
    ADJUSTMENT = "ADJUSTMENT"
    VOID_REVERSAL = "VOID_REVERSAL"


class AdjustmentType(str, enum.Enum):
    DAMAGE = "DAMAGE"
    THEFT = "THEFT"
    EXPIRY = "EXPIRY"
    COUNT_CORRECTION = "COUNT_CORRECTION"
    OTHER = "OTHER"


# Append-only record of a signed quantity change.
# Rows are never updated or deleted; corrections are new movements.
class StockMovement(Base):
    __tablename__ = "stock_movements"
    __table_args__ = (
        CheckConstraint("quantity <> 0", name="ck_movements_quantity_nonzero"),
        Index("ix_movements_reference", "reference_type", "reference_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    batch_id = Column(Integer, ForeignKey("inventory_batches.id"), nullable=True, index=True)

    movement_type = Column(String(30), nullable=False, index=True)
    adjustment_type = Column(String(30), nullable=True)

    # Positive for stock in, negative for stock out
    quantity = Column(Integer, nullable=False)
    # Unit cost of the batch at the time of the movement
    cost_price = Column(Numeric(12, 2), nullable=True)

    reference_type = Column(String(30), nullable=True)
    reference_id = Column(Integer, nullable=True)
    reference_number = Column(String(100), nullable=True)

    notes = Column(String, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    product = relationship("Product")
    batch = relationship("InventoryBatch")
    user = relationship("User")

    @property
    def movement_number(self):
        year = self.created_at.year if self.created_at else ""
        return f"SM-{year}-{self.id:06d}"

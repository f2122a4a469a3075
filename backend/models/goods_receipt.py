# backend/models/goods_receipt.py
import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, ForeignKey, Text, Enum, func
from sqlalchemy.orm import relationship
from database import Base

# Lifecycle of a goods receipt document
class GoodsReceiptStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

# Incoming delivery; finalizing it turns each line into a batch
class GoodsReceipt(Base):
    __tablename__ = "goods_receipts"

    id = Column(Integer, primary_key=True, index=True)
    receipt_number = Column(String(50), unique=True, nullable=False, index=True)
    status = Column(Enum(GoodsReceiptStatus), nullable=False, default=GoodsReceiptStatus.DRAFT)
    supplier_name = Column(String, nullable=True)
    received_date = Column(DateTime, nullable=False, default=datetime.now)
    received_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    notes = Column(Text, nullable=True)
    finalized_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship(
        "GoodsReceiptItem",
        back_populates="receipt",
        cascade="all, delete-orphan",
        order_by="GoodsReceiptItem.id",
    )

# Single received line; batch_number is generated on finalize when left empty
class GoodsReceiptItem(Base):
    __tablename__ = "goods_receipt_items"

    id = Column(Integer, primary_key=True, index=True)
    goods_receipt_id = Column(Integer, ForeignKey("goods_receipts.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    received_quantity = Column(Integer, nullable=False)
    cost_price = Column(Numeric(12, 2), nullable=False)
    batch_number = Column(String(100), nullable=True)
    expiry_date = Column(Date, nullable=True)

    receipt = relationship("GoodsReceipt", back_populates="items")
    product = relationship("Product")

# backend/schemas/stock.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Literal

from config import settings

# Allowed movement types and their sign groups
StockMovementType = Literal["GOODS_RECEIPT", "SALE", "ADJUSTMENT", "VOID_REVERSAL"]
MovementDirection = Literal["IN", "OUT"]
AdjustmentTypeLiteral = Literal["DAMAGE", "THEFT", "EXPIRY", "COUNT_CORRECTION", "OTHER"]


# Single ledger row as returned by the API
class StockMovementOut(BaseModel):
    id: int
    movement_number: str
    product_id: int
    batch_id: Optional[int] = None
    movement_type: StockMovementType
    adjustment_type: Optional[str] = None
    quantity: int
    cost_price: Optional[Decimal] = None
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Paginated response for stock movement history
class StockMovementPage(BaseModel):
    items: List[StockMovementOut]
    total: int
    page: int
    page_size: int


# Manual correction; negative quantity removes stock FEFO, positive adds a batch
class StockAdjustmentCreate(BaseModel):
    product_id: int
    quantity: int
    reason: str = Field(..., min_length=settings.ADJUSTMENT_REASON_MIN_LENGTH, max_length=500)
    adjustment_type: AdjustmentTypeLiteral = "COUNT_CORRECTION"
    unit_cost: Optional[Decimal] = Field(default=None, ge=0)
    expiry_date: Optional[date] = None
    performed_by: Optional[int] = None


class StockAdjustmentResponse(BaseModel):
    adjustment_number: str
    product_id: int
    quantity: int
    adjustment_type: AdjustmentTypeLiteral
    quantity_on_hand: int
    movements: List[StockMovementOut]

    model_config = ConfigDict(from_attributes=True)


class AdjustmentSummaryItem(BaseModel):
    adjustment_type: Optional[str] = None
    count: int
    net_quantity: int

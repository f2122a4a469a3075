# backend/schemas/allocation.py
from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict

from schemas.stock import StockMovementOut


class AllocationRequest(BaseModel):
    product_id: int
    quantity: int = Field(..., gt=0)
    as_of: Optional[date] = None
    include_expired: bool = False


class AllocationLineOut(BaseModel):
    batch_id: int
    batch_number: str
    quantity: int
    cost_price: Decimal
    expiry_date: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)


class AllocationPlanOut(BaseModel):
    product_id: int
    requested_quantity: int
    allocated_quantity: int
    total_cost: Decimal
    lines: List[AllocationLineOut]

    model_config = ConfigDict(from_attributes=True)


# Business document the stock leaves for, e.g. a sale
class ReferenceIn(BaseModel):
    reference_type: str = "SALE"
    reference_id: Optional[int] = None
    reference_number: Optional[str] = None


class AllocationCommitRequest(AllocationRequest):
    reference: ReferenceIn = Field(default_factory=ReferenceIn)
    performed_by: Optional[int] = None


class AllocationCommitResponse(BaseModel):
    product_id: int
    quantity: int
    quantity_on_hand: int
    movements: List[StockMovementOut]


class ReversalRequest(BaseModel):
    reference_type: str = "SALE"
    reference_id: int
    reason: str = Field(..., min_length=3, max_length=500)
    performed_by: Optional[int] = None

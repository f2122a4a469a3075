# backend/schemas/goods_receipt.py
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Literal

from pydantic import BaseModel, Field, ConfigDict

from models.goods_receipt import GoodsReceiptStatus
from schemas.batch import BatchOut


class GoodsReceiptItemCreate(BaseModel):
    product_id: int
    received_quantity: int = Field(..., gt=0)
    cost_price: Decimal = Field(..., ge=0)
    batch_number: Optional[str] = Field(default=None, max_length=100)
    expiry_date: Optional[date] = None


class GoodsReceiptCreate(BaseModel):
    items: List[GoodsReceiptItemCreate] = Field(..., min_length=1)
    supplier_name: Optional[str] = None
    received_date: Optional[datetime] = None
    received_by: Optional[int] = None
    notes: Optional[str] = None


class GoodsReceiptItemOut(BaseModel):
    id: int
    product_id: int
    received_quantity: int
    cost_price: Decimal
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)


class GoodsReceiptOut(BaseModel):
    id: int
    receipt_number: str
    status: GoodsReceiptStatus
    supplier_name: Optional[str] = None
    received_date: datetime
    received_by: Optional[int] = None
    notes: Optional[str] = None
    finalized_at: Optional[datetime] = None
    items: List[GoodsReceiptItemOut]

    model_config = ConfigDict(from_attributes=True)


class GoodsReceiptPage(BaseModel):
    items: List[GoodsReceiptOut]
    total: int
    page: int
    page_size: int


class FinalizeRequest(BaseModel):
    performed_by: Optional[int] = None
    block_on_high: Optional[bool] = None


class CostVarianceAlertOut(BaseModel):
    product_id: int
    batch_number: str
    previous_cost: Decimal
    new_cost: Decimal
    change_percentage: Decimal
    severity: Literal["LOW", "MEDIUM", "HIGH"]

    model_config = ConfigDict(from_attributes=True)


class FinalizeResponse(BaseModel):
    receipt: GoodsReceiptOut
    batches: List[BatchOut]
    alerts: List[CostVarianceAlertOut]

    model_config = ConfigDict(from_attributes=True)

# backend/schemas/batch.py
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Literal

from pydantic import BaseModel, ConfigDict

BatchStatusLiteral = Literal["ACTIVE", "DEPLETED", "EXPIRED"]


class BatchOut(BaseModel):
    id: int
    product_id: int
    batch_number: str
    source_type: Optional[str] = None
    source_id: Optional[int] = None
    quantity: int
    remaining_quantity: int
    cost_price: Decimal
    expiry_date: Optional[date] = None
    received_date: datetime
    status: BatchStatusLiteral
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BatchPage(BaseModel):
    items: List[BatchOut]
    total: int
    page: int
    page_size: int

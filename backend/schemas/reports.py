# backend/schemas/reports.py
from datetime import date
from decimal import Decimal
from typing import List, Optional, Literal
from pydantic import BaseModel

# Schemas for low stock alerting
class LowStockItem(BaseModel):
    product_id: int
    name: str
    code: Optional[str] = None
    quantity: int
    reorder_level: int
    shortage: int

class LowStockPage(BaseModel):
    items: List[LowStockItem]
    total: int
    page: int
    page_size: int

# Batches close to (or past) their expiry date
class ExpiringBatchItem(BaseModel):
    batch_id: int
    batch_number: str
    product_id: int
    product_name: Optional[str] = None
    remaining_quantity: int
    expiry_date: date
    days_until_expiry: int
    urgency: Literal["CRITICAL", "WARNING", "NORMAL"]
    value_at_cost: Decimal

class ExpiringBatchResponse(BaseModel):
    items: List[ExpiringBatchItem]
    days: int
    as_of: date

# Stock value at batch cost
class ValuationProduct(BaseModel):
    product_id: int
    name: Optional[str] = None
    quantity: int
    value_at_cost: Decimal
    batch_count: int

class ValuationResponse(BaseModel):
    quantity: int
    value_at_cost: Decimal
    product_count: int
    products: List[ValuationProduct]

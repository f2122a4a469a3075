# backend/schemas/product.py
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ProductBase(ORMBase):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    cost_price: Decimal = Field(default=Decimal("0"), ge=0)
    reorder_level: int = Field(default=0, ge=0)
    is_active: bool = True


# Master data is owned elsewhere; this is enough to register a product with the ledger
class ProductCreate(ProductBase):
    pass


class ProductOut(ProductBase):
    id: int
    quantity_on_hand: int
    created_at: Optional[datetime] = None

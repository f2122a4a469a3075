# routes/reports.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from services import valuation
from schemas.reports import LowStockPage, ExpiringBatchResponse, ValuationResponse

router = APIRouter(prefix="/reports", tags=["Reports"])

# -----------------------------
# 1) Low stock
# -----------------------------
@router.get("/low-stock", response_model=LowStockPage)
def report_low_stock(
    threshold: Optional[int] = Query(None, ge=0, description="Stock level (<=); product reorder level when empty"),
    q: Optional[str] = Query(None, description="Search by name or code"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    rows = valuation.low_stock(db, threshold=threshold, q=q)
    start = (page - 1) * page_size
    return {"items": rows[start:start + page_size], "total": len(rows), "page": page, "page_size": page_size}

# -----------------------------
# 2) Expiring batches
# -----------------------------
@router.get("/expiring", response_model=ExpiringBatchResponse)
def report_expiring(
    days: int = Query(settings.EXPIRY_WARNING_DAYS, ge=0, le=3650),
    as_of: Optional[date] = Query(None),
    db: Session = Depends(get_db),
):
    today = as_of or date.today()
    return {"items": valuation.expiring_within(db, days, as_of=today), "days": days, "as_of": today}

# -----------------------------
# 3) Inventory valuation
# -----------------------------
@router.get("/valuation", response_model=ValuationResponse)
def report_valuation(
    product_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    return valuation.valuation(db, product_id=product_id)

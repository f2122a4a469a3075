# backend/routes/stock.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from services import adjustments, ledger
from utils.audit import write_log
import schemas.stock as stock_schemas

router = APIRouter(tags=["Stock"])


@router.get("/", response_model=stock_schemas.StockMovementPage)
def list_movements(
    product_id: Optional[int] = Query(None),
    batch_id: Optional[int] = Query(None),
    type: Optional[stock_schemas.StockMovementType] = Query(None),
    direction: Optional[stock_schemas.MovementDirection] = Query(None),
    reference_type: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    items, total = ledger.list_movements(
        db,
        page=page,
        page_size=page_size,
        product_id=product_id,
        batch_id=batch_id,
        movement_type=type,
        direction=direction,
        reference_type=reference_type,
        date_from=date_from,
        date_to=date_to,
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("/adjust", response_model=stock_schemas.StockAdjustmentResponse)
def adjust_stock(payload: stock_schemas.StockAdjustmentCreate, db: Session = Depends(get_db)):
    result = adjustments.adjust(
        db,
        payload.product_id,
        payload.quantity,
        payload.reason,
        adjustment_type=payload.adjustment_type,
        performed_by=payload.performed_by,
        unit_cost=payload.unit_cost,
        expiry_date=payload.expiry_date,
    )
    response = stock_schemas.StockAdjustmentResponse.model_validate(result)
    write_log(
        db, user_id=payload.performed_by, action="STOCK_ADJUSTMENT", resource="stock",
        meta={"adjustment_number": result.adjustment_number, "movement_ids": [m.id for m in response.movements]},
    )
    return response


@router.get("/adjustments", response_model=stock_schemas.StockMovementPage)
def list_adjustments(
    product_id: Optional[int] = Query(None),
    adjustment_type: Optional[stock_schemas.AdjustmentTypeLiteral] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    items, total = adjustments.list_adjustments(
        db, product_id=product_id, adjustment_type=adjustment_type, page=page, page_size=page_size
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/adjustments/summary", response_model=List[stock_schemas.AdjustmentSummaryItem])
def adjustments_summary(db: Session = Depends(get_db)):
    return adjustments.adjustment_summary(db)


@router.get("/{movement_id}", response_model=stock_schemas.StockMovementOut)
def get_movement(movement_id: int, db: Session = Depends(get_db)):
    return ledger.get_movement(db, movement_id)

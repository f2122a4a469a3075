# backend/routes/allocations.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from services import allocator, batch_store, ledger
from utils.audit import write_log
from utils.concurrency import run_with_retry
import schemas.allocation as allocation_schemas
import schemas.stock as stock_schemas

router = APIRouter(prefix="/allocations", tags=["Allocations"])


# Preview only: nothing is reserved or written
@router.post("/plan", response_model=allocation_schemas.AllocationPlanOut)
def plan_allocation(payload: allocation_schemas.AllocationRequest, db: Session = Depends(get_db)):
    plan = allocator.allocate(
        db, payload.product_id, payload.quantity,
        as_of=payload.as_of, include_expired=payload.include_expired,
    )
    return allocation_schemas.AllocationPlanOut.model_validate(plan)


@router.post("/commit", response_model=allocation_schemas.AllocationCommitResponse)
def commit_allocation(payload: allocation_schemas.AllocationCommitRequest, db: Session = Depends(get_db)):
    reference = ledger.MovementReference(**payload.reference.model_dump())
    movements = allocator.allocate_and_commit(
        db, payload.product_id, payload.quantity, reference,
        performed_by=payload.performed_by,
        as_of=payload.as_of, include_expired=payload.include_expired,
    )
    product = batch_store.get_product(db, payload.product_id)
    response = {
        "product_id": payload.product_id,
        "quantity": payload.quantity,
        "quantity_on_hand": product.quantity_on_hand,
        "movements": [stock_schemas.StockMovementOut.model_validate(m) for m in movements],
    }
    write_log(
        db, user_id=payload.performed_by, action="STOCK_ALLOCATION", resource="stock",
        meta={"product_id": payload.product_id, "movement_ids": [m.id for m in movements]},
    )
    return response


# Void of a sale: stock goes back to the batches it was taken from
@router.post("/reverse", response_model=stock_schemas.StockMovementPage)
def reverse_allocation(payload: allocation_schemas.ReversalRequest, db: Session = Depends(get_db)):
    movements = run_with_retry(
        db,
        lambda: ledger.reverse_reference(
            db, payload.reference_type, payload.reference_id, payload.reason, payload.performed_by
        ),
        context={"reference_type": payload.reference_type, "reference_id": payload.reference_id},
    )
    items = [stock_schemas.StockMovementOut.model_validate(m) for m in movements]
    write_log(
        db, user_id=payload.performed_by, action="STOCK_REVERSAL", resource="stock",
        meta={"reference_type": payload.reference_type, "reference_id": payload.reference_id},
    )
    return {"items": items, "total": len(items), "page": 1, "page_size": max(len(items), 1)}

# backend/routes/batches.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from services import batch_store
import schemas.batch as batch_schemas

router = APIRouter(prefix="/batches", tags=["Batches"])


@router.get("/", response_model=batch_schemas.BatchPage)
def list_batches(
    product_id: Optional[int] = Query(None),
    status: Optional[batch_schemas.BatchStatusLiteral] = Query(None),
    q: Optional[str] = Query(None, description="Search by batch number"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    items, total = batch_store.list_batches(
        db, product_id=product_id, status=status, q=q, page=page, page_size=page_size
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/{batch_id}", response_model=batch_schemas.BatchOut)
def get_batch(batch_id: int, db: Session = Depends(get_db)):
    return batch_store.get_batch(db, batch_id)

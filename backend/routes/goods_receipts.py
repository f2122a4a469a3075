# backend/routes/goods_receipts.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from database import get_db
from services import goods_receipts
from utils.audit import write_log
import schemas.goods_receipt as receipt_schemas

router = APIRouter(prefix="/goods-receipts", tags=["Goods Receipts"])


@router.post("/", response_model=receipt_schemas.GoodsReceiptOut, status_code=status.HTTP_201_CREATED)
def create_goods_receipt(payload: receipt_schemas.GoodsReceiptCreate, db: Session = Depends(get_db)):
    receipt = goods_receipts.create_draft_receipt(
        db,
        [item.model_dump() for item in payload.items],
        received_date=payload.received_date,
        received_by=payload.received_by,
        supplier_name=payload.supplier_name,
        notes=payload.notes,
    )
    write_log(
        db, user_id=payload.received_by, action="GOODS_RECEIPT_CREATE", resource="goods_receipts",
        meta={"id": receipt.id, "receipt_number": receipt.receipt_number},
    )
    return receipt


@router.get("/", response_model=receipt_schemas.GoodsReceiptPage)
def list_goods_receipts(
    status: Optional[str] = Query(None, pattern="^(DRAFT|COMPLETED|CANCELLED)$"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    items, total = goods_receipts.list_receipts(db, status=status, page=page, page_size=page_size)
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/{receipt_id}", response_model=receipt_schemas.GoodsReceiptOut)
def get_goods_receipt(receipt_id: int, db: Session = Depends(get_db)):
    return goods_receipts.get_receipt(db, receipt_id)


@router.post("/{receipt_id}/finalize", response_model=receipt_schemas.FinalizeResponse)
def finalize_goods_receipt(
    receipt_id: int,
    payload: Optional[receipt_schemas.FinalizeRequest] = None,
    db: Session = Depends(get_db),
):
    payload = payload or receipt_schemas.FinalizeRequest()
    result = goods_receipts.finalize_receipt(
        db, receipt_id, performed_by=payload.performed_by, block_on_high=payload.block_on_high
    )
    response = receipt_schemas.FinalizeResponse.model_validate(result)
    write_log(
        db, user_id=payload.performed_by, action="GOODS_RECEIPT_FINALIZE", resource="goods_receipts",
        meta={
            "id": receipt_id,
            "batch_ids": [b.id for b in response.batches],
            "alerts": [a.severity for a in response.alerts],
        },
    )
    return response


@router.post("/{receipt_id}/cancel", response_model=receipt_schemas.GoodsReceiptOut)
def cancel_goods_receipt(receipt_id: int, db: Session = Depends(get_db)):
    receipt = goods_receipts.cancel_receipt(db, receipt_id)
    write_log(db, user_id=None, action="GOODS_RECEIPT_CANCEL", resource="goods_receipts", meta={"id": receipt_id})
    return receipt

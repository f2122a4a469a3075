# backend/services/adjustments.py
"""Manual stock corrections (damage, theft, expiry write-off, count fixes).

Removals go through FEFO allocation like a sale; additions create a new
ADJUSTMENT batch.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from exceptions import InsufficientBatchQuantity, ConcurrencyConflict, InvalidInput
from models.batch import BatchSource
from models.stock import AdjustmentType, MovementType, StockMovement
from services import allocator, batch_store, ledger
from utils.concurrency import run_with_retry
from utils.numbering import next_document_number

logger = logging.getLogger(__name__)


@dataclass
class AdjustmentResult:
    adjustment_number: str
    product_id: int
    quantity: int
    adjustment_type: str
    movements: List[StockMovement] = field(default_factory=list)
    quantity_on_hand: int = 0


def validate_reason(reason: Optional[str]) -> str:
    reason = (reason or "").strip()
    if len(reason) < settings.ADJUSTMENT_REASON_MIN_LENGTH:
        raise InvalidInput(
            f"Reason must be at least {settings.ADJUSTMENT_REASON_MIN_LENGTH} characters",
            payload={"reason": reason},
        )
    return reason


def adjust(
    db: Session,
    product_id: int,
    quantity: int,
    reason: str,
    adjustment_type: str = AdjustmentType.COUNT_CORRECTION.value,
    performed_by: Optional[int] = None,
    unit_cost=None,
    expiry_date: Optional[date] = None,
    max_retries: Optional[int] = None,
) -> AdjustmentResult:
    """Apply a signed correction and commit it.

    Negative quantities debit batches FEFO, including batches already past
    their expiry date so expired stock can be written off. Positive
    quantities create a batch costed at ``unit_cost`` or the product's
    current cost.
    """
    if not quantity:
        raise InvalidInput("Adjustment quantity cannot be zero")
    reason = validate_reason(reason)
    try:
        adjustment_type = AdjustmentType(adjustment_type).value
    except ValueError as exc:
        raise InvalidInput(
            f"Unknown adjustment type {adjustment_type}",
            payload={"allowed": [t.value for t in AdjustmentType]},
        ) from exc
    if unit_cost is not None and Decimal(str(unit_cost)) < 0:
        raise InvalidInput("Unit cost cannot be negative", payload={"unit_cost": str(unit_cost)})

    def _op():
        product = batch_store.get_product(db, product_id, lock=True)
        number = next_document_number(db, StockMovement.reference_number, "ADJ")
        reference = ledger.MovementReference(MovementType.ADJUSTMENT.value, None, number)

        if quantity < 0:
            plan = allocator.allocate(db, product_id, -quantity, include_expired=True, lock=True)
            try:
                movements = ledger.commit_allocation(
                    db, plan, reference, performed_by,
                    movement_type=MovementType.ADJUSTMENT.value,
                    adjustment_type=adjustment_type,
                    notes=reason,
                )
            except InsufficientBatchQuantity as exc:
                raise ConcurrencyConflict(payload=exc.payload) from exc
        else:
            cost = Decimal(str(unit_cost)) if unit_cost is not None else Decimal(str(product.cost_price or 0))
            batch = batch_store.create_batch(
                db,
                product_id=product_id,
                batch_number=number,
                quantity=quantity,
                cost_price=cost,
                expiry_date=expiry_date,
                source_type=BatchSource.ADJUSTMENT.value,
                notes=reason,
            )
            movements = [ledger._record_movement(
                db,
                product_id=product_id,
                movement_type=MovementType.ADJUSTMENT.value,
                quantity=quantity,
                batch_id=batch.id,
                cost_price=batch.cost_price,
                reference=reference,
                adjustment_type=adjustment_type,
                notes=reason,
                performed_by=performed_by,
            )]

        db.refresh(product)
        return AdjustmentResult(
            adjustment_number=number,
            product_id=product_id,
            quantity=quantity,
            adjustment_type=adjustment_type,
            movements=movements,
            quantity_on_hand=product.quantity_on_hand,
        )

    result = run_with_retry(
        db, _op, max_retries=max_retries,
        context={"product_id": product_id, "quantity": quantity, "type": adjustment_type},
    )
    logger.info(
        "Stock adjustment %s on product %s: %+d (%s), on hand %s",
        result.adjustment_number, product_id, quantity, adjustment_type, result.quantity_on_hand,
    )
    return result


def list_adjustments(
    db: Session,
    product_id: Optional[int] = None,
    adjustment_type: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
):
    query = db.query(StockMovement).filter(StockMovement.movement_type == MovementType.ADJUSTMENT.value)
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    if adjustment_type:
        query = query.filter(StockMovement.adjustment_type == adjustment_type)
    total = query.count()
    items = (
        query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return items, total


def adjustment_summary(db: Session):
    """Movement count and net quantity per adjustment type."""
    rows = (
        db.query(
            StockMovement.adjustment_type,
            func.count(StockMovement.id),
            func.coalesce(func.sum(StockMovement.quantity), 0),
        )
        .filter(StockMovement.movement_type == MovementType.ADJUSTMENT.value)
        .group_by(StockMovement.adjustment_type)
        .order_by(StockMovement.adjustment_type)
        .all()
    )
    return [
        {"adjustment_type": adj_type, "count": count, "net_quantity": int(net)}
        for adj_type, count, net in rows
    ]

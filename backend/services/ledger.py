# backend/services/ledger.py
"""Append-only movement ledger.

Each batch quantity change is paired with exactly one movement row in the
same transaction. Movements are never updated or deleted.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from exceptions import InvalidInput, NotFound
from models.stock import MovementType, StockMovement
from services import batch_store

logger = logging.getLogger(__name__)

# Sign groups usable as a movement filter
DIRECTIONS = {"IN", "OUT"}


@dataclass
class MovementReference:
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    reference_number: Optional[str] = None


def _record_movement(
    db: Session,
    *,
    product_id: int,
    movement_type: str,
    quantity: int,
    batch_id: Optional[int] = None,
    cost_price=None,
    reference: Optional[MovementReference] = None,
    adjustment_type: Optional[str] = None,
    notes: Optional[str] = None,
    performed_by: Optional[int] = None,
) -> StockMovement:
    if not quantity:
        raise InvalidInput("Movement quantity cannot be zero")
    reference = reference or MovementReference()
    movement = StockMovement(
        product_id=product_id,
        batch_id=batch_id,
        movement_type=MovementType(movement_type).value,
        adjustment_type=adjustment_type,
        quantity=quantity,
        cost_price=cost_price,
        reference_type=reference.reference_type,
        reference_id=reference.reference_id,
        reference_number=reference.reference_number,
        notes=notes,
        created_by=performed_by,
    )
    db.add(movement)
    db.flush()
    return movement


def commit_allocation(
    db: Session,
    plan,
    reference: Optional[MovementReference] = None,
    performed_by: Optional[int] = None,
    movement_type: str = MovementType.SALE.value,
    adjustment_type: Optional[str] = None,
    notes: Optional[str] = None,
):
    """Debit every batch of ``plan`` and record one negative movement per line.

    Raises InsufficientBatchQuantity when a batch no longer holds what the
    plan expects. Flushes only; the caller commits or rolls back.
    """
    if not plan.lines:
        raise InvalidInput("Allocation plan has no lines")
    # every line is a debit; a non-positive line would restock the batch
    for line in plan.lines:
        if line.quantity is None or line.quantity <= 0:
            raise InvalidInput(
                "Allocation plan lines must take a positive quantity",
                payload={"batch_id": line.batch_id, "quantity": line.quantity},
            )
    allocated = sum(line.quantity for line in plan.lines)
    if allocated != plan.requested_quantity:
        raise InvalidInput(
            f"Allocation plan covers {allocated} units, {plan.requested_quantity} requested",
            payload={"requested": plan.requested_quantity, "allocated": allocated},
        )

    movements = []
    for line in plan.lines:
        batch = batch_store.get_batch(db, line.batch_id)
        if batch.product_id != plan.product_id:
            raise InvalidInput(
                f"Batch {batch.batch_number} does not belong to product {plan.product_id}",
                payload={"batch_id": batch.id},
            )
        batch = batch_store._apply_quantity_delta(db, line.batch_id, -line.quantity)
        movements.append(_record_movement(
            db,
            product_id=plan.product_id,
            movement_type=movement_type,
            quantity=-line.quantity,
            batch_id=line.batch_id,
            cost_price=batch.cost_price,
            reference=reference,
            adjustment_type=adjustment_type,
            notes=notes,
            performed_by=performed_by,
        ))

    batch_store.sync_quantity_on_hand(db, plan.product_id)
    return movements


def reverse_reference(
    db: Session,
    reference_type: str,
    reference_id: int,
    reason: str,
    performed_by: Optional[int] = None,
):
    """Offset every SALE movement of a business document (e.g. a voided sale).

    Stock goes back to the batch it came from; a DEPLETED batch becomes
    ACTIVE again. Flushes only.
    """
    if not reason or not reason.strip():
        raise InvalidInput("A reason is required to reverse movements")

    originals = (
        db.query(StockMovement)
        .filter(
            StockMovement.reference_type == reference_type,
            StockMovement.reference_id == reference_id,
            StockMovement.movement_type == MovementType.SALE.value,
        )
        .order_by(StockMovement.id.asc())
        .all()
    )
    if not originals:
        raise NotFound(
            f"No sale movements found for {reference_type} {reference_id}",
            payload={"reference_type": reference_type, "reference_id": reference_id},
        )
    already = (
        db.query(StockMovement.id)
        .filter(
            StockMovement.reference_type == reference_type,
            StockMovement.reference_id == reference_id,
            StockMovement.movement_type == MovementType.VOID_REVERSAL.value,
        )
        .first()
    )
    if already:
        raise InvalidInput(
            f"{reference_type} {reference_id} has already been reversed",
            payload={"reference_type": reference_type, "reference_id": reference_id},
        )

    reversals = []
    product_ids = set()
    for original in originals:
        restored = -original.quantity
        if original.batch_id is not None:
            batch_store._apply_quantity_delta(db, original.batch_id, restored, reactivate=True)
        reversals.append(_record_movement(
            db,
            product_id=original.product_id,
            movement_type=MovementType.VOID_REVERSAL.value,
            quantity=restored,
            batch_id=original.batch_id,
            cost_price=original.cost_price,
            reference=MovementReference(reference_type, reference_id, original.reference_number),
            notes=reason.strip(),
            performed_by=performed_by,
        ))
        product_ids.add(original.product_id)

    for product_id in product_ids:
        batch_store.sync_quantity_on_hand(db, product_id)
    logger.info("Reversed %s movements of %s %s", len(reversals), reference_type, reference_id)
    return reversals


def _movement_query(
    db: Session,
    product_id: Optional[int] = None,
    batch_id: Optional[int] = None,
    movement_type: Optional[str] = None,
    direction: Optional[str] = None,
    reference_type: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
):
    query = db.query(StockMovement)
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    if batch_id is not None:
        query = query.filter(StockMovement.batch_id == batch_id)
    if movement_type:
        query = query.filter(StockMovement.movement_type == movement_type)
    if direction:
        direction = direction.upper()
        if direction not in DIRECTIONS:
            raise InvalidInput(f"Unknown direction {direction}", payload={"allowed": sorted(DIRECTIONS)})
        query = query.filter(StockMovement.quantity > 0 if direction == "IN" else StockMovement.quantity < 0)
    if reference_type:
        query = query.filter(StockMovement.reference_type == reference_type)
    if date_from:
        query = query.filter(StockMovement.created_at >= date_from)
    if date_to:
        query = query.filter(StockMovement.created_at <= date_to)
    return query


def list_movements(db: Session, page: int = 1, page_size: int = 20, **filters):
    """Movements matching ``filters``, newest first, with the total count."""
    query = _movement_query(db, **filters)
    total = query.count()
    items = (
        query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return items, total


def get_movement(db: Session, movement_id: int) -> StockMovement:
    movement = db.get(StockMovement, movement_id)
    if not movement:
        raise NotFound(f"Movement {movement_id} not found", payload={"movement_id": movement_id})
    return movement

# backend/services/batch_store.py
"""Inventory batches: creation, FEFO reads and guarded quantity changes.

Every function here flushes but never commits; the calling operation owns
the transaction.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from exceptions import DuplicateBatchNumber, InsufficientBatchQuantity, InvalidInput, NotFound, ConcurrencyConflict
from models.batch import BatchStatus, InventoryBatch
from models.product import Product
from utils.concurrency import lock_for_update

logger = logging.getLogger(__name__)


def derive_status(remaining: int, current: str, reactivate: bool = False) -> str:
    if remaining <= 0:
        return BatchStatus.DEPLETED.value
    if current == BatchStatus.DEPLETED.value:
        return BatchStatus.ACTIVE.value if reactivate else current
    return current


def fefo_order(query):
    # expiry ascending with never-expiring batches last, then oldest receipt first
    return query.order_by(
        InventoryBatch.expiry_date.is_(None),
        InventoryBatch.expiry_date.asc(),
        InventoryBatch.received_date.asc(),
        InventoryBatch.id.asc(),
    )


def get_product(db: Session, product_id: int, lock: bool = False) -> Product:
    query = db.query(Product).filter(Product.id == product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if not product:
        raise NotFound(f"Product {product_id} not found", payload={"product_id": product_id})
    return product


def get_batch(db: Session, batch_id: int) -> InventoryBatch:
    batch = db.get(InventoryBatch, batch_id)
    if not batch:
        raise NotFound(f"Batch {batch_id} not found", payload={"batch_id": batch_id})
    return batch


def create_batch(
    db: Session,
    *,
    product_id: int,
    batch_number: str,
    quantity: int,
    cost_price,
    received_date: Optional[datetime] = None,
    expiry_date: Optional[date] = None,
    source_type: Optional[str] = None,
    source_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> InventoryBatch:
    batch_number = (batch_number or "").strip()
    if not batch_number:
        raise InvalidInput("Batch number is required")
    if quantity is None or quantity <= 0:
        raise InvalidInput("Batch quantity must be greater than zero", payload={"quantity": quantity})
    if cost_price is None or Decimal(str(cost_price)) < 0:
        raise InvalidInput("Cost price cannot be negative", payload={"cost_price": str(cost_price)})

    get_product(db, product_id)
    if batch_number_exists(db, batch_number):
        raise DuplicateBatchNumber(batch_number)

    batch = InventoryBatch(
        product_id=product_id,
        batch_number=batch_number,
        source_type=source_type,
        source_id=source_id,
        quantity=quantity,
        remaining_quantity=quantity,
        cost_price=Decimal(str(cost_price)),
        expiry_date=expiry_date,
        received_date=received_date or datetime.now(),
        status=BatchStatus.ACTIVE.value,
        notes=notes,
    )
    db.add(batch)
    db.flush()
    sync_quantity_on_hand(db, product_id)
    logger.info("Created batch %s for product %s (qty=%s, cost=%s)", batch_number, product_id, quantity, cost_price)
    return batch


def batch_number_exists(db: Session, batch_number: str) -> bool:
    return db.query(InventoryBatch.id).filter(InventoryBatch.batch_number == batch_number).first() is not None


def get_active_batches_for_product(
    db: Session,
    product_id: int,
    expired_before: Optional[date] = None,
    lock: bool = False,
) -> List[InventoryBatch]:
    """ACTIVE batches with stock left, in FEFO order.

    ``expired_before`` drops batches whose expiry date is earlier than the
    given day. ``lock`` takes row locks for a read-then-write sequence.
    """
    query = db.query(InventoryBatch).filter(
        InventoryBatch.product_id == product_id,
        InventoryBatch.status == BatchStatus.ACTIVE.value,
        InventoryBatch.remaining_quantity > 0,
    )
    if expired_before is not None:
        query = query.filter(
            (InventoryBatch.expiry_date.is_(None)) | (InventoryBatch.expiry_date >= expired_before)
        )
    query = fefo_order(query)
    if lock:
        query = lock_for_update(query).populate_existing()
    return query.all()


def list_batches(
    db: Session,
    product_id: Optional[int] = None,
    status: Optional[str] = None,
    q: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
):
    query = db.query(InventoryBatch)
    if product_id is not None:
        query = query.filter(InventoryBatch.product_id == product_id)
    if status:
        query = query.filter(InventoryBatch.status == status)
    if q:
        query = query.filter(InventoryBatch.batch_number.ilike(f"%{q}%"))

    total = query.count()
    items = fefo_order(query).offset((page - 1) * page_size).limit(page_size).all()
    return items, total


def sync_quantity_on_hand(db: Session, product_id: int) -> None:
    on_hand = (
        db.query(func.coalesce(func.sum(InventoryBatch.remaining_quantity), 0))
        .filter(
            InventoryBatch.product_id == product_id,
            InventoryBatch.status == BatchStatus.ACTIVE.value,
        )
        .scalar_subquery()
    )
    db.query(Product).filter(Product.id == product_id).update(
        {Product.quantity_on_hand: on_hand}, synchronize_session=False
    )
    # Identity map copy is stale after the bulk UPDATE
    product = db.get(Product, product_id)
    if product is not None:
        db.refresh(product, attribute_names=["quantity_on_hand"])


def _apply_quantity_delta(db: Session, batch_id: int, delta: int, reactivate: bool = False) -> InventoryBatch:
    """Add ``delta`` to a batch's remaining quantity.

    Compare-and-set on the remaining quantity read here: if another
    transaction changed the row in between, ConcurrencyConflict is raised.
    Does not re-sync the product's on-hand quantity.
    """
    batch = db.get(InventoryBatch, batch_id, populate_existing=True)
    if batch is None:
        raise NotFound(f"Batch {batch_id} not found", payload={"batch_id": batch_id})
    if delta == 0:
        raise InvalidInput("Quantity change cannot be zero")

    previous = batch.remaining_quantity
    new_remaining = previous + delta
    if new_remaining < 0:
        raise InsufficientBatchQuantity(batch_id, -delta, previous)
    if new_remaining > batch.quantity:
        raise InvalidInput(
            f"Batch {batch.batch_number} cannot hold more than its received quantity",
            payload={"batch_id": batch_id, "quantity": batch.quantity, "remaining_quantity": new_remaining},
        )
    if delta > 0 and batch.status == BatchStatus.DEPLETED.value and not reactivate:
        raise InvalidInput(
            f"Batch {batch.batch_number} is depleted",
            payload={"batch_id": batch_id},
        )
    if batch.status == BatchStatus.EXPIRED.value and delta > 0:
        raise InvalidInput(f"Batch {batch.batch_number} is expired", payload={"batch_id": batch_id})

    new_status = derive_status(new_remaining, batch.status, reactivate)
    updated = (
        db.query(InventoryBatch)
        .filter(InventoryBatch.id == batch_id, InventoryBatch.remaining_quantity == previous)
        .update(
            {
                InventoryBatch.remaining_quantity: new_remaining,
                InventoryBatch.status: new_status,
                InventoryBatch.updated_at: func.now(),
            },
            synchronize_session=False,
        )
    )
    if updated != 1:
        raise ConcurrencyConflict(
            f"Batch {batch.batch_number} was modified by another transaction",
            payload={"batch_id": batch_id},
        )

    db.refresh(batch)
    if new_status == BatchStatus.DEPLETED.value:
        logger.info("Batch %s depleted", batch.batch_number)
    elif previous <= 0:
        logger.info("Batch %s reactivated with %s units", batch.batch_number, new_remaining)
    return batch

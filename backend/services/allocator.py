# backend/services/allocator.py
"""First-Expired-First-Out allocation of stock to outgoing transactions."""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from exceptions import ConcurrencyConflict, InsufficientBatchQuantity, InsufficientStock, InvalidInput
from services import batch_store, ledger
from utils.concurrency import run_with_retry

logger = logging.getLogger(__name__)


@dataclass
class AllocationLine:
    batch_id: int
    batch_number: str
    quantity: int
    cost_price: Decimal
    expiry_date: Optional[date] = None


@dataclass
class AllocationPlan:
    product_id: int
    requested_quantity: int
    lines: List[AllocationLine] = field(default_factory=list)

    @property
    def allocated_quantity(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def total_cost(self) -> Decimal:
        return sum((line.cost_price * line.quantity for line in self.lines), Decimal("0"))


def plan_allocation(product_id: int, batches, requested: int) -> AllocationPlan:
    """Walk ``batches`` in the given order until ``requested`` is covered.

    Pure: batches are only read. Raises InsufficientStock with the shortfall
    when the batches cannot cover the request.
    """
    if requested is None or requested <= 0:
        raise InvalidInput("Requested quantity must be greater than zero", payload={"quantity": requested})

    plan = AllocationPlan(product_id=product_id, requested_quantity=requested)
    remaining = requested
    for batch in batches:
        if remaining <= 0:
            break
        if batch.remaining_quantity <= 0:
            continue
        take = min(remaining, batch.remaining_quantity)
        plan.lines.append(AllocationLine(
            batch_id=batch.id,
            batch_number=batch.batch_number,
            quantity=take,
            cost_price=Decimal(str(batch.cost_price)),
            expiry_date=batch.expiry_date,
        ))
        remaining -= take

    if remaining > 0:
        raise InsufficientStock(product_id, requested, requested - remaining)
    return plan


def allocate(
    db: Session,
    product_id: int,
    quantity: int,
    as_of: Optional[date] = None,
    include_expired: bool = False,
    lock: bool = False,
) -> AllocationPlan:
    """Compute an allocation plan without changing anything.

    Batches past their expiry date (relative to ``as_of``, today by default)
    are skipped unless ``include_expired`` is set.
    """
    if quantity is None or quantity <= 0:
        raise InvalidInput("Requested quantity must be greater than zero", payload={"quantity": quantity})
    batch_store.get_product(db, product_id)

    expired_before = None if include_expired else (as_of or date.today())
    batches = batch_store.get_active_batches_for_product(
        db, product_id, expired_before=expired_before, lock=lock
    )
    return plan_allocation(product_id, batches, quantity)


def allocate_and_commit(
    db: Session,
    product_id: int,
    quantity: int,
    reference,
    performed_by: Optional[int] = None,
    as_of: Optional[date] = None,
    include_expired: bool = False,
    max_retries: Optional[int] = None,
):
    """Allocate FEFO and record SALE movements in one committed transaction.

    Retried from the read step when a batch row changed underneath us.
    InsufficientStock is final and leaves no trace.
    """
    def _op():
        plan = allocate(db, product_id, quantity, as_of=as_of, include_expired=include_expired, lock=True)
        try:
            return ledger.commit_allocation(db, plan, reference, performed_by)
        except InsufficientBatchQuantity as exc:
            # The plan was read in this transaction, so a short batch means a concurrent writer
            raise ConcurrencyConflict(payload=exc.payload) from exc

    movements = run_with_retry(
        db, _op, max_retries=max_retries,
        context={"product_id": product_id, "quantity": quantity},
    )
    logger.info(
        "Allocated %s units of product %s across batches %s",
        quantity, product_id, [m.batch_id for m in movements],
    )
    return movements

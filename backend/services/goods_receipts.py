# backend/services/goods_receipts.py
"""Goods receipt finalization: every line becomes a batch plus a receipt movement.

A receipt is finalized all-or-nothing. Cost changes against the product's
baseline cost are reported as CostVarianceAlert values; they are logged,
returned to the caller and not stored.
"""
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy.orm import Session

from config import settings
from exceptions import CostVarianceRejected, InvalidInput, NotFound
from models.batch import BatchSource, BatchStatus, InventoryBatch
from models.goods_receipt import GoodsReceipt, GoodsReceiptItem, GoodsReceiptStatus
from models.stock import MovementType
from services import batch_store, ledger
from utils.concurrency import lock_for_update, run_with_retry
from utils.numbering import next_document_number

logger = logging.getLogger(__name__)

SEVERITY_LOW = "LOW"
SEVERITY_MEDIUM = "MEDIUM"
SEVERITY_HIGH = "HIGH"

BASELINE_PREVIOUS_BATCH = "previous_batch"
BASELINE_PRODUCT_COST = "product_cost"

DIRECTION_INCREASE = "increase"
DIRECTION_DECREASE = "decrease"
DIRECTION_BOTH = "both"


@dataclass
class VariancePolicy:
    high_percent: Decimal = Decimal("50")
    medium_percent: Decimal = Decimal("20")
    min_alert_percent: Decimal = Decimal("1")
    baseline: str = BASELINE_PREVIOUS_BATCH
    suppress_unit_multiples: bool = True
    multiple_min: int = 2
    multiple_max: int = 200
    multiple_tolerance: Decimal = Decimal("0.01")
    multiple_direction: str = DIRECTION_INCREASE

    @classmethod
    def from_settings(cls, cfg=None):
        cfg = cfg or settings
        return cls(
            high_percent=Decimal(str(cfg.COST_VARIANCE_HIGH_PERCENT)),
            medium_percent=Decimal(str(cfg.COST_VARIANCE_MEDIUM_PERCENT)),
            min_alert_percent=Decimal(str(cfg.COST_VARIANCE_MIN_ALERT_PERCENT)),
            baseline=cfg.COST_VARIANCE_BASELINE,
            suppress_unit_multiples=cfg.COST_VARIANCE_UNIT_MULTIPLE_SUPPRESSION,
            multiple_min=cfg.COST_VARIANCE_UNIT_MULTIPLE_MIN,
            multiple_max=cfg.COST_VARIANCE_UNIT_MULTIPLE_MAX,
            multiple_tolerance=Decimal(str(cfg.COST_VARIANCE_UNIT_MULTIPLE_TOLERANCE)),
            multiple_direction=cfg.COST_VARIANCE_UNIT_MULTIPLE_DIRECTION,
        )


@dataclass
class CostVarianceAlert:
    product_id: int
    batch_number: str
    previous_cost: Decimal
    new_cost: Decimal
    change_percentage: Decimal
    severity: str

    def to_dict(self):
        data = asdict(self)
        for key in ("previous_cost", "new_cost", "change_percentage"):
            data[key] = str(data[key])
        return data


@dataclass
class FinalizeResult:
    receipt: GoodsReceipt
    batches: List[InventoryBatch] = field(default_factory=list)
    alerts: List[CostVarianceAlert] = field(default_factory=list)


def is_unit_multiple(baseline: Decimal, new_cost: Decimal, policy: VariancePolicy) -> bool:
    """True when one cost is a clean integer multiple of the other (e.g. box vs piece price).

    Only moves in ``policy.multiple_direction`` qualify, so by default a
    halved cost is still reported.
    """
    baseline, new_cost = Decimal(baseline), Decimal(new_cost)
    if new_cost > baseline and policy.multiple_direction == DIRECTION_DECREASE:
        return False
    if new_cost < baseline and policy.multiple_direction == DIRECTION_INCREASE:
        return False
    low, high = sorted((baseline, new_cost))
    if low <= 0:
        return False
    ratio = high / low
    nearest = ratio.to_integral_value(rounding=ROUND_HALF_UP)
    return policy.multiple_min <= nearest <= policy.multiple_max and abs(ratio - nearest) <= policy.multiple_tolerance


def classify_change(change_percentage: Decimal, policy: VariancePolicy) -> str:
    magnitude = abs(change_percentage)
    if magnitude >= policy.high_percent:
        return SEVERITY_HIGH
    if magnitude >= policy.medium_percent:
        return SEVERITY_MEDIUM
    return SEVERITY_LOW


def evaluate_cost_variance(
    product_id: int,
    batch_number: str,
    baseline,
    new_cost,
    policy: Optional[VariancePolicy] = None,
) -> Optional[CostVarianceAlert]:
    policy = policy or VariancePolicy.from_settings()
    baseline = Decimal(str(baseline or 0))
    new_cost = Decimal(str(new_cost))
    if baseline <= 0 or new_cost == baseline:
        return None

    change = ((new_cost - baseline) / baseline * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if abs(change) < policy.min_alert_percent:
        return None
    if policy.suppress_unit_multiples and is_unit_multiple(baseline, new_cost, policy):
        logger.info(
            "Cost change on product %s (%s -> %s) looks like a unit-of-measure multiple, no alert",
            product_id, baseline, new_cost,
        )
        return None

    return CostVarianceAlert(
        product_id=product_id,
        batch_number=batch_number,
        previous_cost=baseline,
        new_cost=new_cost,
        change_percentage=change,
        severity=classify_change(change, policy),
    )


def resolve_baseline(db: Session, product, policy: VariancePolicy) -> Decimal:
    """Cost the new receipt is compared against."""
    if policy.baseline == BASELINE_PREVIOUS_BATCH:
        previous = (
            db.query(InventoryBatch.cost_price)
            .filter(
                InventoryBatch.product_id == product.id,
                InventoryBatch.status == BatchStatus.ACTIVE.value,
            )
            .order_by(InventoryBatch.received_date.desc(), InventoryBatch.id.desc())
            .first()
        )
        if previous is not None:
            return Decimal(str(previous[0]))
    return Decimal(str(product.cost_price or 0))


def generate_batch_number(db: Session, receipt: GoodsReceipt, line_no: int) -> str:
    candidate = f"{receipt.receipt_number}-{line_no:03d}"
    suffix = 1
    while batch_store.batch_number_exists(db, candidate):
        suffix += 1
        candidate = f"{receipt.receipt_number}-{line_no:03d}-{suffix}"
    return candidate


def get_receipt(db: Session, receipt_id: int, lock: bool = False) -> GoodsReceipt:
    query = db.query(GoodsReceipt).filter(GoodsReceipt.id == receipt_id)
    if lock:
        query = lock_for_update(query)
    receipt = query.first()
    if not receipt:
        raise NotFound(f"Goods receipt {receipt_id} not found", payload={"receipt_id": receipt_id})
    return receipt


def list_receipts(db: Session, status: Optional[str] = None, page: int = 1, page_size: int = 20):
    query = db.query(GoodsReceipt)
    if status:
        query = query.filter(GoodsReceipt.status == GoodsReceiptStatus(status))
    total = query.count()
    items = (
        query.order_by(GoodsReceipt.created_at.desc(), GoodsReceipt.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return items, total


def create_draft_receipt(
    db: Session,
    items,
    received_date: Optional[datetime] = None,
    received_by: Optional[int] = None,
    supplier_name: Optional[str] = None,
    notes: Optional[str] = None,
) -> GoodsReceipt:
    """Store a DRAFT receipt. ``items`` are dicts with product_id,
    received_quantity, cost_price and optional batch_number / expiry_date."""
    def _op():
        receipt = GoodsReceipt(
            receipt_number=next_document_number(db, GoodsReceipt.receipt_number, "GR"),
            status=GoodsReceiptStatus.DRAFT,
            supplier_name=supplier_name,
            received_date=received_date or datetime.now(),
            received_by=received_by,
            notes=notes,
        )
        for item in items:
            batch_store.get_product(db, item["product_id"])
            receipt.items.append(GoodsReceiptItem(
                product_id=item["product_id"],
                received_quantity=item["received_quantity"],
                cost_price=Decimal(str(item["cost_price"])),
                batch_number=(item.get("batch_number") or None),
                expiry_date=item.get("expiry_date"),
            ))
        db.add(receipt)
        db.flush()
        return receipt

    receipt = run_with_retry(db, _op, context={"action": "create_goods_receipt"})
    db.refresh(receipt)
    logger.info("Created draft goods receipt %s with %s lines", receipt.receipt_number, len(receipt.items))
    return receipt


def cancel_receipt(db: Session, receipt_id: int) -> GoodsReceipt:
    def _op():
        receipt = get_receipt(db, receipt_id, lock=True)
        if receipt.status == GoodsReceiptStatus.COMPLETED:
            raise InvalidInput("Completed goods receipts cannot be cancelled", payload={"receipt_id": receipt_id})
        if receipt.status == GoodsReceiptStatus.CANCELLED:
            raise InvalidInput("Goods receipt is already cancelled", payload={"receipt_id": receipt_id})
        receipt.status = GoodsReceiptStatus.CANCELLED
        return receipt

    receipt = run_with_retry(db, _op, max_retries=0, context={"receipt_id": receipt_id})
    logger.info("Cancelled goods receipt %s", receipt.receipt_number)
    return receipt


def _validate_lines(receipt: GoodsReceipt) -> None:
    if not receipt.items:
        raise InvalidInput("Goods receipt has no items", payload={"receipt_id": receipt.id})
    for line_no, item in enumerate(receipt.items, start=1):
        if item.received_quantity is None or item.received_quantity <= 0:
            raise InvalidInput(
                f"Line {line_no}: received quantity must be greater than zero",
                payload={"line": line_no, "product_id": item.product_id},
            )
        if item.cost_price is None or Decimal(str(item.cost_price)) < 0:
            raise InvalidInput(
                f"Line {line_no}: cost price cannot be negative",
                payload={"line": line_no, "product_id": item.product_id},
            )


def finalize_receipt(
    db: Session,
    receipt_id: int,
    performed_by: Optional[int] = None,
    policy: Optional[VariancePolicy] = None,
    block_on_high: Optional[bool] = None,
) -> FinalizeResult:
    """Turn a DRAFT receipt into batches and GOODS_RECEIPT movements.

    All lines succeed or nothing is written; the receipt stays DRAFT on any
    failure. With ``block_on_high`` a HIGH variance alert aborts the whole
    finalization with CostVarianceRejected.
    """
    policy = policy or VariancePolicy.from_settings()
    block_on_high = settings.BLOCK_ON_HIGH_VARIANCE if block_on_high is None else block_on_high

    def _op():
        receipt = get_receipt(db, receipt_id, lock=True)
        if receipt.status != GoodsReceiptStatus.DRAFT:
            raise InvalidInput(
                f"Goods receipt {receipt.receipt_number} is {receipt.status.value}, only drafts can be finalized",
                payload={"receipt_id": receipt_id, "status": receipt.status.value},
            )
        _validate_lines(receipt)

        result = FinalizeResult(receipt=receipt)
        reference = ledger.MovementReference(
            MovementType.GOODS_RECEIPT.value, receipt.id, receipt.receipt_number
        )
        for line_no, item in enumerate(receipt.items, start=1):
            product = batch_store.get_product(db, item.product_id, lock=True)
            baseline = resolve_baseline(db, product, policy)
            batch_number = (item.batch_number or "").strip() or generate_batch_number(db, receipt, line_no)

            batch = batch_store.create_batch(
                db,
                product_id=product.id,
                batch_number=batch_number,
                quantity=item.received_quantity,
                cost_price=item.cost_price,
                received_date=receipt.received_date,
                expiry_date=item.expiry_date,
                source_type=BatchSource.GOODS_RECEIPT.value,
                source_id=receipt.id,
            )
            ledger._record_movement(
                db,
                product_id=product.id,
                movement_type=MovementType.GOODS_RECEIPT.value,
                quantity=item.received_quantity,
                batch_id=batch.id,
                cost_price=batch.cost_price,
                reference=reference,
                notes=f"Goods receipt {receipt.receipt_number}",
                performed_by=performed_by,
            )
            item.batch_number = batch_number
            result.batches.append(batch)

            alert = evaluate_cost_variance(product.id, batch_number, baseline, item.cost_price, policy)
            if alert:
                result.alerts.append(alert)
            if settings.UPDATE_PRODUCT_COST_ON_RECEIPT:
                product.cost_price = Decimal(str(item.cost_price))

        high = [a for a in result.alerts if a.severity == SEVERITY_HIGH]
        if block_on_high and high:
            raise CostVarianceRejected([a.to_dict() for a in high])

        receipt.status = GoodsReceiptStatus.COMPLETED
        receipt.finalized_at = datetime.now()
        db.flush()
        return result

    result = run_with_retry(db, _op, context={"receipt_id": receipt_id})
    for alert in result.alerts:
        log = logger.warning if alert.severity != SEVERITY_LOW else logger.info
        log(
            "Cost variance %s on product %s batch %s: %s -> %s (%s%%)",
            alert.severity, alert.product_id, alert.batch_number,
            alert.previous_cost, alert.new_cost, alert.change_percentage,
        )
    logger.info(
        "Finalized goods receipt %s: %s batches, %s cost alerts",
        result.receipt.receipt_number, len(result.batches), len(result.alerts),
    )
    return result

# backend/services/valuation.py
"""Read-only stock reports computed from batches."""
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from exceptions import InvalidInput
from models.batch import BatchStatus, InventoryBatch
from models.product import Product


def expiry_urgency(days_until_expiry: int) -> str:
    if days_until_expiry <= settings.EXPIRY_CRITICAL_DAYS:
        return "CRITICAL"
    if days_until_expiry <= settings.EXPIRY_WARNING_DAYS:
        return "WARNING"
    return "NORMAL"


def _active_stock_subquery(db: Session):
    return (
        db.query(
            InventoryBatch.product_id.label("product_id"),
            func.coalesce(func.sum(InventoryBatch.remaining_quantity), 0).label("quantity"),
        )
        .filter(InventoryBatch.status == BatchStatus.ACTIVE.value)
        .group_by(InventoryBatch.product_id)
        .subquery()
    )


def low_stock(db: Session, threshold: Optional[int] = None, q: Optional[str] = None):
    """Active products at or below ``threshold`` (or their own reorder level)."""
    if threshold is None:
        threshold = settings.LOW_STOCK_DEFAULT_THRESHOLD
    if threshold is not None and threshold < 0:
        raise InvalidInput("Threshold cannot be negative", payload={"threshold": threshold})

    stock = _active_stock_subquery(db)
    quantity = func.coalesce(stock.c.quantity, 0)
    limit = threshold if threshold is not None else Product.reorder_level

    query = (
        db.query(Product, quantity.label("quantity"))
        .outerjoin(stock, stock.c.product_id == Product.id)
        .filter(Product.is_active.is_(True), quantity <= limit)
    )
    if q:
        like = f"%{q}%"
        query = query.filter((Product.name.ilike(like)) | (Product.code.ilike(like)))

    rows = query.order_by(quantity.asc(), Product.name.asc()).all()
    results = []
    for product, qty in rows:
        level = threshold if threshold is not None else product.reorder_level
        results.append({
            "product_id": product.id,
            "name": product.name,
            "code": product.code,
            "quantity": int(qty or 0),
            "reorder_level": product.reorder_level,
            "shortage": max(int(level) - int(qty or 0), 0),
        })
    return results


def expiring_within(db: Session, days: int, as_of: Optional[date] = None):
    """ACTIVE batches with stock whose expiry falls within ``days``, soonest first.

    Batches already past expiry are included with a negative day count.
    """
    if days is None or days < 0:
        raise InvalidInput("Days must be zero or more", payload={"days": days})
    today = as_of or date.today()
    horizon = today + timedelta(days=days)

    batches = (
        db.query(InventoryBatch)
        .filter(
            InventoryBatch.status == BatchStatus.ACTIVE.value,
            InventoryBatch.remaining_quantity > 0,
            InventoryBatch.expiry_date.isnot(None),
            InventoryBatch.expiry_date <= horizon,
        )
        .order_by(InventoryBatch.expiry_date.asc(), InventoryBatch.id.asc())
        .all()
    )
    results = []
    for batch in batches:
        days_left = (batch.expiry_date - today).days
        results.append({
            "batch_id": batch.id,
            "batch_number": batch.batch_number,
            "product_id": batch.product_id,
            "product_name": batch.product.name if batch.product else None,
            "remaining_quantity": batch.remaining_quantity,
            "expiry_date": batch.expiry_date,
            "days_until_expiry": days_left,
            "urgency": expiry_urgency(days_left),
            "value_at_cost": Decimal(str(batch.cost_price)) * batch.remaining_quantity,
        })
    return results


def valuation(db: Session, product_id: Optional[int] = None):
    """Quantity and cost value of stock held in ACTIVE batches."""
    query = db.query(InventoryBatch).filter(
        InventoryBatch.status == BatchStatus.ACTIVE.value,
        InventoryBatch.remaining_quantity > 0,
    )
    if product_id is not None:
        query = query.filter(InventoryBatch.product_id == product_id)

    per_product = {}
    for batch in query.order_by(InventoryBatch.product_id, InventoryBatch.id).all():
        entry = per_product.setdefault(batch.product_id, {
            "product_id": batch.product_id,
            "name": batch.product.name if batch.product else None,
            "quantity": 0,
            "value_at_cost": Decimal("0"),
            "batch_count": 0,
        })
        entry["quantity"] += batch.remaining_quantity
        entry["value_at_cost"] += Decimal(str(batch.cost_price)) * batch.remaining_quantity
        entry["batch_count"] += 1

    products = list(per_product.values())
    return {
        "quantity": sum(p["quantity"] for p in products),
        "value_at_cost": sum((p["value_at_cost"] for p in products), Decimal("0")),
        "product_count": len(products),
        "products": products,
    }

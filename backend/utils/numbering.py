# backend/utils/numbering.py
import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from exceptions import ConcurrencyConflict
from models.counter import DocumentCounter

logger = logging.getLogger(__name__)


def _highest_issued(db: Session, column, stem: str) -> int:
    """Largest numeric suffix already stored under ``stem`` (compared as numbers, not strings)."""
    highest = 0
    for (value,) in db.query(column).filter(column.like(f"{stem}%")).distinct():
        tail = (value or "")[len(stem):].split("-")[0]
        if tail.isdigit():
            highest = max(highest, int(tail))
    return highest


def next_document_number(db: Session, column, prefix: str, width: int = 4, year=None) -> str:
    """Next ``PREFIX-YYYY-NNNN`` number for the year, e.g. GR-2026-0007.

    Numbers come from a per-series counter row bumped with
    ``UPDATE ... SET current_value = current_value + 1``; the row stays locked
    until the caller commits, so two transactions never get the same number.
    A series seen for the first time starts after the highest number already
    stored in ``column``. Runs inside the caller's transaction and only flushes.
    """
    year = year or datetime.now().year
    series = f"{prefix}-{year}"
    stem = f"{series}-"

    updated = (
        db.query(DocumentCounter)
        .filter(DocumentCounter.name == series)
        .update({DocumentCounter.current_value: DocumentCounter.current_value + 1}, synchronize_session=False)
    )
    if updated:
        value = (
            db.query(DocumentCounter.current_value)
            .filter(DocumentCounter.name == series)
            .scalar()
        )
    else:
        value = _highest_issued(db, column, stem) + 1
        db.add(DocumentCounter(name=series, current_value=value))
        try:
            db.flush()
        except IntegrityError as exc:
            # Another transaction created the series first; retry from the start
            raise ConcurrencyConflict(
                f"Number series {series} was created concurrently",
                payload={"series": series},
            ) from exc
        logger.info("Started number series %s at %s", series, value)

    return f"{stem}{value:0{width}d}"

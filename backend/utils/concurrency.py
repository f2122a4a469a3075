# backend/utils/concurrency.py
import logging
import time

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from config import settings
from exceptions import ConcurrencyConflict, LedgerError

logger = logging.getLogger(__name__)

# lock_not_available, serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = {"55P03", "40001", "40P01"}
RETRYABLE_MESSAGES = ("database is locked", "could not obtain lock", "could not serialize", "deadlock")


def is_retryable_db_error(exc: OperationalError) -> bool:
    code = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    if code in RETRYABLE_SQLSTATES:
        return True
    message = str(exc.orig).lower()
    return any(m in message for m in RETRYABLE_MESSAGES)


def lock_for_update(query: Query) -> Query:
    """Row lock for the read-then-write path (no-op on SQLite)."""
    return query.with_for_update()


def run_with_retry(db: Session, op, max_retries=None, context=None):
    """Run ``op()`` in a transaction and commit it.

    ConcurrencyConflict and lock timeouts / serialization failures
    (OperationalError) roll back and re-run ``op`` from the start, at most
    ``max_retries`` extra times. Any other error rolls back and propagates.
    """
    retries = settings.ALLOCATION_MAX_RETRIES if max_retries is None else max_retries
    context = context or {}
    attempt = 0
    while True:
        try:
            result = op()
            db.commit()
            return result
        except (ConcurrencyConflict, OperationalError) as exc:
            db.rollback()
            if isinstance(exc, OperationalError) and not is_retryable_db_error(exc):
                logger.exception("Ledger transaction failed: %s", context)
                raise
            attempt += 1
            if attempt > retries:
                logger.warning("Giving up after %s attempts: %s %s", attempt, exc, context)
                if isinstance(exc, ConcurrencyConflict):
                    raise
                raise ConcurrencyConflict(payload={"attempts": attempt}) from exc
            logger.info("Retrying after conflict (attempt %s/%s): %s", attempt, retries, context)
            time.sleep(settings.RETRY_BACKOFF_SECONDS * attempt)
        except LedgerError:
            db.rollback()
            raise
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Ledger transaction failed: %s", context)
            raise
        except Exception:
            db.rollback()
            raise

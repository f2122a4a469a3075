# backend/utils/audit.py
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session
from models.log import Log

logger = logging.getLogger(__name__)


def _jsonable(value):
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (Decimal, date)):
        return str(value)
    return value


def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", ip=None, meta=None):
    """Audit entry for a ledger write that has already been committed."""
    meta = _jsonable(meta or {})
    entry = Log(user_id=user_id, action=action, resource=resource, status=status, ip=ip, meta=meta)
    db.add(entry)
    db.commit()
    logger.debug("Audit %s %s by user %s: %s", action, resource, user_id, meta)
    return entry

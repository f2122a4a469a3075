# backend/exceptions.py


class LedgerError(Exception):
    """Base error for inventory ledger operations."""
    retryable = False

    def __init__(self, message, code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['error'] = type(self).__name__
        rv['message'] = self.message
        rv['code'] = self.code
        rv['success'] = False
        return rv


class InvalidInput(LedgerError):
    """Malformed request, e.g. zero quantity or negative cost."""
    def __init__(self, message="Invalid input", payload=None):
        super().__init__(message, code=400, payload=payload)


class NotFound(LedgerError):
    def __init__(self, message="Not found", payload=None):
        super().__init__(message, code=404, payload=payload)


class DuplicateBatchNumber(LedgerError):
    def __init__(self, batch_number):
        super().__init__(
            f"Batch number {batch_number} already exists",
            code=409,
            payload={"batch_number": batch_number},
        )
        self.batch_number = batch_number


class InsufficientStock(LedgerError):
    """Not enough allocatable stock; nothing was changed."""
    def __init__(self, product_id, requested, available):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.shortfall = requested - available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}",
            code=409,
            payload={
                "product_id": product_id,
                "requested": requested,
                "available": available,
                "shortfall": self.shortfall,
            },
        )


class InsufficientBatchQuantity(LedgerError):
    """A batch debit would drive remaining quantity below zero."""
    def __init__(self, batch_id, requested, available):
        self.batch_id = batch_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Batch {batch_id} has {available} remaining, cannot take {requested}",
            code=409,
            payload={"batch_id": batch_id, "requested": requested, "available": available},
        )


class CostVarianceRejected(LedgerError):
    """Finalization refused because of HIGH cost variance alerts."""
    def __init__(self, alerts):
        super().__init__(
            "Goods receipt has high cost variance, finalization blocked",
            code=409,
            payload={"alerts": alerts},
        )


class ConcurrencyConflict(LedgerError):
    """Lost a race for a batch row; safe to retry from the read step."""
    retryable = True

    def __init__(self, message="Concurrent update detected, please retry", payload=None):
        super().__init__(message, code=409, payload=payload)

# backend/config.py
from decimal import Decimal
from pydantic_settings import BaseSettings
from typing import ClassVar, Literal, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./inventory_ledger.db"
    FRONTEND_URL: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    # Row locks and bounded retry for allocate-and-commit
    DB_LOCK_TIMEOUT_MS: int = 5000
    ALLOCATION_MAX_RETRIES: int = 3
    RETRY_BACKOFF_SECONDS: float = 0.05

    # Cost variance classification (percent)
    COST_VARIANCE_HIGH_PERCENT: Decimal = Decimal("50")
    COST_VARIANCE_MEDIUM_PERCENT: Decimal = Decimal("20")
    COST_VARIANCE_MIN_ALERT_PERCENT: Decimal = Decimal("1")
    COST_VARIANCE_BASELINE: Literal["previous_batch", "product_cost"] = "previous_batch"

    # A new cost that is a clean multiple of the old one is usually a unit-of-measure change
    COST_VARIANCE_UNIT_MULTIPLE_SUPPRESSION: bool = True
    COST_VARIANCE_UNIT_MULTIPLE_MIN: int = 2
    COST_VARIANCE_UNIT_MULTIPLE_MAX: int = 200
    COST_VARIANCE_UNIT_MULTIPLE_TOLERANCE: Decimal = Decimal("0.01")
    # Which cost moves the heuristic may explain away: "increase", "decrease" or "both"
    COST_VARIANCE_UNIT_MULTIPLE_DIRECTION: Literal["increase", "decrease", "both"] = "increase"

    BLOCK_ON_HIGH_VARIANCE: bool = False
    UPDATE_PRODUCT_COST_ON_RECEIPT: bool = True

    ADJUSTMENT_REASON_MIN_LENGTH: int = 5

    # Low stock report threshold; empty means each product's reorder level
    LOW_STOCK_DEFAULT_THRESHOLD: Optional[int] = None

    # Expiry report urgency buckets (days)
    EXPIRY_CRITICAL_DAYS: int = 7
    EXPIRY_WARNING_DAYS: int = 30

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()

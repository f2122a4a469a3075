"""Pytest configuration and fixtures."""

import os

# Keep the app's import-time init_db away from the developer database
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import pytest
from datetime import date, datetime
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app
# Import all models to ensure they're registered with Base.metadata
import models.batch  # noqa: F401
import models.counter  # noqa: F401
import models.goods_receipt  # noqa: F401
import models.log  # noqa: F401
import models.stock  # noqa: F401
from models.product import Product
from models.users import User
from services import goods_receipts

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def test_user(db_session: Session) -> User:
    """Create a warehouse user."""
    user = User(email="stock@example.com", role="WAREHOUSE", first_name="Stock", last_name="Keeper")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def make_product(db_session: Session):
    """Factory for products with no stock."""
    counter = {"n": 0}

    def _make(name="Test Product", code=None, cost_price="10.00", reorder_level=0):
        counter["n"] += 1
        product = Product(
            name=name,
            code=code or f"SKU-{counter['n']:03d}",
            cost_price=Decimal(cost_price),
            reorder_level=reorder_level,
            quantity_on_hand=0,
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _make


@pytest.fixture
def test_product(make_product) -> Product:
    return make_product(name="Paracetamol 500mg", code="PARA-500")


@pytest.fixture
def receive_stock(db_session: Session):
    """Receive one line through a finalized goods receipt; returns the batch."""
    def _receive(product, quantity, cost_price="10.00", expiry_date=None,
                 batch_number=None, received_date=None):
        receipt = goods_receipts.create_draft_receipt(
            db_session,
            [{
                "product_id": product.id,
                "received_quantity": quantity,
                "cost_price": cost_price,
                "batch_number": batch_number,
                "expiry_date": expiry_date,
            }],
            received_date=received_date or datetime(2024, 1, 1, 9, 0),
        )
        result = goods_receipts.finalize_receipt(db_session, receipt.id)
        return result.batches[0]

    return _receive


@pytest.fixture
def far_future() -> date:
    return date(2099, 12, 31)

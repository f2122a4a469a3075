"""Tests for batch creation, FEFO ordering and quantity changes."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from exceptions import DuplicateBatchNumber, InsufficientBatchQuantity, InvalidInput, NotFound
from models.batch import BatchStatus, InventoryBatch
from services import batch_store


def _batch(db, product, number, qty=10, expiry=None, received=None, cost="5.00"):
    batch = batch_store.create_batch(
        db,
        product_id=product.id,
        batch_number=number,
        quantity=qty,
        cost_price=Decimal(cost),
        expiry_date=expiry,
        received_date=received or datetime(2024, 1, 1),
    )
    db.commit()
    return batch


class TestCreateBatch:
    """Tests for create_batch."""

    def test_new_batch_is_full_and_active(self, db_session, test_product):
        batch = _batch(db_session, test_product, "B-001", qty=25)

        assert batch.remaining_quantity == 25
        assert batch.quantity == 25
        assert batch.status == BatchStatus.ACTIVE
        db_session.refresh(test_product)
        assert test_product.quantity_on_hand == 25

    def test_duplicate_batch_number(self, db_session, test_product, make_product):
        other = make_product(name="Other")
        _batch(db_session, test_product, "B-001")

        with pytest.raises(DuplicateBatchNumber) as exc:
            _batch(db_session, other, "B-001")
        assert exc.value.batch_number == "B-001"

    @pytest.mark.parametrize("qty,cost", [(0, "1.00"), (-3, "1.00"), (5, "-0.01")])
    def test_rejects_bad_quantity_or_cost(self, db_session, test_product, qty, cost):
        with pytest.raises(InvalidInput):
            _batch(db_session, test_product, "B-BAD", qty=qty, cost=cost)
        db_session.rollback()
        assert db_session.query(InventoryBatch).count() == 0

    def test_rejects_blank_number(self, db_session, test_product):
        with pytest.raises(InvalidInput):
            _batch(db_session, test_product, "   ")

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFound):
            batch_store.create_batch(
                db_session, product_id=999, batch_number="X", quantity=1, cost_price=1
            )


class TestFefoOrder:
    """Tests for get_active_batches_for_product ordering."""

    def test_expiry_ascending_with_no_expiry_last(self, db_session, test_product):
        _batch(db_session, test_product, "B-2025", expiry=date(2025, 1, 1))
        _batch(db_session, test_product, "B-NONE", expiry=None)
        _batch(db_session, test_product, "B-2024", expiry=date(2024, 6, 1))

        batches = batch_store.get_active_batches_for_product(db_session, test_product.id)

        assert [b.expiry_date for b in batches] == [date(2024, 6, 1), date(2025, 1, 1), None]

    def test_ties_broken_by_received_date_then_id(self, db_session, test_product):
        expiry = date(2030, 1, 1)
        late = _batch(db_session, test_product, "B-LATE", expiry=expiry, received=datetime(2024, 3, 1))
        first = _batch(db_session, test_product, "B-FIRST", expiry=expiry, received=datetime(2024, 1, 1))
        second = _batch(db_session, test_product, "B-SECOND", expiry=expiry, received=datetime(2024, 1, 1))

        batches = batch_store.get_active_batches_for_product(db_session, test_product.id)

        assert [b.id for b in batches] == [first.id, second.id, late.id]

    def test_only_active_batches_with_stock(self, db_session, test_product):
        empty = _batch(db_session, test_product, "B-EMPTY", qty=4)
        batch_store._apply_quantity_delta(db_session, empty.id, -4)
        expired = _batch(db_session, test_product, "B-EXP")
        expired.status = BatchStatus.EXPIRED.value
        keep = _batch(db_session, test_product, "B-KEEP")
        db_session.commit()

        batches = batch_store.get_active_batches_for_product(db_session, test_product.id)

        assert [b.id for b in batches] == [keep.id]

    def test_expired_before_skips_past_expiry(self, db_session, test_product):
        _batch(db_session, test_product, "B-OLD", expiry=date(2024, 1, 31))
        fresh = _batch(db_session, test_product, "B-FRESH", expiry=date(2024, 3, 1))
        forever = _batch(db_session, test_product, "B-FOREVER")

        batches = batch_store.get_active_batches_for_product(
            db_session, test_product.id, expired_before=date(2024, 2, 1)
        )

        assert [b.id for b in batches] == [fresh.id, forever.id]

    def test_read_is_repeatable(self, db_session, test_product):
        _batch(db_session, test_product, "B-1", expiry=date(2025, 1, 1))
        _batch(db_session, test_product, "B-2")

        first = [(b.id, b.remaining_quantity) for b in
                 batch_store.get_active_batches_for_product(db_session, test_product.id)]
        second = [(b.id, b.remaining_quantity) for b in
                  batch_store.get_active_batches_for_product(db_session, test_product.id)]

        assert first == second


class TestQuantityDelta:
    """Tests for _apply_quantity_delta and status derivation."""

    def test_debit_to_zero_depletes(self, db_session, test_product):
        batch = _batch(db_session, test_product, "B-1", qty=5)

        batch = batch_store._apply_quantity_delta(db_session, batch.id, -5)
        batch_store.sync_quantity_on_hand(db_session, test_product.id)
        db_session.commit()

        assert batch.remaining_quantity == 0
        assert batch.status == BatchStatus.DEPLETED
        db_session.refresh(test_product)
        assert test_product.quantity_on_hand == 0

    def test_overdraw_rejected_without_change(self, db_session, test_product):
        batch = _batch(db_session, test_product, "B-1", qty=5)

        with pytest.raises(InsufficientBatchQuantity) as exc:
            batch_store._apply_quantity_delta(db_session, batch.id, -6)
        db_session.rollback()

        assert exc.value.available == 5
        db_session.refresh(batch)
        assert batch.remaining_quantity == 5

    def test_cannot_exceed_received_quantity(self, db_session, test_product):
        batch = _batch(db_session, test_product, "B-1", qty=5)
        batch_store._apply_quantity_delta(db_session, batch.id, -2)

        with pytest.raises(InvalidInput):
            batch_store._apply_quantity_delta(db_session, batch.id, 3)

    def test_depleted_batch_needs_explicit_reactivation(self, db_session, test_product):
        batch = _batch(db_session, test_product, "B-1", qty=5)
        batch_store._apply_quantity_delta(db_session, batch.id, -5)

        with pytest.raises(InvalidInput):
            batch_store._apply_quantity_delta(db_session, batch.id, 2)

        batch = batch_store._apply_quantity_delta(db_session, batch.id, 2, reactivate=True)
        assert batch.status == BatchStatus.ACTIVE
        assert batch.remaining_quantity == 2

    def test_zero_delta_rejected(self, db_session, test_product):
        batch = _batch(db_session, test_product, "B-1")
        with pytest.raises(InvalidInput):
            batch_store._apply_quantity_delta(db_session, batch.id, 0)

    @pytest.mark.parametrize("remaining,current,reactivate,expected", [
        (0, "ACTIVE", False, "DEPLETED"),
        (3, "ACTIVE", False, "ACTIVE"),
        (3, "DEPLETED", False, "DEPLETED"),
        (3, "DEPLETED", True, "ACTIVE"),
        (3, "EXPIRED", True, "EXPIRED"),
        (0, "EXPIRED", False, "DEPLETED"),
    ])
    def test_derive_status(self, remaining, current, reactivate, expected):
        assert batch_store.derive_status(remaining, current, reactivate) == expected


class TestListBatches:
    def test_filters_and_paginates(self, db_session, test_product, make_product):
        other = make_product(name="Other")
        for i in range(3):
            _batch(db_session, test_product, f"P1-{i}")
        _batch(db_session, other, "P2-0")

        items, total = batch_store.list_batches(db_session, product_id=test_product.id, page=1, page_size=2)

        assert total == 3
        assert len(items) == 2
        assert all(b.product_id == test_product.id for b in items)

"""Tests for the movement ledger."""

import pytest
from datetime import date

from exceptions import InsufficientBatchQuantity, InvalidInput, NotFound
from models.batch import BatchStatus
from models.stock import StockMovement
from services import allocator, ledger
from services.ledger import MovementReference


@pytest.fixture
def stocked_product(test_product, receive_stock, far_future):
    """Product with batches of 5 (earlier expiry) and 3 units."""
    first = receive_stock(test_product, 5, expiry_date=date(2098, 1, 1))
    second = receive_stock(test_product, 3, expiry_date=far_future)
    return test_product, first, second


class TestRecordMovement:
    def test_zero_quantity_rejected(self, db_session, test_product):
        with pytest.raises(InvalidInput):
            ledger._record_movement(
                db_session, product_id=test_product.id, movement_type="ADJUSTMENT", quantity=0
            )

    def test_unknown_movement_type_rejected(self, db_session, test_product):
        with pytest.raises(ValueError):
            ledger._record_movement(
                db_session, product_id=test_product.id, movement_type="TELEPORT", quantity=1
            )

    def test_movement_number_format(self, db_session, stocked_product):
        movement = db_session.query(StockMovement).order_by(StockMovement.id).first()
        year = movement.created_at.year
        assert movement.movement_number == f"SM-{year}-{movement.id:06d}"


class TestCommitAllocation:
    def test_one_movement_per_batch_line(self, db_session, stocked_product):
        product, first, second = stocked_product
        plan = allocator.allocate(db_session, product.id, 6)

        movements = ledger.commit_allocation(
            db_session, plan, MovementReference("SALE", 10, "S-10"), performed_by=None
        )
        db_session.commit()

        assert [(m.batch_id, m.quantity) for m in movements] == [(first.id, -5), (second.id, -1)]
        assert all(m.reference_id == 10 and m.reference_number == "S-10" for m in movements)
        db_session.refresh(first)
        db_session.refresh(product)
        assert first.status == BatchStatus.DEPLETED
        assert product.quantity_on_hand == 2

    def test_stale_plan_is_rejected(self, db_session, stocked_product):
        product, first, _ = stocked_product
        plan = allocator.allocate(db_session, product.id, 4)
        ledger.commit_allocation(db_session, allocator.allocate(db_session, product.id, 4))
        db_session.commit()

        with pytest.raises(InsufficientBatchQuantity) as exc:
            ledger.commit_allocation(db_session, plan)
        db_session.rollback()

        assert exc.value.batch_id == first.id
        db_session.refresh(first)
        assert first.remaining_quantity == 1

    def test_empty_plan_rejected(self, db_session, test_product):
        plan = allocator.AllocationPlan(product_id=test_product.id, requested_quantity=1)
        with pytest.raises(InvalidInput):
            ledger.commit_allocation(db_session, plan)

    @pytest.mark.parametrize("line_qty", [-3, 0])
    def test_non_positive_line_cannot_restock(self, db_session, stocked_product, line_qty):
        product, first, _ = stocked_product
        allocator.allocate_and_commit(db_session, product.id, 4, MovementReference("SALE", 9))
        movements_before = db_session.query(StockMovement).count()
        plan = allocator.AllocationPlan(
            product_id=product.id,
            requested_quantity=line_qty,
            lines=[allocator.AllocationLine(first.id, first.batch_number, line_qty, first.cost_price)],
        )

        with pytest.raises(InvalidInput):
            ledger.commit_allocation(db_session, plan, MovementReference("SALE", 10))
        db_session.rollback()

        db_session.refresh(first)
        assert first.remaining_quantity == 1
        assert db_session.query(StockMovement).count() == movements_before

    def test_lines_must_cover_requested_quantity(self, db_session, stocked_product):
        product, first, _ = stocked_product
        plan = allocator.AllocationPlan(
            product_id=product.id,
            requested_quantity=5,
            lines=[allocator.AllocationLine(first.id, first.batch_number, 2, first.cost_price)],
        )

        with pytest.raises(InvalidInput) as exc:
            ledger.commit_allocation(db_session, plan)

        assert exc.value.payload == {"requested": 5, "allocated": 2}


class TestReverseReference:
    def test_void_restores_batches_and_reactivates(self, db_session, stocked_product):
        product, first, second = stocked_product
        allocator.allocate_and_commit(db_session, product.id, 6, MovementReference("SALE", 77, "S-77"))

        reversals = ledger.reverse_reference(db_session, "SALE", 77, "Customer cancelled order")
        db_session.commit()

        assert sorted((m.batch_id, m.quantity) for m in reversals) == sorted([(first.id, 5), (second.id, 1)])
        assert all(m.movement_type == "VOID_REVERSAL" for m in reversals)
        db_session.refresh(first)
        db_session.refresh(product)
        assert first.status == BatchStatus.ACTIVE
        assert first.remaining_quantity == 5
        assert product.quantity_on_hand == 8

        total = sum(m.quantity for m in db_session.query(StockMovement).filter(StockMovement.product_id == product.id))
        assert total == product.quantity_on_hand

    def test_double_reversal_rejected(self, db_session, stocked_product):
        product, _, _ = stocked_product
        allocator.allocate_and_commit(db_session, product.id, 2, MovementReference("SALE", 5))
        ledger.reverse_reference(db_session, "SALE", 5, "Voided at till")
        db_session.commit()

        with pytest.raises(InvalidInput):
            ledger.reverse_reference(db_session, "SALE", 5, "Voided at till")

    def test_unknown_reference(self, db_session, stocked_product):
        with pytest.raises(NotFound):
            ledger.reverse_reference(db_session, "SALE", 404, "Nothing to undo")

    def test_reason_required(self, db_session, stocked_product):
        with pytest.raises(InvalidInput):
            ledger.reverse_reference(db_session, "SALE", 1, "  ")


class TestListMovements:
    def test_newest_first_with_direction_filter(self, db_session, stocked_product):
        product, _, _ = stocked_product
        allocator.allocate_and_commit(db_session, product.id, 2, MovementReference("SALE", 1))

        items, total = ledger.list_movements(db_session, product_id=product.id)
        assert total == 3
        assert [m.id for m in items] == sorted((m.id for m in items), reverse=True)

        outgoing, out_total = ledger.list_movements(db_session, product_id=product.id, direction="OUT")
        assert out_total == 1
        assert outgoing[0].quantity == -2

        incoming, in_total = ledger.list_movements(db_session, product_id=product.id, direction="in")
        assert in_total == 2
        assert all(m.quantity > 0 for m in incoming)

    def test_filter_by_type_and_batch(self, db_session, stocked_product):
        product, first, _ = stocked_product

        items, total = ledger.list_movements(db_session, movement_type="GOODS_RECEIPT", batch_id=first.id)

        assert total == 1
        assert items[0].batch_id == first.id

    def test_unknown_direction(self, db_session):
        with pytest.raises(InvalidInput):
            ledger.list_movements(db_session, direction="SIDEWAYS")

    def test_get_movement_not_found(self, db_session):
        with pytest.raises(NotFound):
            ledger.get_movement(db_session, 12345)

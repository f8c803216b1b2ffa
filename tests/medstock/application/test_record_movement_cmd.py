"""Application tests for RecordMovement."""

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

from medstock.lot.errors import InsufficientStock, StaleLot
from medstock.lot.lookup import process_for_lot
from medstock.lot.lot import InventoryLot
from medstock.lot.movement import RecordMovement
from medstock.projections.lot_stock import LotStock


def _move(lot_id, **overrides):
    defaults = {
        "lot_id": lot_id,
        "movement_type": "out",
        "quantity": 10,
        "reason": "sale",
        "performed_by": "owner-001",
    }
    defaults.update(overrides)
    return process_for_lot(lot_id, RecordMovement(**defaults))


class TestRecordMovement:
    def test_out_movement_persisted(self, receive_lot):
        lot_id = receive_lot(quantity=50)
        _move(lot_id, quantity=20)

        lot = current_domain.repository_for(InventoryLot).get(lot_id)
        assert lot.quantity == 30
        assert lot.revision == 2
        assert len(lot.movements) == 2

    def test_insufficient_stock_leaves_lot_untouched(self, receive_lot):
        lot_id = receive_lot(quantity=5)
        with pytest.raises(InsufficientStock):
            _move(lot_id, quantity=6)

        lot = current_domain.repository_for(InventoryLot).get(lot_id)
        assert lot.quantity == 5
        assert len(lot.movements) == 1

    def test_invalid_reason_rejected(self, receive_lot):
        lot_id = receive_lot()
        with pytest.raises(ValidationError):
            _move(lot_id, reason="order_confirmed")

    def test_unknown_lot(self, receive_lot):
        with pytest.raises(ObjectNotFoundError):
            _move("missing-lot")

    def test_projection_follows_movement(self, receive_lot):
        lot_id = receive_lot(quantity=15)
        _move(lot_id, quantity=10)

        view = current_domain.repository_for(LotStock).get(lot_id)
        assert view.quantity == 5
        assert view.available_quantity == 5
        assert view.status == "low-stock"


class TestOptimisticConcurrency:
    def test_current_revision_accepted(self, receive_lot):
        lot_id = receive_lot()
        _move(lot_id, expected_revision=1)
        assert current_domain.repository_for(InventoryLot).get(lot_id).revision == 2

    def test_stale_revision_rejected(self, receive_lot):
        lot_id = receive_lot()
        _move(lot_id)
        with pytest.raises(StaleLot):
            _move(lot_id, expected_revision=1)
        assert current_domain.repository_for(InventoryLot).get(lot_id).quantity == 90


class TestMovementPublishing:
    def test_publishes_stock_movement(self, receive_lot, transport):
        lot_id = receive_lot()
        _move(lot_id, quantity=5)

        message = transport.messages("inventory.stock_movement")[0]
        assert message["lot_id"] == lot_id
        assert message["movement_quantity"] == 5
        assert message["quantity"] == 95
        assert transport.messages("inventory.updated") == []

    def test_status_change_also_publishes_updated(self, receive_lot, transport):
        lot_id = receive_lot(quantity=12)
        _move(lot_id, quantity=12)

        updated = transport.messages("inventory.updated")
        assert len(updated) == 1
        assert updated[0]["status"] == "out-of-stock"
        assert updated[0]["previous_status"] == "active"

    def test_failing_transport_does_not_undo_write(self, receive_lot, transport):
        lot_id = receive_lot()
        transport.configure(should_succeed=False)
        _move(lot_id, quantity=5)
        assert current_domain.repository_for(InventoryLot).get(lot_id).quantity == 95

"""Application tests for cross-domain Ordering event handlers."""

import json
from datetime import UTC, datetime

import pytest
from protean import current_domain
from shared.events.ordering import OrderCancelled, OrderConfirmed, OrderDelivered, OrderPlaced

from medstock.lot.errors import EventProcessingError
from medstock.lot.lot import InventoryLot
from medstock.reservation.coordinator import ReservationCoordinator
from medstock.reservation.ledger import ProcessedOrderLine
from medstock.reservation.ordering_events import OrderingEventsHandler


def _items(quantity=4, medicine_id="med-001", batch_number="B-001"):
    return json.dumps([{"medicine_id": medicine_id, "batch_number": batch_number, "quantity": quantity}])


def _lot(lot_id):
    return current_domain.repository_for(InventoryLot).get(lot_id)


class TestOrderPlacedHandler:
    def test_reserves_stock(self, receive_lot):
        lot_id = receive_lot(quantity=10)
        event = OrderPlaced(
            order_id="order-001",
            shop_id="shop-001",
            user_id="cust-001",
            items=_items(4),
            placed_at=datetime.now(UTC),
        )

        OrderingEventsHandler().on_order_placed(event)

        assert _lot(lot_id).reserved_quantity == 4
        assert _lot(lot_id).available_quantity == 6

    def test_accepts_camel_case_items(self, receive_lot):
        lot_id = receive_lot(quantity=10)
        event = OrderPlaced(
            order_id="order-002",
            shop_id="shop-001",
            user_id="cust-001",
            items=json.dumps([{"medicineId": "med-001", "batchNumber": "B-001", "quantity": 2}]),
        )
        OrderingEventsHandler().on_order_placed(event)
        assert _lot(lot_id).reserved_quantity == 2

    def test_skips_malformed_items(self, receive_lot):
        lot_id = receive_lot(quantity=10)
        event = OrderPlaced(order_id="order-003", shop_id="shop-001", user_id="cust-001", items="not-json")

        OrderingEventsHandler().on_order_placed(event)

        assert _lot(lot_id).reserved_quantity == 0
        assert current_domain.repository_for(ProcessedOrderLine)._dao.query.all().items == []

    def test_skips_order_without_items(self, receive_lot):
        lot_id = receive_lot(quantity=10)
        event = OrderPlaced(order_id="order-004", shop_id="shop-001", user_id="cust-001", items="[]")
        OrderingEventsHandler().on_order_placed(event)
        assert _lot(lot_id).reserved_quantity == 0

    def test_insufficient_stock_is_logged_not_raised(self, receive_lot, transport):
        lot_id = receive_lot(quantity=3)
        event = OrderPlaced(order_id="order-005", shop_id="shop-001", user_id="cust-001", items=_items(5))

        OrderingEventsHandler().on_order_placed(event)

        assert _lot(lot_id).reserved_quantity == 0
        assert len(transport.messages("inventory.reservation_failed")) == 1

    def test_transient_failure_is_retried_then_reraised(self, monkeypatch):
        calls = []

        def _unavailable(self, event_kind, payload):
            calls.append(event_kind)
            raise ConnectionError("database unavailable")

        monkeypatch.setattr(ReservationCoordinator, "process", _unavailable)
        event = OrderPlaced(order_id="order-006", shop_id="shop-001", user_id="cust-001", items=_items(1))

        with pytest.raises(EventProcessingError):
            OrderingEventsHandler().on_order_placed(event)
        assert calls == ["placed", "placed", "placed"]


class TestOrderLifecycleHandlers:
    def _place(self, quantity=4):
        OrderingEventsHandler().on_order_placed(
            OrderPlaced(order_id="order-100", shop_id="shop-001", user_id="cust-001", items=_items(quantity))
        )

    def test_confirmed_commits_reservation(self, receive_lot):
        lot_id = receive_lot(quantity=10)
        self._place(4)

        OrderingEventsHandler().on_order_confirmed(
            OrderConfirmed(order_id="order-100", shop_id="shop-001", items=_items(4), confirmed_at=datetime.now(UTC))
        )

        lot = _lot(lot_id)
        assert lot.quantity == 6
        assert lot.reserved_quantity == 0

    def test_cancelled_releases_reservation(self, receive_lot):
        lot_id = receive_lot(quantity=10)
        self._place(4)

        OrderingEventsHandler().on_order_cancelled(
            OrderCancelled(order_id="order-100", shop_id="shop-001", items=_items(4), cancelled_at=datetime.now(UTC))
        )

        assert _lot(lot_id).available_quantity == 10

    def test_delivered_records_line(self, receive_lot):
        receive_lot(quantity=10)
        OrderingEventsHandler().on_order_delivered(
            OrderDelivered(order_id="order-100", shop_id="shop-001", items=_items(4), delivered_at=datetime.now(UTC))
        )
        records = current_domain.repository_for(ProcessedOrderLine)._dao.query.filter(event_kind="delivered").all()
        assert len(records.items) == 1

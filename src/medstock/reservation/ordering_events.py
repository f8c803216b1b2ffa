"""Inbound cross-domain event handler: stock reacts to the order lifecycle.

Listens for OrderPlaced, OrderConfirmed, OrderCancelled and OrderDelivered on
the ``ordering::order`` stream. Malformed payloads and per-line business
failures are logged and skipped; transient failures are retried with backoff
and then re-raised so the event is redelivered.

Cross-domain events are imported from shared.events.ordering and registered
as external events via medstock.register_external_event().
"""

import structlog
from protean.exceptions import ValidationError
from protean.utils.mixins import handle
from shared.events.ordering import OrderCancelled, OrderConfirmed, OrderDelivered, OrderPlaced

from medstock.domain import medstock
from medstock.lot.lot import InventoryLot
from medstock.reservation.coordinator import ReservationCoordinator
from medstock.reservation.ledger import OrderEventKind
from medstock.reservation.payload import payload_from_event
from medstock.reservation.retry import run_with_retry

logger = structlog.get_logger(__name__)

# Register external events so Protean can deserialize them
medstock.register_external_event(OrderPlaced, "Ordering.OrderPlaced.v1")
medstock.register_external_event(OrderConfirmed, "Ordering.OrderConfirmed.v1")
medstock.register_external_event(OrderCancelled, "Ordering.OrderCancelled.v1")
medstock.register_external_event(OrderDelivered, "Ordering.OrderDelivered.v1")


@medstock.event_handler(part_of=InventoryLot, stream_category="ordering::order")
class OrderingEventsHandler:
    """Reacts to Ordering domain events to reserve, commit and release stock."""

    def _apply(self, kind: OrderEventKind, event) -> None:
        try:
            payload = payload_from_event(event)
        except ValidationError as exc:
            logger.error(
                "Skipping malformed order event",
                order_id=str(event.order_id),
                event_kind=kind.value,
                errors=exc.messages,
            )
            return

        coordinator = ReservationCoordinator()
        result = run_with_retry(
            lambda: coordinator.process(kind.value, payload),
            description=f"order {payload.order_id} {kind.value}",
        )
        for line in result.failed_lines:
            logger.warning(
                "Order line skipped",
                order_id=payload.order_id,
                event_kind=kind.value,
                medicine_id=line.medicine_id,
                batch_number=line.batch_number,
                error=str(line.error),
            )

    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        self._apply(OrderEventKind.PLACED, event)

    @handle(OrderConfirmed)
    def on_order_confirmed(self, event: OrderConfirmed) -> None:
        self._apply(OrderEventKind.CONFIRMED, event)

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        self._apply(OrderEventKind.CANCELLED, event)

    @handle(OrderDelivered)
    def on_order_delivered(self, event: OrderDelivered) -> None:
        self._apply(OrderEventKind.DELIVERED, event)

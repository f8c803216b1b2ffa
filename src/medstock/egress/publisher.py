"""Outbound inventory messages.

``InventoryEventPublisher`` runs after each unit of work commits and maps the
InventoryLot domain events onto ``inventory.*`` topics. Publishing runs with
a bounded timeout; a slow or failing transport is logged and never undoes a
committed change.
"""

import structlog
from protean.utils.mixins import handle

from medstock.domain import medstock
from medstock.egress import get_transport
from medstock.egress.port import EventTransport
from medstock.lot.events import (
    ExpiryAlertRaised,
    LotDetailsUpdated,
    LotReceived,
    LotStatusRefreshed,
    LowStockAlertRaised,
    ReconciliationFlagged,
    StockMoved,
)
from medstock.lot.lot import InventoryLot
from medstock.utils.calls import BoundedCaller
from medstock.utils.settings import get_setting

logger = structlog.get_logger(__name__)

_egress = BoundedCaller("medstock-egress", max_workers=4, max_in_flight=32)


def publish_with_timeout(
    topic: str,
    payload: dict,
    transport: EventTransport | None = None,
    timeout: float | None = None,
) -> bool:
    """Publish one message, waiting at most ``timeout`` seconds. Returns True on success."""
    transport = transport if transport is not None else get_transport()
    if timeout is None:
        timeout = get_setting("publish_timeout_seconds")

    try:
        result = _egress.call(transport.publish, topic, payload, timeout=timeout)
    except TimeoutError as exc:
        logger.warning("Timed out publishing inventory event", topic=topic, timeout=timeout, error=str(exc))
        return False
    except Exception as exc:
        logger.error("Failed to publish inventory event", topic=topic, error=str(exc))
        return False

    if result.get("status") != "published":
        logger.warning("Transport rejected inventory event", topic=topic, error=result.get("error"))
        return False

    logger.debug("Published inventory event", topic=topic, message_id=result.get("message_id"))
    return True


def event_payload(event) -> dict:
    """Event fields without Protean's metadata envelope."""
    return {key: value for key, value in event.to_dict().items() if not key.startswith("_")}


@medstock.event_handler(part_of=InventoryLot)
class InventoryEventPublisher:
    """Forwards committed lot events to the marketplace."""

    @handle(LotReceived)
    def on_lot_received(self, event: LotReceived) -> None:
        publish_with_timeout("inventory.added", event_payload(event))

    @handle(StockMoved)
    def on_stock_moved(self, event: StockMoved) -> None:
        payload = event_payload(event)
        publish_with_timeout("inventory.stock_movement", payload)
        if event.previous_status != event.status:
            publish_with_timeout("inventory.updated", payload)

    @handle(LotDetailsUpdated)
    def on_lot_details_updated(self, event: LotDetailsUpdated) -> None:
        publish_with_timeout("inventory.updated", event_payload(event))

    @handle(LotStatusRefreshed)
    def on_lot_status_refreshed(self, event: LotStatusRefreshed) -> None:
        publish_with_timeout("inventory.updated", event_payload(event))

    @handle(LowStockAlertRaised)
    def on_low_stock_alert(self, event: LowStockAlertRaised) -> None:
        publish_with_timeout("inventory.low_stock_alert", event_payload(event))

    @handle(ExpiryAlertRaised)
    def on_expiry_alert(self, event: ExpiryAlertRaised) -> None:
        publish_with_timeout("inventory.expiry_alert", event_payload(event))

    @handle(ReconciliationFlagged)
    def on_reconciliation_flagged(self, event: ReconciliationFlagged) -> None:
        logger.warning(
            "Order line needs reconciliation",
            lot_id=str(event.lot_id),
            order_id=str(event.order_id),
            reason=event.reason,
        )
        publish_with_timeout("inventory.reconciliation_alert", event_payload(event))

"""Reservation coordinator: applies an order lifecycle event line by line.

Per line item:

    placed     reserve stock; insufficient stock fails that line only
    confirmed  convert the reservation into a sale, or flag for reconciliation
    cancelled  release the reservation, clamped at zero
    delivered  re-check status and alerts

Each line is one ``ApplyOrderLine`` command processed under its lot's lock.
Permanent failures (validation, unknown lot) are collected per line;
transient ones propagate so the caller can retry the whole event, with
already-applied lines deduplicated by the ledger.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from medstock.egress.port import EventTransport
from medstock.egress.publisher import publish_with_timeout
from medstock.lot.errors import InsufficientStock, ReconciliationWarning
from medstock.lot.locks import LotLocks, lot_locks
from medstock.lot.lot import lot_key_for
from medstock.reservation.ledger import LineOutcome, OrderEventKind
from medstock.reservation.order_lines import ApplyOrderLine
from medstock.reservation.payload import OrderEventPayload, OrderLineItem, parse_order_payload
from medstock.utils.settings import get_setting

logger = structlog.get_logger(__name__)


@dataclass
class LineResult:
    medicine_id: str
    batch_number: str
    quantity: int
    outcome: str
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.outcome != LineOutcome.FAILED.value

    def to_dict(self) -> dict:
        return {
            "medicine_id": self.medicine_id,
            "batch_number": self.batch_number,
            "quantity": self.quantity,
            "outcome": self.outcome,
            "error": getattr(self.error, "messages", None) or (str(self.error) if self.error else None),
        }


@dataclass
class OrderProcessingResult:
    order_id: str
    event_kind: str
    lines: list[LineResult] = field(default_factory=list)

    @property
    def failed_lines(self) -> list[LineResult]:
        return [line for line in self.lines if not line.ok]

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "event_kind": self.event_kind,
            "lines": [line.to_dict() for line in self.lines],
        }


class ReservationCoordinator:
    def __init__(self, transport: EventTransport | None = None, locks: LotLocks | None = None):
        self.transport = transport
        self.locks = locks if locks is not None else lot_locks

    def process(self, event_kind: str, payload) -> OrderProcessingResult:
        """Apply ``event_kind`` to every line of ``payload`` (dict, JSON or OrderEventPayload)."""
        try:
            kind = OrderEventKind(event_kind)
        except ValueError:
            raise ValidationError({"event_kind": [f"Unknown order event: {event_kind}"]}) from None

        order = payload if isinstance(payload, OrderEventPayload) else parse_order_payload(payload)
        result = OrderProcessingResult(order_id=order.order_id, event_kind=kind.value)

        for item in order.items:
            result.lines.append(self._apply_line(kind, order, item))

        logger.info(
            "Order event processed",
            order_id=order.order_id,
            event_kind=kind.value,
            lines=len(result.lines),
            failed=len(result.failed_lines),
        )
        return result

    def _apply_line(self, kind: OrderEventKind, order: OrderEventPayload, item: OrderLineItem) -> LineResult:
        command = ApplyOrderLine(
            order_id=order.order_id,
            shop_id=order.shop_id,
            user_id=order.user_id,
            event_kind=kind.value,
            medicine_id=item.medicine_id,
            batch_number=item.batch_number,
            quantity=item.quantity,
        )
        key = lot_key_for(order.shop_id, item.medicine_id, item.batch_number)

        try:
            with self.locks.hold(key, timeout=get_setting("lot_lock_timeout_seconds")):
                outcome = current_domain.process(command, asynchronous=False)
        except (ValidationError, ObjectNotFoundError) as exc:
            logger.warning(
                "Order line failed",
                order_id=order.order_id,
                event_kind=kind.value,
                medicine_id=item.medicine_id,
                batch_number=item.batch_number,
                error=str(exc),
            )
            if kind == OrderEventKind.PLACED:
                self._publish_reservation_failure(order, item, exc)
            return LineResult(item.medicine_id, item.batch_number, item.quantity, LineOutcome.FAILED.value, exc)

        warning = None
        if outcome == LineOutcome.RECONCILED.value:
            warning = ReconciliationWarning(
                f"Order {order.order_id} {kind.value} line for medicine {item.medicine_id} "
                f"batch {item.batch_number} did not match reserved stock"
            )
        return LineResult(item.medicine_id, item.batch_number, item.quantity, outcome, warning)

    def _publish_reservation_failure(self, order: OrderEventPayload, item: OrderLineItem, exc: Exception):
        publish_with_timeout(
            "inventory.reservation_failed",
            {
                "order_id": order.order_id,
                "shop_id": order.shop_id,
                "user_id": order.user_id,
                "medicine_id": item.medicine_id,
                "batch_number": item.batch_number,
                "quantity": item.quantity,
                "reason": "insufficient_stock" if isinstance(exc, InsufficientStock) else "unavailable",
                "error": getattr(exc, "messages", None) or str(exc),
                "failed_at": datetime.now(UTC).isoformat(),
            },
            transport=self.transport,
        )

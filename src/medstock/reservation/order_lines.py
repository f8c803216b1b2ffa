"""ApplyOrderLine: apply one order line's lifecycle effect to its lot.

The idempotency check, the lot mutation and the ledger record all happen in
the handler's unit of work. A failed ``placed`` line is not recorded, so a
redelivered event can try again once stock is available. A cancellation only
releases stock the line still holds, so it never frees another order's
reservation.
"""

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from medstock.domain import medstock
from medstock.lot.lookup import find_lot
from medstock.lot.lot import InventoryLot
from medstock.reservation.ledger import LineOutcome, OrderEventKind, ProcessedOrderLine, find_processed_line

logger = structlog.get_logger(__name__)


@medstock.command(part_of="InventoryLot")
class ApplyOrderLine:
    order_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    user_id = Identifier()
    event_kind = String(required=True, max_length=20)
    medicine_id = Identifier(required=True)
    batch_number = String(required=True, max_length=50)
    quantity = Integer(required=True, min_value=1)


def _holds_reservation(command) -> bool:
    """True while the line's placement is recorded and not yet turned into a sale."""
    placed = find_processed_line(
        command.order_id, command.medicine_id, command.batch_number, OrderEventKind.PLACED.value
    )
    if placed is None:
        return False
    confirmed = find_processed_line(
        command.order_id, command.medicine_id, command.batch_number, OrderEventKind.CONFIRMED.value
    )
    return confirmed is None or confirmed.outcome == LineOutcome.RECONCILED.value


@medstock.command_handler(part_of=InventoryLot)
class ApplyOrderLineHandler:
    @handle(ApplyOrderLine)
    def apply_order_line(self, command):
        try:
            kind = OrderEventKind(command.event_kind)
        except ValueError:
            raise ValidationError({"event_kind": [f"Unknown order event: {command.event_kind}"]}) from None

        if find_processed_line(command.order_id, command.medicine_id, command.batch_number, kind.value):
            logger.info(
                "Order line already processed",
                order_id=str(command.order_id),
                medicine_id=str(command.medicine_id),
                batch_number=command.batch_number,
                event_kind=kind.value,
            )
            return LineOutcome.DUPLICATE.value

        lot = find_lot(command.shop_id, command.medicine_id, command.batch_number)
        if lot is None:
            raise ObjectNotFoundError(
                {"lot": [f"Shop does not stock medicine {command.medicine_id} batch {command.batch_number}"]}
            )

        outcome = LineOutcome.APPLIED
        if kind == OrderEventKind.PLACED:
            lot.reserve(command.order_id, command.quantity, performed_by=command.user_id)
        elif kind == OrderEventKind.CONFIRMED:
            placed = find_processed_line(
                command.order_id, command.medicine_id, command.batch_number, OrderEventKind.PLACED.value
            )
            if not lot.commit_reservation(
                command.order_id,
                command.quantity,
                reservation_recorded=placed is not None,
                performed_by=command.user_id,
            ):
                outcome = LineOutcome.RECONCILED
        elif kind == OrderEventKind.CANCELLED:
            if not lot.release_reservation(
                command.order_id,
                command.quantity,
                reservation_held=_holds_reservation(command),
                performed_by=command.user_id,
            ):
                outcome = LineOutcome.RECONCILED
        else:
            lot.review_after_delivery()

        current_domain.repository_for(InventoryLot).add(lot)
        current_domain.repository_for(ProcessedOrderLine).add(
            ProcessedOrderLine.record(
                order_id=command.order_id,
                shop_id=command.shop_id,
                medicine_id=command.medicine_id,
                batch_number=command.batch_number,
                event_kind=kind.value,
                quantity=command.quantity,
                outcome=outcome.value,
            )
        )

        logger.info(
            "Order line applied",
            order_id=str(command.order_id),
            lot_id=str(lot.id),
            event_kind=kind.value,
            quantity=command.quantity,
            outcome=outcome.value,
        )
        return outcome.value

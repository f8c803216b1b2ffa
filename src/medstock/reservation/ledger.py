"""ProcessedOrderLine: idempotency ledger for order lifecycle effects.

One record per ``(order, medicine, batch, event kind)`` that has been applied.
It is written in the same unit of work as the lot mutation it guards, so a
replayed event finds the record and becomes a no-op.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from medstock.domain import medstock


class OrderEventKind(Enum):
    PLACED = "placed"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    DELIVERED = "delivered"


class LineOutcome(Enum):
    APPLIED = "applied"
    RECONCILED = "reconciled"
    DUPLICATE = "duplicate"
    FAILED = "failed"


def dedupe_key_for(order_id, medicine_id, batch_number, event_kind) -> str:
    return f"{order_id}:{medicine_id}:{batch_number}:{event_kind}"


@medstock.aggregate
class ProcessedOrderLine:
    dedupe_key = String(required=True, max_length=255, unique=True)
    order_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    medicine_id = Identifier(required=True)
    batch_number = String(required=True, max_length=50)
    event_kind = String(choices=OrderEventKind, required=True)
    quantity = Integer(required=True)
    outcome = String(choices=LineOutcome, required=True)
    processed_at = DateTime(required=True)

    @classmethod
    def record(cls, order_id, shop_id, medicine_id, batch_number, event_kind, quantity, outcome):
        return cls(
            dedupe_key=dedupe_key_for(order_id, medicine_id, batch_number, event_kind),
            order_id=str(order_id),
            shop_id=str(shop_id),
            medicine_id=str(medicine_id),
            batch_number=batch_number,
            event_kind=event_kind,
            quantity=quantity,
            outcome=outcome,
            processed_at=datetime.now(UTC),
        )


def find_processed_line(order_id, medicine_id, batch_number, event_kind) -> ProcessedOrderLine | None:
    found = (
        current_domain.repository_for(ProcessedOrderLine)
        ._dao.query.filter(dedupe_key=dedupe_key_for(order_id, medicine_id, batch_number, event_kind))
        .all()
        .items
    )
    return found[0] if found else None

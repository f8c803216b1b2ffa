"""Bulk stock update: set the on-hand count (and optionally prices) of many lots.

Each item is its own unit of work under its lot's lock, so one bad item does
not block the rest. The caller gets a per-item success/failure report and the
marketplace gets a single ``inventory.bulk_updated`` message.
"""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from medstock.domain import medstock
from medstock.egress.publisher import publish_with_timeout
from medstock.lot.errors import EventProcessingError
from medstock.lot.lookup import find_lot, process_locked
from medstock.lot.lot import InventoryLot, MovementReason, MovementType, Pricing, lot_key_for

logger = structlog.get_logger(__name__)

MAX_BULK_ITEMS = 50


@medstock.command(part_of="InventoryLot")
class SetLotStock:
    shop_id = Identifier(required=True)
    medicine_id = Identifier(required=True)
    batch_number = String(required=True, max_length=50)
    quantity = Integer(required=True, min_value=0)
    cost_price = Float()
    selling_price = Float()
    mrp = Float()
    performed_by = Identifier()
    notes = String(max_length=200)


@medstock.command_handler(part_of=InventoryLot)
class SetLotStockHandler:
    @handle(SetLotStock)
    def set_lot_stock(self, command):
        lot = find_lot(command.shop_id, command.medicine_id, command.batch_number)
        if lot is None:
            raise ObjectNotFoundError(
                {"lot": [f"No lot for medicine {command.medicine_id} batch {command.batch_number}"]}
            )

        lot.apply_movement(
            movement_type=MovementType.ADJUSTMENT.value,
            quantity=command.quantity,
            reason=MovementReason.CORRECTION.value,
            performed_by=command.performed_by,
            notes=command.notes or "Bulk stock update",
        )

        prices = {
            name: getattr(command, name)
            for name in ("cost_price", "selling_price", "mrp")
            if getattr(command, name) is not None
        }
        if prices:
            current = lot.pricing
            lot.update_details(
                pricing=Pricing(
                    cost_price=prices.get("cost_price", current.cost_price),
                    selling_price=prices.get("selling_price", current.selling_price),
                    mrp=prices.get("mrp", current.mrp),
                    discount_percentage=current.discount_percentage,
                    tax_percentage=current.tax_percentage,
                ),
                updated_by=command.performed_by,
            )

        current_domain.repository_for(InventoryLot).add(lot)
        return str(lot.id)


def _error_messages(exc: Exception):
    return getattr(exc, "messages", None) or str(exc)


def bulk_update_stock(shop_id: str, items: list[dict], performed_by: str | None = None) -> dict:
    """Apply ``items`` (``medicine_id``, ``batch_number``, ``quantity`` and optional prices) to a shop.

    Returns ``{"successful": [...], "failed": [...]}``.
    """
    if not items:
        raise ValidationError({"items": ["At least one item is required"]})
    if len(items) > MAX_BULK_ITEMS:
        raise ValidationError({"items": [f"At most {MAX_BULK_ITEMS} items can be updated at once"]})

    successful = []
    failed = []
    for item in items:
        medicine_id = str(item.get("medicine_id"))
        batch_number = str(item.get("batch_number"))
        try:
            command = SetLotStock(
                shop_id=str(shop_id),
                medicine_id=medicine_id,
                batch_number=batch_number,
                quantity=item.get("quantity"),
                cost_price=item.get("cost_price"),
                selling_price=item.get("selling_price"),
                mrp=item.get("mrp"),
                performed_by=performed_by,
            )
            lot_id = process_locked(lot_key_for(shop_id, medicine_id, batch_number), command)
            successful.append({"medicine_id": medicine_id, "batch_number": batch_number, "lot_id": lot_id})
        except (ValidationError, ObjectNotFoundError, EventProcessingError) as exc:
            logger.warning(
                "Bulk stock update item failed",
                shop_id=str(shop_id),
                medicine_id=medicine_id,
                batch_number=batch_number,
                error=str(exc),
            )
            failed.append({"medicine_id": medicine_id, "batch_number": batch_number, "error": _error_messages(exc)})

    logger.info(
        "Bulk stock update complete",
        shop_id=str(shop_id),
        successful=len(successful),
        failed=len(failed),
    )
    publish_with_timeout(
        "inventory.bulk_updated",
        {
            "shop_id": str(shop_id),
            "successful_count": len(successful),
            "failed_count": len(failed),
            "lot_ids": [entry["lot_id"] for entry in successful],
            "performed_by": performed_by,
            "updated_at": datetime.now(UTC).isoformat(),
        },
    )
    return {"successful": successful, "failed": failed}

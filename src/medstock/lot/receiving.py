"""ReceiveLot: create a lot from its first stock receipt.

Rejects a second lot for the same shop, medicine and batch. The medicine is
checked against the catalog with a bounded wait; when the catalog cannot be
reached or does not answer in time the check is skipped and creation proceeds.
"""

import json

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Date, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from medstock.directory import get_catalog
from medstock.domain import medstock
from medstock.lot.errors import DuplicateLot
from medstock.lot.lookup import find_lot
from medstock.lot.lot import AlertSettings, InventoryLot, Pricing, StorageLocation, Supplier
from medstock.utils.calls import BoundedCaller
from medstock.utils.settings import get_setting

logger = structlog.get_logger(__name__)

_catalog_calls = BoundedCaller("medstock-catalog", max_workers=4, max_in_flight=16)


@medstock.command(part_of="InventoryLot")
class ReceiveLot:
    shop_id = Identifier(required=True)
    medicine_id = Identifier(required=True)
    batch_number = String(required=True, max_length=50)
    quantity = Integer(required=True)
    cost_price = Float(required=True)
    selling_price = Float(required=True)
    mrp = Float(required=True)
    discount_percentage = Float(default=0.0)
    tax_percentage = Float(default=0.0)
    manufacturing_date = Date(required=True)
    expiry_date = Date(required=True)
    low_stock_threshold = Integer()
    expiry_alert_days = Integer()
    unit = String(max_length=20)
    supplier = Text()  # JSON: {name, contact, invoice_number}
    location = Text()  # JSON: {rack, shelf, bin}
    created_by = Identifier()


def _lookup_medicine(catalog, medicine_id) -> bool:
    # Worker threads start without the caller's domain context
    with medstock.domain_context():
        return catalog.exists(medicine_id)


def _ensure_medicine_known(medicine_id) -> None:
    try:
        known = _catalog_calls.call(
            _lookup_medicine,
            get_catalog(),
            str(medicine_id),
            timeout=get_setting("catalog_timeout_seconds"),
        )
    except (TimeoutError, ConnectionError) as exc:
        logger.warning(
            "Catalog lookup unavailable, accepting lot without check",
            medicine_id=str(medicine_id),
            error=str(exc),
        )
        return

    if not known:
        raise ObjectNotFoundError({"medicine_id": [f"Medicine {medicine_id} does not exist"]})


def _duplicate(batch_number) -> DuplicateLot:
    return DuplicateLot({"batch_number": [f"Batch {batch_number} is already stocked for this medicine at this shop"]})


@medstock.command_handler(part_of=InventoryLot)
class ReceiveLotHandler:
    @handle(ReceiveLot)
    def receive_lot(self, command):
        _ensure_medicine_known(command.medicine_id)

        if find_lot(command.shop_id, command.medicine_id, command.batch_number) is not None:
            raise _duplicate(command.batch_number)

        supplier_data = json.loads(command.supplier) if command.supplier else None
        location_data = json.loads(command.location) if command.location else None

        lot = InventoryLot.receive(
            shop_id=command.shop_id,
            medicine_id=command.medicine_id,
            batch_number=command.batch_number,
            quantity=command.quantity,
            pricing=Pricing(
                cost_price=command.cost_price,
                selling_price=command.selling_price,
                mrp=command.mrp,
                discount_percentage=command.discount_percentage or 0.0,
                tax_percentage=command.tax_percentage or 0.0,
            ),
            manufacturing_date=command.manufacturing_date,
            expiry_date=command.expiry_date,
            alerts=AlertSettings(
                low_stock_threshold=(
                    command.low_stock_threshold
                    if command.low_stock_threshold is not None
                    else get_setting("default_low_stock_threshold")
                ),
                expiry_alert_days=(
                    command.expiry_alert_days
                    if command.expiry_alert_days is not None
                    else get_setting("default_expiry_alert_days")
                ),
            ),
            unit=command.unit,
            supplier=Supplier(**supplier_data) if supplier_data else None,
            location=StorageLocation(**location_data) if location_data else None,
            created_by=command.created_by,
        )
        try:
            current_domain.repository_for(InventoryLot).add(lot)
        except ValidationError as exc:
            # Another writer stored the same lot between the lookup and the insert
            if isinstance(exc.messages, dict) and "lot_key" in exc.messages:
                raise _duplicate(command.batch_number) from exc
            raise

        logger.info(
            "Lot received",
            lot_id=str(lot.id),
            shop_id=str(command.shop_id),
            medicine_id=str(command.medicine_id),
            batch_number=command.batch_number,
            quantity=command.quantity,
        )
        return str(lot.id)

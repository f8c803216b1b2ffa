"""Lot maintenance: details, alert settings and manual condition flags."""

import json

from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from medstock.domain import medstock
from medstock.lot.lot import InventoryLot, Pricing, StorageLocation, Supplier


@medstock.command(part_of="InventoryLot")
class UpdateLotDetails:
    """Replace pricing, supplier, storage location or unit. Omitted parts are kept."""

    lot_id = Identifier(required=True)
    cost_price = Float()
    selling_price = Float()
    mrp = Float()
    discount_percentage = Float()
    tax_percentage = Float()
    supplier = Text()  # JSON: {name, contact, invoice_number}
    location = Text()  # JSON: {rack, shelf, bin}
    unit = String(max_length=20)
    updated_by = Identifier()
    expected_revision = Integer()


@medstock.command(part_of="InventoryLot")
class UpdateAlertSettings:
    lot_id = Identifier(required=True)
    low_stock_threshold = Integer(min_value=0)
    expiry_alert_days = Integer(min_value=0)
    updated_by = Identifier()


@medstock.command(part_of="InventoryLot")
class MarkLotCondition:
    lot_id = Identifier(required=True)
    condition = String(required=True, max_length=20)  # damaged | returned
    reason = String(required=True, max_length=200)
    performed_by = Identifier()


@medstock.command(part_of="InventoryLot")
class RestoreLot:
    lot_id = Identifier(required=True)
    performed_by = Identifier()


def _merged_pricing(current: Pricing, command: UpdateLotDetails) -> Pricing | None:
    fields = ("cost_price", "selling_price", "mrp", "discount_percentage", "tax_percentage")
    if all(getattr(command, name) is None for name in fields):
        return None
    return Pricing(
        **{
            name: getattr(command, name) if getattr(command, name) is not None else getattr(current, name)
            for name in fields
        }
    )


@medstock.command_handler(part_of=InventoryLot)
class LotMaintenanceHandler:
    @handle(UpdateLotDetails)
    def update_lot_details(self, command):
        repo = current_domain.repository_for(InventoryLot)
        lot = repo.get(command.lot_id)
        lot.check_revision(command.expected_revision)

        supplier = json.loads(command.supplier) if command.supplier else None
        location = json.loads(command.location) if command.location else None

        lot.update_details(
            pricing=_merged_pricing(lot.pricing, command),
            supplier=Supplier(**supplier) if supplier else None,
            location=StorageLocation(**location) if location else None,
            unit=command.unit,
            updated_by=command.updated_by,
        )
        repo.add(lot)
        return str(lot.id)

    @handle(UpdateAlertSettings)
    def update_alert_settings(self, command):
        repo = current_domain.repository_for(InventoryLot)
        lot = repo.get(command.lot_id)
        lot.update_alert_settings(
            low_stock_threshold=command.low_stock_threshold,
            expiry_alert_days=command.expiry_alert_days,
            updated_by=command.updated_by,
        )
        repo.add(lot)
        return str(lot.id)

    @handle(MarkLotCondition)
    def mark_lot_condition(self, command):
        repo = current_domain.repository_for(InventoryLot)
        lot = repo.get(command.lot_id)
        lot.mark_condition(command.condition, command.reason, performed_by=command.performed_by)
        repo.add(lot)
        return str(lot.id)

    @handle(RestoreLot)
    def restore_lot(self, command):
        repo = current_domain.repository_for(InventoryLot)
        lot = repo.get(command.lot_id)
        lot.restore(performed_by=command.performed_by)
        repo.add(lot)
        return str(lot.id)

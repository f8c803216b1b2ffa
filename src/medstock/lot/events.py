"""Domain events for the InventoryLot aggregate.

Raised inside the aggregate and dispatched after the unit of work commits.
They feed the LotStock projection and the egress publisher, which turns them
into ``inventory.*`` messages for the rest of the marketplace.
"""

from protean.fields import Boolean, Date, DateTime, Float, Identifier, Integer, String, Text

from medstock.domain import medstock


@medstock.event(part_of="InventoryLot")
class LotReceived:
    """A new lot was created from its first stock receipt."""

    __version__ = 1

    lot_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    medicine_id = Identifier(required=True)
    batch_number = String(required=True)
    quantity = Integer(required=True)
    reserved_quantity = Integer(default=0)
    available_quantity = Integer(required=True)
    unit = String()
    cost_price = Float(required=True)
    selling_price = Float(required=True)
    mrp = Float(required=True)
    manufacturing_date = Date()
    expiry_date = Date(required=True)
    low_stock_threshold = Integer(required=True)
    expiry_alert_days = Integer(required=True)
    status = String(required=True)
    created_by = Identifier()
    received_at = DateTime(required=True)


@medstock.event(part_of="InventoryLot")
class StockMoved:
    """Quantities changed through a movement or an order lifecycle effect."""

    __version__ = 1

    lot_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    medicine_id = Identifier(required=True)
    batch_number = String(required=True)
    movement_type = String(required=True)
    movement_quantity = Integer(required=True)
    reason = String(required=True)
    reference = String()
    performed_by = Identifier()
    quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    available_quantity = Integer(required=True)
    previous_status = String()
    status = String(required=True)
    revision = Integer()
    moved_at = DateTime(required=True)


@medstock.event(part_of="InventoryLot")
class LotDetailsUpdated:
    """Pricing, supplier, location, unit, alert settings or condition changed."""

    __version__ = 1

    lot_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    medicine_id = Identifier(required=True)
    batch_number = String(required=True)
    changes = Text(required=True)  # JSON dict of changed fields
    cost_price = Float()
    selling_price = Float()
    mrp = Float()
    unit = String()
    low_stock_threshold = Integer()
    expiry_alert_days = Integer()
    previous_status = String()
    status = String(required=True)
    updated_by = Identifier()
    updated_at = DateTime(required=True)


@medstock.event(part_of="InventoryLot")
class LotStatusRefreshed:
    """A time-driven re-evaluation changed the lot's status."""

    __version__ = 1

    lot_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    medicine_id = Identifier(required=True)
    batch_number = String(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    refreshed_at = DateTime(required=True)


@medstock.event(part_of="InventoryLot")
class LowStockAlertRaised:
    """Available stock fell to or below the lot's threshold."""

    __version__ = 1

    lot_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    medicine_id = Identifier(required=True)
    batch_number = String(required=True)
    available_quantity = Integer(required=True)
    low_stock_threshold = Integer(required=True)
    status = String(required=True)
    raised_at = DateTime(required=True)


@medstock.event(part_of="InventoryLot")
class ExpiryAlertRaised:
    """The lot is expired or inside its expiry alert window."""

    __version__ = 1

    lot_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    medicine_id = Identifier(required=True)
    batch_number = String(required=True)
    expiry_date = Date(required=True)
    days_to_expiry = Integer(required=True)
    expired = Boolean(default=False)
    quantity = Integer(required=True)
    raised_at = DateTime(required=True)


@medstock.event(part_of="InventoryLot")
class ReconciliationFlagged:
    """An order confirmation could not be matched to reserved stock."""

    __version__ = 1

    lot_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    medicine_id = Identifier(required=True)
    batch_number = String(required=True)
    order_id = Identifier(required=True)
    requested_quantity = Integer(required=True)
    quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    reason = String(required=True)
    flagged_at = DateTime(required=True)

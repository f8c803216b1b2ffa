"""LotStock: denormalized per-lot read model for shop dashboards and reports."""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import Date, DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from medstock.domain import medstock
from medstock.lot.events import LotDetailsUpdated, LotReceived, LotStatusRefreshed, StockMoved
from medstock.lot.lot import InventoryLot


@medstock.projection
class LotStock:
    lot_id = Identifier(identifier=True, required=True)
    shop_id = Identifier(required=True)
    medicine_id = Identifier(required=True)
    batch_number = String(required=True, max_length=50)
    quantity = Integer(default=0)
    reserved_quantity = Integer(default=0)
    available_quantity = Integer(default=0)
    unit = String(max_length=20)
    status = String(max_length=20)
    cost_price = Float()
    selling_price = Float()
    mrp = Float()
    expiry_date = Date()
    low_stock_threshold = Integer()
    expiry_alert_days = Integer()
    created_at = DateTime()
    updated_at = DateTime()


@medstock.projector(projector_for=LotStock, aggregates=[InventoryLot])
class LotStockProjector:
    @on(LotReceived)
    def on_lot_received(self, event: LotReceived):
        current_domain.repository_for(LotStock).add(
            LotStock(
                lot_id=event.lot_id,
                shop_id=event.shop_id,
                medicine_id=event.medicine_id,
                batch_number=event.batch_number,
                quantity=event.quantity,
                reserved_quantity=event.reserved_quantity,
                available_quantity=event.available_quantity,
                unit=event.unit,
                status=event.status,
                cost_price=event.cost_price,
                selling_price=event.selling_price,
                mrp=event.mrp,
                expiry_date=event.expiry_date,
                low_stock_threshold=event.low_stock_threshold,
                expiry_alert_days=event.expiry_alert_days,
                created_at=event.received_at,
                updated_at=event.received_at,
            )
        )

    @on(StockMoved)
    def on_stock_moved(self, event: StockMoved):
        repo = current_domain.repository_for(LotStock)
        try:
            view = repo.get(event.lot_id)
        except ObjectNotFoundError:
            return

        view.quantity = event.quantity
        view.reserved_quantity = event.reserved_quantity
        view.available_quantity = event.available_quantity
        view.status = event.status
        view.updated_at = event.moved_at
        repo.add(view)

    @on(LotDetailsUpdated)
    def on_lot_details_updated(self, event: LotDetailsUpdated):
        repo = current_domain.repository_for(LotStock)
        try:
            view = repo.get(event.lot_id)
        except ObjectNotFoundError:
            return

        if event.cost_price is not None:
            view.cost_price = event.cost_price
        if event.selling_price is not None:
            view.selling_price = event.selling_price
        if event.mrp is not None:
            view.mrp = event.mrp
        if event.unit:
            view.unit = event.unit
        if event.low_stock_threshold is not None:
            view.low_stock_threshold = event.low_stock_threshold
        if event.expiry_alert_days is not None:
            view.expiry_alert_days = event.expiry_alert_days
        view.status = event.status
        view.updated_at = event.updated_at
        repo.add(view)

    @on(LotStatusRefreshed)
    def on_lot_status_refreshed(self, event: LotStatusRefreshed):
        repo = current_domain.repository_for(LotStock)
        try:
            view = repo.get(event.lot_id)
        except ObjectNotFoundError:
            return

        view.status = event.status
        view.updated_at = event.refreshed_at
        repo.add(view)

"""FastAPI routes for the medstock domain: lots, shop reports and order effects.

Each route translates between Pydantic schemas (external contract) and
Protean commands (internal domain concepts). Lot writes are dispatched under
the lot's lock; the caller's identity comes from the ``X-User-Id`` and
``X-User-Role`` headers set by the gateway.
"""

import json

from fastapi import APIRouter, Header, HTTPException, Query
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from medstock.api.schemas import (
    AddLotRequest,
    BulkUpdateRequest,
    BulkUpdateResponse,
    InventorySummaryResponse,
    LotListResponse,
    LotResponse,
    LotSummaryResponse,
    MarkConditionRequest,
    MovementRequest,
    OrderProcessingResponse,
    ShopAlertsResponse,
    SweepRequest,
    SweepResponse,
    UpdateAlertSettingsRequest,
    UpdateLotRequest,
)
from medstock.directory import get_shop_directory
from medstock.lot.bulk import bulk_update_stock
from medstock.lot.expiry import SweepLotStatuses
from medstock.lot.lookup import get_lot, process_locked
from medstock.lot.lot import InventoryLot, lot_key_for
from medstock.lot.maintenance import MarkLotCondition, RestoreLot, UpdateAlertSettings, UpdateLotDetails
from medstock.lot.movement import RecordMovement
from medstock.lot.receiving import ReceiveLot
from medstock.projections.lot_stock import LotStock
from medstock.reporting.queries import effective_status, inventory_summary, list_shop_lots, shop_alerts
from medstock.reservation.coordinator import ReservationCoordinator

ADMIN_ROLE = "admin"
SYSTEM_ROLES = {"admin", "system"}


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------
class Actor:
    def __init__(self, user_id: str | None, role: str | None):
        self.user_id = user_id
        self.role = (role or "").lower()

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def _actor(user_id: str | None, role: str | None) -> Actor:
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return Actor(user_id, role)


def authorize_shop(shop_id: str, actor: Actor) -> None:
    """Admins may act on any shop; everyone else only on shops they own."""
    if actor.is_admin:
        return
    directory = get_shop_directory()
    if not directory.shop_exists(shop_id):
        raise ObjectNotFoundError({"shop_id": [f"Shop {shop_id} does not exist"]})
    if not directory.is_owner(shop_id, actor.user_id):
        raise HTTPException(status_code=403, detail="Not allowed to manage this shop's inventory")


def _authorized_lot(lot_id: str, actor: Actor) -> InventoryLot:
    lot = get_lot(lot_id)
    authorize_shop(str(lot.shop_id), actor)
    return lot


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def lot_response(lot: InventoryLot) -> LotResponse:
    pricing = lot.pricing
    movements = sorted(lot.movements or [], key=lambda movement: movement.timestamp)
    return LotResponse(
        lot_id=str(lot.id),
        shop_id=str(lot.shop_id),
        medicine_id=str(lot.medicine_id),
        batch_number=lot.batch_number,
        quantity=lot.quantity,
        reserved_quantity=lot.reserved_quantity,
        available_quantity=lot.available_quantity,
        unit=lot.unit,
        status=lot.status,
        revision=lot.revision,
        pricing={
            "cost_price": pricing.cost_price,
            "selling_price": pricing.selling_price,
            "mrp": pricing.mrp,
            "discount_percentage": pricing.discount_percentage or 0.0,
            "tax_percentage": pricing.tax_percentage or 0.0,
            "discounted_price": pricing.discounted_price,
            "final_price": pricing.final_price,
            "profit_margin": pricing.profit_margin,
        },
        supplier=lot.supplier.to_dict() if lot.supplier else None,
        location=lot.location.to_dict() if lot.location else None,
        alerts={
            "low_stock_threshold": lot.alerts.low_stock_threshold,
            "expiry_alert_days": lot.alerts.expiry_alert_days,
        },
        manufacturing_date=lot.manufacturing_date,
        expiry_date=lot.expiry_date,
        created_by=str(lot.created_by) if lot.created_by else None,
        created_at=lot.created_at,
        updated_at=lot.updated_at,
        last_stock_update=lot.last_stock_update,
        movements=[
            {
                "movement_type": movement.movement_type,
                "quantity": movement.quantity,
                "reason": movement.reason,
                "reference": movement.reference,
                "performed_by": str(movement.performed_by) if movement.performed_by else None,
                "notes": movement.notes,
                "timestamp": movement.timestamp,
                "quantity_after": movement.quantity_after,
                "reserved_after": movement.reserved_after,
            }
            for movement in movements
        ],
    )


def lot_summary(view: LotStock) -> LotSummaryResponse:
    return LotSummaryResponse(
        lot_id=str(view.lot_id),
        medicine_id=str(view.medicine_id),
        batch_number=view.batch_number,
        quantity=view.quantity,
        reserved_quantity=view.reserved_quantity,
        available_quantity=view.available_quantity,
        unit=view.unit,
        status=effective_status(view),
        selling_price=view.selling_price,
        expiry_date=view.expiry_date,
        updated_at=view.updated_at,
    )


# ---------------------------------------------------------------------------
# Lot Router
# ---------------------------------------------------------------------------
inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


@inventory_router.post("", status_code=201, response_model=LotResponse)
async def add_lot(
    body: AddLotRequest,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> LotResponse:
    """Receive a new batch of a medicine into a shop."""
    actor = _actor(x_user_id, x_user_role)
    authorize_shop(body.shop_id, actor)

    alerts = body.alerts
    command = ReceiveLot(
        shop_id=body.shop_id,
        medicine_id=body.medicine_id,
        batch_number=body.batch_number,
        quantity=body.quantity,
        cost_price=body.pricing.cost_price,
        selling_price=body.pricing.selling_price,
        mrp=body.pricing.mrp,
        discount_percentage=body.pricing.discount_percentage,
        tax_percentage=body.pricing.tax_percentage,
        manufacturing_date=body.manufacturing_date,
        expiry_date=body.expiry_date,
        low_stock_threshold=alerts.low_stock_threshold if alerts else None,
        expiry_alert_days=alerts.expiry_alert_days if alerts else None,
        unit=body.unit,
        supplier=json.dumps(body.supplier.model_dump()) if body.supplier else None,
        location=json.dumps(body.location.model_dump()) if body.location else None,
        created_by=actor.user_id,
    )
    lot_id = process_locked(lot_key_for(body.shop_id, body.medicine_id, body.batch_number), command)
    return lot_response(get_lot(lot_id))


@inventory_router.post("/bulk-update", response_model=BulkUpdateResponse)
async def bulk_update(
    body: BulkUpdateRequest,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> BulkUpdateResponse:
    """Set on-hand counts (and optionally prices) for up to 50 lots of a shop."""
    actor = _actor(x_user_id, x_user_role)
    authorize_shop(body.shop_id, actor)
    result = bulk_update_stock(
        body.shop_id,
        [item.model_dump() for item in body.items],
        performed_by=actor.user_id,
    )
    return BulkUpdateResponse(**result)


@inventory_router.get("/{lot_id}", response_model=LotResponse)
async def get_lot_detail(
    lot_id: str,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> LotResponse:
    lot = _authorized_lot(lot_id, _actor(x_user_id, x_user_role))
    return lot_response(lot)


@inventory_router.post("/{lot_id}/movements", response_model=LotResponse)
async def record_movement(
    lot_id: str,
    body: MovementRequest,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> LotResponse:
    """Record a stock movement: in, out, return, or an absolute adjustment."""
    actor = _actor(x_user_id, x_user_role)
    lot = _authorized_lot(lot_id, actor)
    command = RecordMovement(
        lot_id=lot_id,
        movement_type=body.movement_type,
        quantity=body.quantity,
        reason=body.reason,
        performed_by=actor.user_id,
        reference=body.reference,
        notes=body.notes,
        expected_revision=body.expected_revision,
    )
    process_locked(lot.lot_key, command)
    return lot_response(get_lot(lot_id))


@inventory_router.put("/{lot_id}", response_model=LotResponse)
async def update_lot(
    lot_id: str,
    body: UpdateLotRequest,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> LotResponse:
    """Update pricing, supplier, storage location or unit."""
    actor = _actor(x_user_id, x_user_role)
    lot = _authorized_lot(lot_id, actor)
    command = UpdateLotDetails(
        lot_id=lot_id,
        cost_price=body.cost_price,
        selling_price=body.selling_price,
        mrp=body.mrp,
        discount_percentage=body.discount_percentage,
        tax_percentage=body.tax_percentage,
        supplier=json.dumps(body.supplier.model_dump()) if body.supplier else None,
        location=json.dumps(body.location.model_dump()) if body.location else None,
        unit=body.unit,
        updated_by=actor.user_id,
        expected_revision=body.expected_revision,
    )
    process_locked(lot.lot_key, command)
    return lot_response(get_lot(lot_id))


@inventory_router.put("/{lot_id}/alerts", response_model=LotResponse)
async def update_alert_settings(
    lot_id: str,
    body: UpdateAlertSettingsRequest,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> LotResponse:
    actor = _actor(x_user_id, x_user_role)
    lot = _authorized_lot(lot_id, actor)
    command = UpdateAlertSettings(
        lot_id=lot_id,
        low_stock_threshold=body.low_stock_threshold,
        expiry_alert_days=body.expiry_alert_days,
        updated_by=actor.user_id,
    )
    process_locked(lot.lot_key, command)
    return lot_response(get_lot(lot_id))


@inventory_router.put("/{lot_id}/condition", response_model=LotResponse)
async def mark_condition(
    lot_id: str,
    body: MarkConditionRequest,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> LotResponse:
    """Flag a lot as damaged or returned."""
    actor = _actor(x_user_id, x_user_role)
    lot = _authorized_lot(lot_id, actor)
    command = MarkLotCondition(
        lot_id=lot_id,
        condition=body.condition,
        reason=body.reason,
        performed_by=actor.user_id,
    )
    process_locked(lot.lot_key, command)
    return lot_response(get_lot(lot_id))


@inventory_router.put("/{lot_id}/restore", response_model=LotResponse)
async def restore_lot(
    lot_id: str,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> LotResponse:
    """Clear a damaged/returned flag. Administrators only."""
    actor = _actor(x_user_id, x_user_role)
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="Only administrators can restore a flagged lot")
    lot = get_lot(lot_id)
    process_locked(lot.lot_key, RestoreLot(lot_id=lot_id, performed_by=actor.user_id))
    return lot_response(get_lot(lot_id))


# ---------------------------------------------------------------------------
# Shop reports
# ---------------------------------------------------------------------------
@inventory_router.get("/shops/{shop_id}", response_model=LotListResponse)
async def list_lots(
    shop_id: str,
    status: str | None = None,
    medicine_id: str | None = None,
    low_stock_only: bool = False,
    expiring_within_days: int | None = Query(default=None, ge=1, le=365),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    sort_by: str = "updated_at",
    sort_order: str = "desc",
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> LotListResponse:
    authorize_shop(shop_id, _actor(x_user_id, x_user_role))
    page = list_shop_lots(
        shop_id,
        status=status,
        medicine_id=medicine_id,
        low_stock_only=low_stock_only,
        expiring_within_days=expiring_within_days,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return LotListResponse(
        items=[lot_summary(view) for view in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
    )


@inventory_router.get("/shops/{shop_id}/alerts", response_model=ShopAlertsResponse)
async def get_shop_alerts(
    shop_id: str,
    days: int = Query(default=30, ge=1, le=365),
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> ShopAlertsResponse:
    authorize_shop(shop_id, _actor(x_user_id, x_user_role))
    alerts = shop_alerts(shop_id, days=days)
    return ShopAlertsResponse(
        low_stock=[lot_summary(view) for view in alerts["low_stock"]],
        expiring=[lot_summary(view) for view in alerts["expiring"]],
        expired=[lot_summary(view) for view in alerts["expired"]],
        counts=alerts["counts"],
    )


@inventory_router.get("/shops/{shop_id}/summary", response_model=InventorySummaryResponse)
async def get_inventory_summary(
    shop_id: str,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> InventorySummaryResponse:
    authorize_shop(shop_id, _actor(x_user_id, x_user_role))
    return InventorySummaryResponse(**inventory_summary(shop_id))


# ---------------------------------------------------------------------------
# Order lifecycle (direct integration path)
# ---------------------------------------------------------------------------
@inventory_router.post("/orders/{event_kind}", response_model=OrderProcessingResponse)
async def apply_order_event(
    event_kind: str,
    body: dict,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> OrderProcessingResponse:
    """Apply placed/confirmed/cancelled/delivered to every line of an order."""
    actor = _actor(x_user_id, x_user_role)
    if actor.role not in SYSTEM_ROLES:
        raise HTTPException(status_code=403, detail="Order events can only be applied by the platform")
    result = ReservationCoordinator().process(event_kind, body)
    return OrderProcessingResponse(**result.to_dict())


# ---------------------------------------------------------------------------
# Maintenance Router
# ---------------------------------------------------------------------------
maintenance_router = APIRouter(prefix="/inventory/maintenance", tags=["inventory-maintenance"])


@maintenance_router.post("/sweep", response_model=SweepResponse)
async def sweep_statuses(
    body: SweepRequest,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> SweepResponse:
    """Re-evaluate lot statuses so expiry takes effect. Triggered by a scheduler."""
    actor = _actor(x_user_id, x_user_role)
    if actor.role not in SYSTEM_ROLES:
        raise HTTPException(status_code=403, detail="Maintenance is restricted to the platform")
    result = current_domain.process(SweepLotStatuses(shop_id=body.shop_id), asynchronous=False)
    return SweepResponse(**result)

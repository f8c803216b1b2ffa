"""InventoryLot aggregate (CQRS): the core of the medstock domain.

One lot holds the stock of a single medicine batch at a single shop. The
natural key ``(shop_id, medicine_id, batch_number)`` is unique.

Stock Level Model:
    quantity:            Physical on-hand count
    reserved_quantity:   Held for placed orders that are not yet confirmed
    available_quantity:  max(0, quantity - reserved_quantity), stored for queries

Every mutation runs inside ``atomic_change`` so the availability invariant is
checked once on the final state, appends a Movement row to the audit trail,
bumps ``revision`` and re-derives the status through the alert evaluator.
Alerts are deduplicated per kind with a cooldown window.
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Date,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from medstock.domain import medstock
from medstock.lot.alerts import MANUAL_STATUSES, AlertEvaluation, LotStatus, alert_due, evaluate
from medstock.lot.errors import InsufficientStock, StaleLot
from medstock.lot.events import (
    ExpiryAlertRaised,
    LotDetailsUpdated,
    LotReceived,
    LotStatusRefreshed,
    LowStockAlertRaised,
    ReconciliationFlagged,
    StockMoved,
)
from medstock.utils.settings import get_setting


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class StockUnit(Enum):
    TABLETS = "tablets"
    CAPSULES = "capsules"
    BOTTLES = "bottles"
    TUBES = "tubes"
    PACKS = "packs"
    STRIPS = "strips"
    VIALS = "vials"
    PIECES = "pieces"


class MovementType(Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"
    RETURN = "return"


class MovementReason(Enum):
    PURCHASE = "purchase"
    SALE = "sale"
    DAMAGE = "damage"
    EXPIRY = "expiry"
    CORRECTION = "correction"
    TRANSFER = "transfer"
    CUSTOMER_RETURN = "customer-return"
    INITIAL_STOCK = "initial-stock"
    ORDER_RESERVATION = "order_reservation"
    ORDER_CONFIRMED = "order_confirmed"
    ORDER_CANCELLED = "order_cancelled"


# Reasons staff may record by hand; the rest are written by the engine itself
MANUAL_REASONS = {
    MovementReason.PURCHASE.value,
    MovementReason.SALE.value,
    MovementReason.DAMAGE.value,
    MovementReason.EXPIRY.value,
    MovementReason.CORRECTION.value,
    MovementReason.TRANSFER.value,
    MovementReason.CUSTOMER_RETURN.value,
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@medstock.value_object(part_of="InventoryLot")
class Pricing:
    """Per-unit prices of a batch with simple derived figures."""

    cost_price = Float(required=True)
    selling_price = Float(required=True)
    mrp = Float(required=True)
    discount_percentage = Float(default=0.0, min_value=0.0, max_value=100.0)
    tax_percentage = Float(default=0.0, min_value=0.0, max_value=100.0)

    @invariant.post
    def prices_must_be_positive(self):
        for name in ("cost_price", "selling_price", "mrp"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValidationError({name: ["Price must be greater than zero"]})

    @invariant.post
    def selling_price_cannot_exceed_mrp(self):
        if self.selling_price is not None and self.mrp is not None and self.selling_price > self.mrp:
            raise ValidationError({"selling_price": ["Selling price cannot exceed MRP"]})

    @property
    def discounted_price(self) -> float:
        return round(self.selling_price * (1 - (self.discount_percentage or 0) / 100), 2)

    @property
    def final_price(self) -> float:
        return round(self.discounted_price * (1 + (self.tax_percentage or 0) / 100), 2)

    @property
    def profit_margin(self) -> float:
        return round((self.selling_price - self.cost_price) / self.cost_price * 100, 2)


@medstock.value_object(part_of="InventoryLot")
class AlertSettings:
    """Alert thresholds plus the timestamps used for cooldown dedupe."""

    low_stock_threshold = Integer(default=10, min_value=0)
    expiry_alert_days = Integer(default=30, min_value=0)
    last_low_stock_alert = DateTime()
    last_expiry_alert = DateTime()


@medstock.value_object(part_of="InventoryLot")
class Supplier:
    name = String(max_length=200)
    contact = String(max_length=100)
    invoice_number = String(max_length=100)


@medstock.value_object(part_of="InventoryLot")
class StorageLocation:
    rack = String(max_length=20)
    shelf = String(max_length=20)
    bin = String(max_length=20)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@medstock.entity(part_of="InventoryLot")
class Movement:
    """One append-only row of the lot's stock audit trail.

    ``quantity_after`` and ``reserved_after`` snapshot the levels right after
    the movement so the trail can be replayed offline.
    """

    movement_type = String(choices=MovementType, required=True)
    quantity = Integer(required=True, min_value=0)
    reason = String(choices=MovementReason, required=True)
    reference = String(max_length=100)
    performed_by = Identifier()
    notes = String(max_length=200)
    timestamp = DateTime(required=True)
    quantity_after = Integer()
    reserved_after = Integer()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@medstock.aggregate
class InventoryLot:
    """Stock of one medicine batch held by one shop."""

    shop_id = Identifier(required=True)
    medicine_id = Identifier(required=True)
    batch_number = String(required=True, max_length=50)
    lot_key = String(required=True, max_length=255, unique=True)

    quantity = Integer(default=0)
    reserved_quantity = Integer(default=0)
    available_quantity = Integer(default=0)
    unit = String(choices=StockUnit, default=StockUnit.PIECES.value)

    pricing = ValueObject(Pricing, required=True)
    supplier = ValueObject(Supplier)
    location = ValueObject(StorageLocation)
    alerts = ValueObject(AlertSettings)

    manufacturing_date = Date(required=True)
    expiry_date = Date(required=True)
    status = String(choices=LotStatus, default=LotStatus.ACTIVE.value)

    movements = HasMany(Movement)

    revision = Integer(default=1)
    created_by = Identifier()
    last_stock_update = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def quantities_cannot_be_negative(self):
        if self.quantity is not None and self.quantity < 0:
            raise ValidationError({"quantity": ["On-hand quantity cannot be negative"]})
        if self.reserved_quantity is not None and self.reserved_quantity < 0:
            raise ValidationError({"reserved_quantity": ["Reserved quantity cannot be negative"]})

    @invariant.post
    def available_matches_on_hand_minus_reserved(self):
        if self.quantity is None or self.reserved_quantity is None:
            return
        expected = max(0, self.quantity - self.reserved_quantity)
        if self.available_quantity != expected:
            raise ValidationError(
                {"available_quantity": [f"Available quantity must be {expected}, got {self.available_quantity}"]}
            )

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def receive(
        cls,
        shop_id,
        medicine_id,
        batch_number,
        quantity,
        pricing,
        manufacturing_date,
        expiry_date,
        alerts=None,
        unit=None,
        supplier=None,
        location=None,
        created_by=None,
    ):
        """Create a lot from its first stock receipt."""
        if quantity is None or quantity < 0:
            raise ValidationError({"quantity": ["Quantity cannot be negative"]})
        if manufacturing_date and expiry_date and expiry_date <= manufacturing_date:
            raise ValidationError({"expiry_date": ["Expiry date must be after manufacturing date"]})

        if alerts is None:
            alerts = AlertSettings(
                low_stock_threshold=get_setting("default_low_stock_threshold"),
                expiry_alert_days=get_setting("default_expiry_alert_days"),
            )

        now = datetime.now(UTC)
        evaluation = evaluate(
            quantity,
            quantity,
            expiry_date,
            alerts.low_stock_threshold,
            alerts.expiry_alert_days,
        )

        lot = cls(
            shop_id=shop_id,
            medicine_id=medicine_id,
            batch_number=batch_number,
            lot_key=lot_key_for(shop_id, medicine_id, batch_number),
            quantity=quantity,
            reserved_quantity=0,
            available_quantity=quantity,
            unit=unit or StockUnit.PIECES.value,
            pricing=pricing,
            supplier=supplier,
            location=location,
            alerts=alerts,
            manufacturing_date=manufacturing_date,
            expiry_date=expiry_date,
            status=evaluation.status,
            revision=1,
            created_by=created_by,
            last_stock_update=now,
            created_at=now,
            updated_at=now,
        )
        lot.add_movements(
            Movement(
                movement_type=MovementType.IN.value,
                quantity=quantity,
                reason=MovementReason.INITIAL_STOCK.value,
                performed_by=created_by,
                notes="Initial stock",
                timestamp=now,
                quantity_after=quantity,
                reserved_after=0,
            )
        )

        lot.raise_(
            LotReceived(
                lot_id=str(lot.id),
                shop_id=str(shop_id),
                medicine_id=str(medicine_id),
                batch_number=batch_number,
                quantity=quantity,
                reserved_quantity=0,
                available_quantity=quantity,
                unit=lot.unit,
                cost_price=pricing.cost_price,
                selling_price=pricing.selling_price,
                mrp=pricing.mrp,
                manufacturing_date=manufacturing_date,
                expiry_date=expiry_date,
                low_stock_threshold=alerts.low_stock_threshold,
                expiry_alert_days=alerts.expiry_alert_days,
                status=lot.status,
                created_by=str(created_by) if created_by else None,
                received_at=now,
            )
        )
        lot._raise_due_alerts(evaluation, now)
        return lot

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def check_revision(self, expected_revision):
        """Fail with StaleLot when the caller worked from an older snapshot."""
        if expected_revision is not None and expected_revision != self.revision:
            raise StaleLot(
                {"revision": [f"Lot was modified: expected revision {expected_revision}, found {self.revision}"]}
            )

    def evaluate_alerts(self, today=None) -> AlertEvaluation:
        return evaluate(
            self.quantity,
            self.available_quantity,
            self.expiry_date,
            self.alerts.low_stock_threshold,
            self.alerts.expiry_alert_days,
            today,
        )

    def _settle(self, now, stock_changed=True) -> AlertEvaluation:
        """Recompute availability and status, stamp the write. Call inside atomic_change."""
        self.available_quantity = max(0, self.quantity - self.reserved_quantity)
        evaluation = self.evaluate_alerts()
        if self.status not in MANUAL_STATUSES:
            self.status = evaluation.status
        self.revision = (self.revision or 0) + 1
        self.updated_at = now
        if stock_changed:
            self.last_stock_update = now
        return evaluation

    def _append_movement(self, movement_type, quantity, reason, now, performed_by=None, reference=None, notes=None):
        movement = Movement(
            movement_type=movement_type,
            quantity=quantity,
            reason=reason,
            reference=reference,
            performed_by=performed_by,
            notes=notes,
            timestamp=now,
            quantity_after=self.quantity,
            reserved_after=self.reserved_quantity,
        )
        self.add_movements(movement)
        return movement

    def _raise_stock_moved(self, movement, previous_status, now):
        self.raise_(
            StockMoved(
                lot_id=str(self.id),
                shop_id=str(self.shop_id),
                medicine_id=str(self.medicine_id),
                batch_number=self.batch_number,
                movement_type=movement.movement_type,
                movement_quantity=movement.quantity,
                reason=movement.reason,
                reference=movement.reference,
                performed_by=str(movement.performed_by) if movement.performed_by else None,
                quantity=self.quantity,
                reserved_quantity=self.reserved_quantity,
                available_quantity=self.available_quantity,
                previous_status=previous_status,
                status=self.status,
                revision=self.revision,
                moved_at=now,
            )
        )

    def _flag_reconciliation(self, order_id, quantity, problem, now):
        self.raise_(
            ReconciliationFlagged(
                lot_id=str(self.id),
                shop_id=str(self.shop_id),
                medicine_id=str(self.medicine_id),
                batch_number=self.batch_number,
                order_id=str(order_id),
                requested_quantity=quantity,
                quantity=self.quantity,
                reserved_quantity=self.reserved_quantity,
                reason=problem,
                flagged_at=now,
            )
        )

    def _cooldown(self, setting_name) -> timedelta:
        return timedelta(hours=get_setting(setting_name))

    def _raise_due_alerts(self, evaluation, now):
        """Emit low-stock and expiry alerts unless one was sent within the cooldown."""
        if self.status in MANUAL_STATUSES:
            return

        low_due = evaluation.low_stock and alert_due(
            self.alerts.last_low_stock_alert, now, self._cooldown("low_stock_alert_cooldown_hours")
        )
        expiry_due = (evaluation.expiring_soon or evaluation.expired) and alert_due(
            self.alerts.last_expiry_alert, now, self._cooldown("expiry_alert_cooldown_hours")
        )
        if not (low_due or expiry_due):
            return

        self.alerts = AlertSettings(
            low_stock_threshold=self.alerts.low_stock_threshold,
            expiry_alert_days=self.alerts.expiry_alert_days,
            last_low_stock_alert=now if low_due else self.alerts.last_low_stock_alert,
            last_expiry_alert=now if expiry_due else self.alerts.last_expiry_alert,
        )

        if low_due:
            self.raise_(
                LowStockAlertRaised(
                    lot_id=str(self.id),
                    shop_id=str(self.shop_id),
                    medicine_id=str(self.medicine_id),
                    batch_number=self.batch_number,
                    available_quantity=self.available_quantity,
                    low_stock_threshold=self.alerts.low_stock_threshold,
                    status=self.status,
                    raised_at=now,
                )
            )
        if expiry_due:
            self.raise_(
                ExpiryAlertRaised(
                    lot_id=str(self.id),
                    shop_id=str(self.shop_id),
                    medicine_id=str(self.medicine_id),
                    batch_number=self.batch_number,
                    expiry_date=self.expiry_date,
                    days_to_expiry=(self.expiry_date - now.date()).days,
                    expired=evaluation.expired,
                    quantity=self.quantity,
                    raised_at=now,
                )
            )

    # -------------------------------------------------------------------
    # Stock movements
    # -------------------------------------------------------------------
    def apply_movement(self, movement_type, quantity, reason, performed_by=None, reference=None, notes=None):
        """Apply a manual stock movement.

        ``in`` and ``return`` add stock, ``out`` removes it and ``adjustment``
        sets the on-hand quantity to exactly ``quantity``.
        """
        try:
            kind = MovementType(movement_type)
        except ValueError:
            raise ValidationError({"movement_type": [f"Unknown movement type: {movement_type}"]}) from None

        if reason not in MANUAL_REASONS:
            raise ValidationError({"reason": [f"'{reason}' is not a valid manual movement reason"]})

        if kind == MovementType.ADJUSTMENT:
            if quantity is None or quantity < 0:
                raise ValidationError({"quantity": ["Adjusted quantity cannot be negative"]})
            new_quantity = quantity
        else:
            if quantity is None or quantity < 1:
                raise ValidationError({"quantity": ["Quantity must be at least 1"]})
            if kind == MovementType.OUT:
                new_quantity = self.quantity - quantity
                if new_quantity < 0:
                    raise InsufficientStock(
                        {"quantity": [f"Insufficient stock: {self.quantity} on hand, {quantity} requested"]}
                    )
            else:
                new_quantity = self.quantity + quantity

        now = datetime.now(UTC)
        previous_status = self.status

        with atomic_change(self):
            self.quantity = new_quantity
            evaluation = self._settle(now)
            movement = self._append_movement(kind.value, quantity, reason, now, performed_by, reference, notes)

        self._raise_stock_moved(movement, previous_status, now)
        self._raise_due_alerts(evaluation, now)

    # -------------------------------------------------------------------
    # Order lifecycle effects
    # -------------------------------------------------------------------
    def reserve(self, order_id, quantity, performed_by=None):
        """Hold stock for a placed order. On-hand is unchanged."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if self.available_quantity < quantity:
            raise InsufficientStock(
                {"quantity": [f"Insufficient stock: {self.available_quantity} available, {quantity} requested"]}
            )

        now = datetime.now(UTC)
        previous_status = self.status

        with atomic_change(self):
            self.reserved_quantity = self.reserved_quantity + quantity
            evaluation = self._settle(now)
            movement = self._append_movement(
                MovementType.OUT.value,
                quantity,
                MovementReason.ORDER_RESERVATION.value,
                now,
                performed_by=performed_by,
                reference=str(order_id),
                notes=f"Reserved {quantity} for order",
            )

        self._raise_stock_moved(movement, previous_status, now)
        self._raise_due_alerts(evaluation, now)

    def commit_reservation(self, order_id, quantity, reservation_recorded=True, performed_by=None) -> bool:
        """Turn reserved stock into a sale when the order is confirmed.

        Returns False and flags the lot for reconciliation, without touching
        any quantity, when the confirmation cannot be matched to reserved
        stock.
        """
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        problem = None
        if not reservation_recorded:
            problem = "No reservation was recorded for this order line"
        elif self.reserved_quantity < quantity:
            problem = f"Reserved stock {self.reserved_quantity} is below confirmed quantity {quantity}"
        elif self.quantity < quantity:
            problem = f"On-hand stock {self.quantity} is below confirmed quantity {quantity}"

        now = datetime.now(UTC)

        if problem:
            self._flag_reconciliation(order_id, quantity, problem, now)
            return False

        previous_status = self.status

        with atomic_change(self):
            self.reserved_quantity = self.reserved_quantity - quantity
            self.quantity = self.quantity - quantity
            evaluation = self._settle(now)
            movement = self._append_movement(
                MovementType.OUT.value,
                quantity,
                MovementReason.ORDER_CONFIRMED.value,
                now,
                performed_by=performed_by,
                reference=str(order_id),
                notes=f"Confirmed sale of {quantity}",
            )

        self._raise_stock_moved(movement, previous_status, now)
        self._raise_due_alerts(evaluation, now)
        return True

    def release_reservation(self, order_id, quantity, reservation_held=True, performed_by=None) -> bool:
        """Give reserved stock back when an order is cancelled.

        The reserved count is clamped at zero and the movement records the
        current on-hand quantity. When the order line holds no reservation
        (its placement failed or it was already confirmed) nothing is released;
        the lot is flagged for reconciliation and False is returned.
        """
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = datetime.now(UTC)
        if not reservation_held:
            self._flag_reconciliation(order_id, quantity, "No active reservation is recorded for this order line", now)
            return False

        previous_status = self.status
        released = min(self.reserved_quantity, quantity)

        with atomic_change(self):
            self.reserved_quantity = max(0, self.reserved_quantity - quantity)
            evaluation = self._settle(now)
            movement = self._append_movement(
                MovementType.ADJUSTMENT.value,
                self.quantity,
                MovementReason.ORDER_CANCELLED.value,
                now,
                performed_by=performed_by,
                reference=str(order_id),
                notes=f"Released {released} of {quantity} reserved for cancelled order",
            )

        self._raise_stock_moved(movement, previous_status, now)
        self._raise_due_alerts(evaluation, now)
        return True

    def review_after_delivery(self):
        """Re-check status and alerts after an order is delivered."""
        self.refresh_status()

    # -------------------------------------------------------------------
    # Time-driven status
    # -------------------------------------------------------------------
    def refresh_status(self, today=None) -> bool:
        """Re-derive status without a stock change. Returns True if it changed."""
        now = datetime.now(UTC)
        evaluation = self.evaluate_alerts(today)
        previous_status = self.status
        changed = previous_status not in MANUAL_STATUSES and evaluation.status != previous_status

        if changed:
            with atomic_change(self):
                self.status = evaluation.status
                self.revision = (self.revision or 0) + 1
                self.updated_at = now

            self.raise_(
                LotStatusRefreshed(
                    lot_id=str(self.id),
                    shop_id=str(self.shop_id),
                    medicine_id=str(self.medicine_id),
                    batch_number=self.batch_number,
                    previous_status=previous_status,
                    status=self.status,
                    refreshed_at=now,
                )
            )

        self._raise_due_alerts(evaluation, now)
        return changed

    # -------------------------------------------------------------------
    # Details and settings
    # -------------------------------------------------------------------
    def _raise_details_updated(self, changes, previous_status, updated_by, now):
        self.raise_(
            LotDetailsUpdated(
                lot_id=str(self.id),
                shop_id=str(self.shop_id),
                medicine_id=str(self.medicine_id),
                batch_number=self.batch_number,
                changes=json.dumps(changes, default=str),
                cost_price=self.pricing.cost_price,
                selling_price=self.pricing.selling_price,
                mrp=self.pricing.mrp,
                unit=self.unit,
                low_stock_threshold=self.alerts.low_stock_threshold,
                expiry_alert_days=self.alerts.expiry_alert_days,
                previous_status=previous_status,
                status=self.status,
                updated_by=str(updated_by) if updated_by else None,
                updated_at=now,
            )
        )

    def update_details(self, pricing=None, supplier=None, location=None, unit=None, updated_by=None):
        """Replace pricing, supplier, storage location or unit."""
        changes = {}
        if pricing is not None:
            changes["pricing"] = pricing.to_dict()
        if supplier is not None:
            changes["supplier"] = supplier.to_dict()
        if location is not None:
            changes["location"] = location.to_dict()
        if unit is not None:
            try:
                StockUnit(unit)
            except ValueError:
                raise ValidationError({"unit": [f"Unknown unit: {unit}"]}) from None
            changes["unit"] = unit

        if not changes:
            raise ValidationError({"lot": ["No changes supplied"]})

        now = datetime.now(UTC)
        previous_status = self.status

        with atomic_change(self):
            if pricing is not None:
                self.pricing = pricing
            if supplier is not None:
                self.supplier = supplier
            if location is not None:
                self.location = location
            if unit is not None:
                self.unit = unit
            self._settle(now, stock_changed=False)

        self._raise_details_updated(changes, previous_status, updated_by, now)

    def update_alert_settings(self, low_stock_threshold=None, expiry_alert_days=None, updated_by=None):
        """Change alert thresholds and re-evaluate the lot against them."""
        if low_stock_threshold is None and expiry_alert_days is None:
            raise ValidationError({"alerts": ["No alert settings supplied"]})

        now = datetime.now(UTC)
        previous_status = self.status
        changes = {}
        if low_stock_threshold is not None:
            changes["low_stock_threshold"] = low_stock_threshold
        if expiry_alert_days is not None:
            changes["expiry_alert_days"] = expiry_alert_days

        with atomic_change(self):
            self.alerts = AlertSettings(
                low_stock_threshold=(
                    low_stock_threshold if low_stock_threshold is not None else self.alerts.low_stock_threshold
                ),
                expiry_alert_days=expiry_alert_days if expiry_alert_days is not None else self.alerts.expiry_alert_days,
                last_low_stock_alert=self.alerts.last_low_stock_alert,
                last_expiry_alert=self.alerts.last_expiry_alert,
            )
            evaluation = self._settle(now, stock_changed=False)

        self._raise_details_updated(changes, previous_status, updated_by, now)
        self._raise_due_alerts(evaluation, now)

    def mark_condition(self, condition, reason, performed_by=None):
        """Manually flag the whole lot as damaged or returned."""
        if condition not in MANUAL_STATUSES:
            raise ValidationError({"condition": [f"Condition must be one of {sorted(MANUAL_STATUSES)}"]})
        if not reason:
            raise ValidationError({"reason": ["Reason is required"]})

        now = datetime.now(UTC)
        previous_status = self.status

        with atomic_change(self):
            self.status = condition
            self._settle(now, stock_changed=False)

        self._raise_details_updated({"status": condition, "reason": reason}, previous_status, performed_by, now)

    def restore(self, performed_by=None):
        """Clear a manual damaged/returned flag and return to the derived status."""
        if self.status not in MANUAL_STATUSES:
            raise ValidationError({"status": [f"Lot is not flagged (status is {self.status})"]})

        now = datetime.now(UTC)
        previous_status = self.status

        with atomic_change(self):
            self.status = LotStatus.ACTIVE.value
            evaluation = self._settle(now, stock_changed=False)

        self._raise_details_updated({"status": self.status}, previous_status, performed_by, now)
        self._raise_due_alerts(evaluation, now)


def lot_key_for(shop_id, medicine_id, batch_number) -> str:
    """Natural key of a lot, used for locking and idempotency records."""
    return f"{shop_id}:{medicine_id}:{batch_number}"

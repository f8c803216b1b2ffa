"""Alert evaluation for inventory lots.

Pure functions: given quantities, expiry date and alert settings they derive
the lot status and which alerts apply. Status precedence is fixed:

    expired > out-of-stock > low-stock > active

``damaged`` and ``returned`` are manual overrides owned by the aggregate and
are never produced here.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from enum import Enum


class LotStatus(Enum):
    ACTIVE = "active"
    LOW_STOCK = "low-stock"
    OUT_OF_STOCK = "out-of-stock"
    EXPIRED = "expired"
    DAMAGED = "damaged"
    RETURNED = "returned"


MANUAL_STATUSES = {LotStatus.DAMAGED.value, LotStatus.RETURNED.value}


@dataclass(frozen=True)
class AlertEvaluation:
    status: str
    low_stock: bool
    expiring_soon: bool
    expired: bool


def evaluate(
    quantity: int,
    available_quantity: int,
    expiry_date: date | None,
    low_stock_threshold: int,
    expiry_alert_days: int,
    today: date | None = None,
) -> AlertEvaluation:
    """Derive status and alert flags for a lot snapshot."""
    today = today or datetime.now(UTC).date()

    expired = expiry_date is not None and today > expiry_date
    expiring_soon = expiry_date is not None and expiry_date <= today + timedelta(days=expiry_alert_days or 0)
    low_stock = not expired and available_quantity <= (low_stock_threshold or 0)

    if expired:
        status = LotStatus.EXPIRED.value
    elif quantity == 0:
        status = LotStatus.OUT_OF_STOCK.value
    elif low_stock:
        status = LotStatus.LOW_STOCK.value
    else:
        status = LotStatus.ACTIVE.value

    return AlertEvaluation(
        status=status,
        low_stock=low_stock,
        expiring_soon=expiring_soon,
        expired=expired,
    )


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def alert_due(last_alert_at: datetime | None, now: datetime, cooldown: timedelta) -> bool:
    """True when no alert of this kind was emitted within the cooldown window."""
    if last_alert_at is None:
        return True
    return _as_utc(now) - _as_utc(last_alert_at) >= cooldown

"""Read-only stock queries for shop dashboards.

All queries read the LotStock projection. Time-relative predicates (expired,
expiring soon) are evaluated against ``today`` at query time, so results are
correct even before the status sweep has run.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from medstock.lot.alerts import MANUAL_STATUSES, LotStatus, evaluate
from medstock.projections.lot_stock import LotStock
from medstock.utils.query import fetch_all

SORT_FIELDS = {
    "batch_number",
    "quantity",
    "available_quantity",
    "selling_price",
    "expiry_date",
    "created_at",
    "updated_at",
}
MAX_PAGE_SIZE = 100
MAX_DAYS_AHEAD = 365


@dataclass
class LotPage:
    items: list[LotStock]
    total: int
    limit: int
    offset: int


def _today(today: date | None) -> date:
    return today or datetime.now(UTC).date()


def _validate_days(days: int) -> None:
    if days < 1 or days > MAX_DAYS_AHEAD:
        raise ValidationError({"days": [f"Days must be between 1 and {MAX_DAYS_AHEAD}"]})


def shop_lots(shop_id) -> list[LotStock]:
    return fetch_all(current_domain.repository_for(LotStock)._dao.query.filter(shop_id=str(shop_id)))


def effective_status(view: LotStock, today: date | None = None) -> str:
    """Status as of ``today``; manual flags are kept as stored."""
    if view.status in MANUAL_STATUSES:
        return view.status
    return evaluate(
        view.quantity,
        view.available_quantity,
        view.expiry_date,
        view.low_stock_threshold or 0,
        view.expiry_alert_days or 0,
        _today(today),
    ).status


def is_expired(view: LotStock, today: date | None = None) -> bool:
    return view.expiry_date is not None and _today(today) > view.expiry_date


def is_low_stock(view: LotStock, today: date | None = None) -> bool:
    if view.status in MANUAL_STATUSES or is_expired(view, today):
        return False
    return view.available_quantity <= (view.low_stock_threshold or 0)


def is_expiring(view: LotStock, days: int, today: date | None = None) -> bool:
    today = _today(today)
    if view.status in MANUAL_STATUSES or view.expiry_date is None:
        return False
    return today <= view.expiry_date <= today + timedelta(days=days)


def _sort_key(sort_by: str):
    def key(view):
        value = getattr(view, sort_by)
        # None sorts first ascending
        return (value is not None, value)

    return key


def list_shop_lots(
    shop_id,
    status: str | None = None,
    medicine_id: str | None = None,
    low_stock_only: bool = False,
    expiring_within_days: int | None = None,
    limit: int = 20,
    offset: int = 0,
    sort_by: str = "updated_at",
    sort_order: str = "desc",
    today: date | None = None,
) -> LotPage:
    """Filter, sort and page the lots of a shop."""
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError({"limit": [f"Limit must be between 1 and {MAX_PAGE_SIZE}"]})
    if offset < 0:
        raise ValidationError({"offset": ["Offset cannot be negative"]})
    if sort_by not in SORT_FIELDS:
        raise ValidationError({"sort_by": [f"Cannot sort by {sort_by}"]})
    if sort_order not in ("asc", "desc"):
        raise ValidationError({"sort_order": ["Sort order must be 'asc' or 'desc'"]})
    if status is not None and status not in {member.value for member in LotStatus}:
        raise ValidationError({"status": [f"Unknown status: {status}"]})
    if expiring_within_days is not None:
        _validate_days(expiring_within_days)

    lots = shop_lots(shop_id)
    if medicine_id:
        lots = [view for view in lots if str(view.medicine_id) == str(medicine_id)]
    if status:
        lots = [view for view in lots if effective_status(view, today) == status]
    if low_stock_only:
        lots = [view for view in lots if is_low_stock(view, today)]
    if expiring_within_days is not None:
        lots = [view for view in lots if is_expiring(view, expiring_within_days, today)]

    lots.sort(key=_sort_key(sort_by), reverse=sort_order == "desc")
    return LotPage(items=lots[offset : offset + limit], total=len(lots), limit=limit, offset=offset)


def low_stock_lots(shop_id, today: date | None = None) -> list[LotStock]:
    return [view for view in shop_lots(shop_id) if is_low_stock(view, today)]


def expiring_lots(shop_id, days: int = 30, today: date | None = None) -> list[LotStock]:
    _validate_days(days)
    lots = [view for view in shop_lots(shop_id) if is_expiring(view, days, today)]
    return sorted(lots, key=lambda view: view.expiry_date)


def expired_lots(shop_id, today: date | None = None) -> list[LotStock]:
    return [view for view in shop_lots(shop_id) if is_expired(view, today)]


def shop_alerts(shop_id, days: int = 30, today: date | None = None) -> dict:
    """Low-stock, expiring and expired lots of a shop, with counts."""
    low_stock = low_stock_lots(shop_id, today)
    expiring = expiring_lots(shop_id, days, today)
    expired = expired_lots(shop_id, today)
    return {
        "low_stock": low_stock,
        "expiring": expiring,
        "expired": expired,
        "counts": {
            "low_stock": len(low_stock),
            "expiring": len(expiring),
            "expired": len(expired),
        },
    }


def inventory_summary(shop_id, today: date | None = None) -> dict:
    """Totals for a shop: item count, on-hand units, stock value at cost, alert counts."""
    lots = shop_lots(shop_id)
    return {
        "total_items": len(lots),
        "total_quantity": sum(view.quantity or 0 for view in lots),
        "total_value": round(sum((view.quantity or 0) * (view.cost_price or 0.0) for view in lots), 2),
        "low_stock_count": sum(1 for view in lots if is_low_stock(view, today)),
        "expired_count": sum(1 for view in lots if is_expired(view, today)),
    }

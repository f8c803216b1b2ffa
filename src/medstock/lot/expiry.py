"""Status sweep: re-evaluate lots so time-driven transitions happen.

Expiry does not need a stock movement to take effect. Designed to be
triggered periodically by an external scheduler via the maintenance API
endpoint, it dispatches one RefreshLotStatus per lot, each under the lot's
lock and in its own unit of work.
"""

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from medstock.domain import medstock
from medstock.lot.errors import EventProcessingError
from medstock.lot.lookup import process_locked
from medstock.lot.lot import InventoryLot
from medstock.utils.query import fetch_all

logger = structlog.get_logger(__name__)


@medstock.command(part_of="InventoryLot")
class RefreshLotStatus:
    lot_id = Identifier(required=True)


@medstock.command(part_of="InventoryLot")
class SweepLotStatuses:
    """Re-evaluate every lot, or only the lots of one shop."""

    shop_id = Identifier()


@medstock.command_handler(part_of=InventoryLot)
class LotStatusHandler:
    @handle(RefreshLotStatus)
    def refresh_lot_status(self, command):
        repo = current_domain.repository_for(InventoryLot)
        lot = repo.get(command.lot_id)
        changed = lot.refresh_status()
        repo.add(lot)
        return changed

    @handle(SweepLotStatuses)
    def sweep_lot_statuses(self, command):
        queryset = current_domain.repository_for(InventoryLot)._dao.query
        if command.shop_id:
            queryset = queryset.filter(shop_id=str(command.shop_id))
        lots = fetch_all(queryset)

        logger.info("Sweeping lot statuses", shop_id=command.shop_id, lot_count=len(lots))

        changed = 0
        failed = 0
        for lot in lots:
            try:
                if process_locked(lot.lot_key, RefreshLotStatus(lot_id=str(lot.id))):
                    changed += 1
            except (ValidationError, ObjectNotFoundError, EventProcessingError) as exc:
                failed += 1
                logger.warning("Failed to refresh lot status", lot_id=str(lot.id), error=str(exc))

        logger.info("Lot status sweep complete", checked=len(lots), changed=changed, failed=failed)
        return {"checked": len(lots), "changed": changed, "failed": failed}

"""Inbound cross-domain event handlers: keep the directory read models current.

Catalog events arrive on ``catalogue::medicine`` and shop onboarding events on
``shops::shop``. Both are registered as external events so Protean can
deserialize them.
"""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle
from shared.events.catalogue import MedicineDiscontinued, MedicineRegistered
from shared.events.shops import ShopRegistered, ShopStatusChanged

from medstock.directory.entries import CatalogEntry, ShopEntry
from medstock.domain import medstock
from medstock.lot.lot import InventoryLot

logger = structlog.get_logger(__name__)

medstock.register_external_event(MedicineRegistered, "Catalogue.MedicineRegistered.v1")
medstock.register_external_event(MedicineDiscontinued, "Catalogue.MedicineDiscontinued.v1")
medstock.register_external_event(ShopRegistered, "Shops.ShopRegistered.v1")
medstock.register_external_event(ShopStatusChanged, "Shops.ShopStatusChanged.v1")


@medstock.event_handler(part_of=InventoryLot, stream_category="catalogue::medicine")
class CatalogueEventsHandler:
    """Tracks which medicines exist in the catalog."""

    @handle(MedicineRegistered)
    def on_medicine_registered(self, event: MedicineRegistered) -> None:
        repo = current_domain.repository_for(CatalogEntry)
        repo.add(
            CatalogEntry(
                medicine_id=str(event.medicine_id),
                name=event.name,
                is_active=True,
                updated_at=event.registered_at or datetime.now(UTC),
            )
        )
        logger.info("Medicine registered in catalog", medicine_id=str(event.medicine_id))

    @handle(MedicineDiscontinued)
    def on_medicine_discontinued(self, event: MedicineDiscontinued) -> None:
        repo = current_domain.repository_for(CatalogEntry)
        try:
            entry = repo.get(str(event.medicine_id))
        except ObjectNotFoundError:
            logger.info("Discontinued medicine was never registered", medicine_id=str(event.medicine_id))
            return

        entry.is_active = False
        entry.updated_at = event.discontinued_at or datetime.now(UTC)
        repo.add(entry)
        logger.info("Medicine discontinued", medicine_id=str(event.medicine_id))


@medstock.event_handler(part_of=InventoryLot, stream_category="shops::shop")
class ShopEventsHandler:
    """Tracks shop ownership and status."""

    @handle(ShopRegistered)
    def on_shop_registered(self, event: ShopRegistered) -> None:
        repo = current_domain.repository_for(ShopEntry)
        repo.add(
            ShopEntry(
                shop_id=str(event.shop_id),
                owner_id=str(event.owner_id),
                name=event.name,
                status="active",
                updated_at=event.registered_at or datetime.now(UTC),
            )
        )
        logger.info("Shop registered", shop_id=str(event.shop_id), owner_id=str(event.owner_id))

    @handle(ShopStatusChanged)
    def on_shop_status_changed(self, event: ShopStatusChanged) -> None:
        repo = current_domain.repository_for(ShopEntry)
        try:
            entry = repo.get(str(event.shop_id))
        except ObjectNotFoundError:
            logger.warning("Status change for unknown shop", shop_id=str(event.shop_id), status=event.status)
            return

        entry.status = event.status
        entry.updated_at = event.changed_at or datetime.now(UTC)
        repo.add(entry)

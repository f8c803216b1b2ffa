"""Repository lookups and locked command dispatch for inventory lots."""

from protean.utils.globals import current_domain

from medstock.lot.locks import lot_locks
from medstock.lot.lot import InventoryLot, lot_key_for
from medstock.utils.settings import get_setting


def find_lot(shop_id, medicine_id, batch_number) -> InventoryLot | None:
    """Load the lot for a natural key, or None if the shop holds no such batch."""
    repo = current_domain.repository_for(InventoryLot)
    found = repo._dao.query.filter(lot_key=lot_key_for(shop_id, medicine_id, batch_number)).all().items
    if not found:
        return None
    return repo.get(found[0].id)


def get_lot(lot_id) -> InventoryLot:
    """Load a lot by id. Raises ObjectNotFoundError when it does not exist."""
    return current_domain.repository_for(InventoryLot).get(lot_id)


def lot_key_for_id(lot_id) -> str:
    lot = get_lot(lot_id)
    return lot.lot_key


def process_locked(lot_key: str, command):
    """Process a command synchronously while holding the lot's lock."""
    with lot_locks.hold(lot_key, timeout=get_setting("lot_lock_timeout_seconds")):
        return current_domain.process(command, asynchronous=False)


def process_for_lot(lot_id, command):
    """Process a command that targets an existing lot by id, under its lock."""
    return process_locked(lot_key_for_id(lot_id), command)

"""Error types raised by the inventory ledger.

Validation-style failures extend Protean's ``ValidationError`` so they carry
the same ``messages`` dict and map to client errors at the API boundary.
"""

from protean.exceptions import ValidationError


class InsufficientStock(ValidationError):
    """An ``out`` movement or reservation asked for more than the lot holds."""


class LotConflict(ValidationError):
    """Base for write conflicts on a lot."""


class DuplicateLot(LotConflict):
    """A lot already exists for the shop, medicine and batch."""


class StaleLot(LotConflict):
    """The caller's expected revision no longer matches the stored lot."""


class ReconciliationWarning(UserWarning):
    """A confirmation could not be matched against reserved stock.

    Never raised to callers; it is recorded on the lot as a
    ``ReconciliationFlagged`` event and logged.
    """


class EventProcessingError(Exception):
    """A transient failure while applying an inbound event. Safe to retry."""


class LotBusy(EventProcessingError):
    """The per-lot lock could not be acquired within the timeout."""

    def __init__(self, lot_key: str, timeout: float):
        self.lot_key = lot_key
        self.timeout = timeout
        super().__init__(f"Lot {lot_key} is busy (waited {timeout}s)")

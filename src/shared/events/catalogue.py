"""Cross-domain event contracts for medicine catalog lifecycle events."""

from protean.core.event import BaseEvent
from protean.fields import DateTime, Identifier, String


class MedicineRegistered(BaseEvent):
    """A medicine was added to the marketplace catalog."""

    __version__ = 1

    medicine_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    registered_at = DateTime()


class MedicineDiscontinued(BaseEvent):
    """A medicine was withdrawn from the catalog."""

    __version__ = 1

    medicine_id = Identifier(required=True)
    discontinued_at = DateTime()

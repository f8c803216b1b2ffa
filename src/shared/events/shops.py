"""Cross-domain event contracts for shop onboarding events."""

from protean.core.event import BaseEvent
from protean.fields import DateTime, Identifier, String


class ShopRegistered(BaseEvent):
    """A pharmacy finished onboarding and can hold stock."""

    __version__ = 1

    shop_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    name = String(max_length=255)
    registered_at = DateTime()


class ShopStatusChanged(BaseEvent):
    """A shop was suspended, reactivated or closed."""

    __version__ = 1

    shop_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    changed_at = DateTime()

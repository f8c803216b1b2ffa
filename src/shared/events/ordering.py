"""Cross-domain event contracts for marketplace order lifecycle events.

The ordering service publishes one event per lifecycle step on the
``ordering::order`` stream. Each carries the shop the order was placed
with, the ordering user and the line items as a JSON list of
``{"medicine_id", "batch_number", "quantity"}`` dicts (camelCase keys
``medicineId``/``batchNumber`` are accepted as well).

They are registered as external events via domain.register_external_event()
with matching __type__ strings so Protean's stream deserialization works.
"""

from protean.core.event import BaseEvent
from protean.fields import DateTime, Identifier, Text


class OrderPlaced(BaseEvent):
    """A customer placed an order with a shop."""

    __version__ = 1

    order_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of line items
    placed_at = DateTime()


class OrderConfirmed(BaseEvent):
    """The shop confirmed the order; reserved stock leaves the shelf."""

    __version__ = 1

    order_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    user_id = Identifier()
    items = Text(required=True)
    confirmed_at = DateTime()


class OrderCancelled(BaseEvent):
    """The order was cancelled before delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    user_id = Identifier()
    items = Text(required=True)
    cancelled_at = DateTime()


class OrderDelivered(BaseEvent):
    """The order was handed over to the customer."""

    __version__ = 1

    order_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    user_id = Identifier()
    items = Text(required=True)
    delivered_at = DateTime()

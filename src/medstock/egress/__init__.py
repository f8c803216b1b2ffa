"""Event transport registry.

The in-memory fake is used unless ``MEDSTOCK_EVENT_TRANSPORT=broker``, in
which case messages go to the active domain's default broker. Tests can
inject any transport through ``configure_transport``.
"""

import os

from medstock.egress.port import EventTransport

_transport: EventTransport | None = None


def get_transport() -> EventTransport:
    """Return the configured transport (singleton)."""
    global _transport
    if _transport is None:
        if os.getenv("MEDSTOCK_EVENT_TRANSPORT", "fake").lower() == "broker":
            from protean.utils.globals import current_domain

            from medstock.egress.broker_transport import BrokerTransport

            _transport = BrokerTransport(current_domain.brokers["default"])
        else:
            from medstock.egress.fake_transport import FakeEventTransport

            _transport = FakeEventTransport()
    return _transport


def configure_transport(transport: EventTransport) -> None:
    global _transport
    _transport = transport


def reset_transport() -> None:
    """Drop the transport singleton (useful for testing)."""
    global _transport
    _transport = None

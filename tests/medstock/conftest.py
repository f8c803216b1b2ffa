import os
from datetime import UTC, datetime, timedelta

import pytest

MEDICINES = ("med-001", "med-002", "med-003")
SHOP_OWNERS = {"shop-001": "owner-001", "shop-002": "owner-002"}


@pytest.fixture(scope="session")
def _medstock_domain(request):
    """Initialize the medstock domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from medstock.domain import medstock

    medstock.init()
    return medstock


@pytest.fixture(scope="session", autouse=True)
def setup_db(_medstock_domain):
    from medstock.utils.db import drop_db, setup_db

    setup_db(_medstock_domain)

    yield

    drop_db(_medstock_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_medstock_domain):
    """Push domain context before each test, cleanup after."""
    ctx = _medstock_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    from medstock.lot.locks import lot_locks

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    lot_locks.reset()
    ctx.pop()


@pytest.fixture(autouse=True)
def transport():
    """Fresh in-memory event transport for every test."""
    from medstock.egress import configure_transport, reset_transport
    from medstock.egress.fake_transport import FakeEventTransport

    fake = FakeEventTransport()
    configure_transport(fake)
    yield fake
    reset_transport()


@pytest.fixture(autouse=True)
def catalog():
    from medstock.directory import configure_catalog, reset_directory
    from medstock.directory.fake_directory import FakeCatalog

    fake = FakeCatalog(MEDICINES)
    configure_catalog(fake)
    yield fake
    reset_directory()


@pytest.fixture(autouse=True)
def shops(catalog):
    from medstock.directory import configure_shop_directory
    from medstock.directory.fake_directory import FakeShopDirectory

    fake = FakeShopDirectory(SHOP_OWNERS)
    configure_shop_directory(fake)
    return fake


@pytest.fixture
def today():
    return datetime.now(UTC).date()


@pytest.fixture
def receive_lot(today):
    """Dispatch ReceiveLot with sensible defaults and return the new lot id."""
    from protean import current_domain

    from medstock.lot.receiving import ReceiveLot

    def _receive(**overrides):
        defaults = {
            "shop_id": "shop-001",
            "medicine_id": "med-001",
            "batch_number": "B-001",
            "quantity": 100,
            "cost_price": 10.0,
            "selling_price": 15.0,
            "mrp": 20.0,
            "manufacturing_date": today - timedelta(days=180),
            "expiry_date": today + timedelta(days=365),
            "low_stock_threshold": 10,
            "expiry_alert_days": 30,
            "created_by": "owner-001",
        }
        defaults.update(overrides)
        return current_domain.process(ReceiveLot(**defaults), asynchronous=False)

    return _receive

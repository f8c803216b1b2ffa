"""Application tests for catalog and shop lifecycle handlers and the projection-backed directory."""

from datetime import UTC, datetime

from protean import current_domain
from shared.events.catalogue import MedicineDiscontinued, MedicineRegistered
from shared.events.shops import ShopRegistered, ShopStatusChanged

from medstock.directory import get_catalog, get_shop_directory, reset_directory
from medstock.directory.entries import CatalogEntry, ShopEntry
from medstock.directory.lifecycle_events import CatalogueEventsHandler, ShopEventsHandler
from medstock.directory.projection_directory import ProjectionCatalog, ProjectionShopDirectory


class TestCatalogueEventsHandler:
    def test_registers_medicine(self):
        CatalogueEventsHandler().on_medicine_registered(
            MedicineRegistered(medicine_id="med-900", name="Paracetamol 500mg", registered_at=datetime.now(UTC))
        )
        entry = current_domain.repository_for(CatalogEntry).get("med-900")
        assert entry.name == "Paracetamol 500mg"
        assert entry.is_active is True

    def test_discontinues_medicine(self):
        handler = CatalogueEventsHandler()
        handler.on_medicine_registered(MedicineRegistered(medicine_id="med-901", name="Ibuprofen"))
        handler.on_medicine_discontinued(MedicineDiscontinued(medicine_id="med-901"))
        assert current_domain.repository_for(CatalogEntry).get("med-901").is_active is False

    def test_discontinuing_unknown_medicine_is_ignored(self):
        CatalogueEventsHandler().on_medicine_discontinued(MedicineDiscontinued(medicine_id="med-404"))
        assert current_domain.repository_for(CatalogEntry)._dao.query.all().items == []


class TestShopEventsHandler:
    def test_registers_shop(self):
        ShopEventsHandler().on_shop_registered(
            ShopRegistered(shop_id="shop-900", owner_id="owner-900", name="Corner Pharmacy")
        )
        entry = current_domain.repository_for(ShopEntry).get("shop-900")
        assert entry.owner_id == "owner-900"
        assert entry.status == "active"

    def test_status_change(self):
        handler = ShopEventsHandler()
        handler.on_shop_registered(ShopRegistered(shop_id="shop-901", owner_id="owner-901"))
        handler.on_shop_status_changed(ShopStatusChanged(shop_id="shop-901", status="suspended"))
        assert current_domain.repository_for(ShopEntry).get("shop-901").status == "suspended"


class TestProjectionDirectory:
    def test_catalog_reflects_registered_and_discontinued(self):
        handler = CatalogueEventsHandler()
        handler.on_medicine_registered(MedicineRegistered(medicine_id="med-910", name="Cetirizine"))
        handler.on_medicine_registered(MedicineRegistered(medicine_id="med-911", name="Loratadine"))
        handler.on_medicine_discontinued(MedicineDiscontinued(medicine_id="med-911"))

        catalog = ProjectionCatalog()
        assert catalog.exists("med-910")
        assert not catalog.exists("med-911")
        assert not catalog.exists("med-912")

    def test_shop_directory_checks_ownership(self):
        ShopEventsHandler().on_shop_registered(ShopRegistered(shop_id="shop-910", owner_id="owner-910"))

        directory = ProjectionShopDirectory()
        assert directory.shop_exists("shop-910")
        assert directory.is_owner("shop-910", "owner-910")
        assert not directory.is_owner("shop-910", "someone-else")
        assert not directory.shop_exists("shop-911")

    def test_registry_falls_back_to_projections(self):
        reset_directory()
        assert isinstance(get_catalog(), ProjectionCatalog)
        assert isinstance(get_shop_directory(), ProjectionShopDirectory)

"""Directory adapters backed by the CatalogEntry and ShopEntry projections."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from medstock.directory.entries import CatalogEntry, ShopEntry
from medstock.directory.ports import CatalogLookup, ShopDirectory


class ProjectionCatalog(CatalogLookup):
    def exists(self, medicine_id: str) -> bool:
        try:
            entry = current_domain.repository_for(CatalogEntry).get(str(medicine_id))
        except ObjectNotFoundError:
            return False
        return bool(entry.is_active)


class ProjectionShopDirectory(ShopDirectory):
    def _entry(self, shop_id: str) -> ShopEntry | None:
        try:
            return current_domain.repository_for(ShopEntry).get(str(shop_id))
        except ObjectNotFoundError:
            return None

    def shop_exists(self, shop_id: str) -> bool:
        return self._entry(shop_id) is not None

    def is_owner(self, shop_id: str, user_id: str) -> bool:
        entry = self._entry(shop_id)
        return entry is not None and user_id is not None and str(entry.owner_id) == str(user_id)

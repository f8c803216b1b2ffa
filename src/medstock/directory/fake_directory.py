"""In-memory directory adapters for tests and local development."""

from medstock.directory.ports import CatalogLookup, ShopDirectory


class FakeCatalog(CatalogLookup):
    """Catalog that knows a fixed set of medicines and can simulate outages."""

    def __init__(self, medicine_ids=None):
        self.medicine_ids: set[str] = set(medicine_ids or [])
        self.failure: Exception | None = None
        self.lookups: list[str] = []

    def configure(self, medicine_ids=None, failure: Exception | None = None):
        if medicine_ids is not None:
            self.medicine_ids = set(medicine_ids)
        self.failure = failure

    def exists(self, medicine_id: str) -> bool:
        self.lookups.append(str(medicine_id))
        if self.failure is not None:
            raise self.failure
        return str(medicine_id) in self.medicine_ids

    def reset(self):
        self.medicine_ids.clear()
        self.failure = None
        self.lookups.clear()


class FakeShopDirectory(ShopDirectory):
    """Shop directory holding a ``shop_id -> owner_id`` map."""

    def __init__(self, owners=None):
        self.owners: dict[str, str] = dict(owners or {})

    def register(self, shop_id: str, owner_id: str):
        self.owners[str(shop_id)] = str(owner_id)

    def shop_exists(self, shop_id: str) -> bool:
        return str(shop_id) in self.owners

    def is_owner(self, shop_id: str, user_id: str) -> bool:
        return self.owners.get(str(shop_id)) == str(user_id)

    def reset(self):
        self.owners.clear()

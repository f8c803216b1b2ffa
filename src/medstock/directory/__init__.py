"""Directory adapter registry: catalog and shop lookups.

Projection-backed adapters are used by default; tests and local setups can
swap in fakes with ``configure_catalog`` / ``configure_shop_directory``.
"""

from medstock.directory.ports import CatalogLookup, ShopDirectory

_catalog: CatalogLookup | None = None
_shop_directory: ShopDirectory | None = None


def get_catalog() -> CatalogLookup:
    global _catalog
    if _catalog is None:
        from medstock.directory.projection_directory import ProjectionCatalog

        _catalog = ProjectionCatalog()
    return _catalog


def configure_catalog(adapter: CatalogLookup) -> None:
    global _catalog
    _catalog = adapter


def get_shop_directory() -> ShopDirectory:
    global _shop_directory
    if _shop_directory is None:
        from medstock.directory.projection_directory import ProjectionShopDirectory

        _shop_directory = ProjectionShopDirectory()
    return _shop_directory


def configure_shop_directory(adapter: ShopDirectory) -> None:
    global _shop_directory
    _shop_directory = adapter


def reset_directory() -> None:
    """Fall back to the projection-backed adapters (useful for testing)."""
    global _catalog, _shop_directory
    _catalog = None
    _shop_directory = None

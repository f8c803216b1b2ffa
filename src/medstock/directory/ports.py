"""Collaborator ports: lookups owned by other services."""

from abc import ABC, abstractmethod


class CatalogLookup(ABC):
    """Answers whether a medicine exists in the marketplace catalog."""

    @abstractmethod
    def exists(self, medicine_id: str) -> bool:
        """Return True if the medicine is known and active.

        May raise TimeoutError or ConnectionError when the catalog is unreachable.
        """
        ...


class ShopDirectory(ABC):
    """Answers shop existence and ownership questions."""

    @abstractmethod
    def shop_exists(self, shop_id: str) -> bool: ...

    @abstractmethod
    def is_owner(self, shop_id: str, user_id: str) -> bool: ...

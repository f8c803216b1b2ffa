"""Local read models of catalog medicines and shops.

Fed by catalog and shop lifecycle events so ownership and existence checks
do not need a synchronous call to another service.
"""

from protean.fields import Boolean, DateTime, Identifier, String

from medstock.domain import medstock


@medstock.projection
class CatalogEntry:
    medicine_id = Identifier(identifier=True, required=True)
    name = String(max_length=255)
    is_active = Boolean(default=True)
    updated_at = DateTime()


@medstock.projection
class ShopEntry:
    shop_id = Identifier(identifier=True, required=True)
    owner_id = Identifier(required=True)
    name = String(max_length=255)
    status = String(max_length=20, default="active")
    updated_at = DateTime()

from medstock.api.errors import register_error_handlers
from medstock.api.routes import inventory_router, maintenance_router

__all__ = ["inventory_router", "maintenance_router", "register_error_handlers"]

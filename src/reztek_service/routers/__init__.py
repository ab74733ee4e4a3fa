from . import admin_routes, session_routes, tenant_routes

__all__ = ["admin_routes", "session_routes", "tenant_routes"]

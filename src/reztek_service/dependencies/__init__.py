from .app_deps import get_app_settings
from .session_deps import (
    get_current_tenant,
    get_session_negotiator,
    get_store,
    require_admin_session,
    resolve_override,
    session_cookie,
    tenant_token_scheme,
)

__all__ = [
    "get_app_settings",
    "get_current_tenant",
    "get_session_negotiator",
    "get_store",
    "require_admin_session",
    "resolve_override",
    "session_cookie",
    "tenant_token_scheme",
]

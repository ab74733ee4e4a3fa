import logging
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from supabase._async.client import AsyncClient as AsyncSupabaseClient

from reztek_service.config import Settings
from reztek_service.crud import principal_crud
from reztek_service.dependencies.app_deps import get_app_settings
from reztek_service.errors import AuthError, AuthErrorKind
from reztek_service.security import SessionEncoding, encode_standard_session
from reztek_service.security_audit import log_session_rejected
from reztek_service.session_negotiator import (
    SessionNegotiator,
    SessionVerdict,
    SupabaseCredentialProvider,
)
from reztek_service.supabase_client import get_supabase_admin_client, get_supabase_client

logger = logging.getLogger(__name__)

# Tenants may send the provider token as a bearer token instead of the cookie
tenant_token_scheme = OAuth2PasswordBearer(tokenUrl="/api/tenant/login", auto_error=False)

# Set by the route guard so handlers behind it do not verify twice
ADMIN_VERDICT_STATE = "admin_session"


def resolve_override(app: FastAPI, dependency: Callable) -> Callable:
    """Honour app.dependency_overrides outside of FastAPI's injector (middleware)."""
    return app.dependency_overrides.get(dependency, dependency)


def get_store() -> AsyncSupabaseClient:
    """Document store and file storage client (service role)."""
    return get_supabase_admin_client()


def get_session_negotiator() -> SessionNegotiator:
    provider = SupabaseCredentialProvider(
        verify_client=get_supabase_client(),
        admin_client=get_supabase_admin_client(),
    )
    return SessionNegotiator(provider, store=get_supabase_admin_client())


def session_cookie(
    request: Request, app_settings: Settings = Depends(get_app_settings)
) -> Optional[str]:
    return request.cookies.get(app_settings.SESSION_COOKIE_NAME)


async def require_admin_session(
    request: Request,
    cookie: Optional[str] = Depends(session_cookie),
    negotiator: SessionNegotiator = Depends(get_session_negotiator),
) -> SessionVerdict:
    """
    Dependency for admin endpoints: returns the verdict of a valid admin
    session or raises 401.
    """
    verdict = getattr(request.state, ADMIN_VERDICT_STATE, None)
    if verdict is None or not verdict.valid:
        verdict = await negotiator.verify(cookie)
    if not verdict.valid:
        log_session_rejected(request, verdict.reason)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin session required",
        )
    return verdict


async def get_current_tenant(
    request: Request,
    token: Optional[str] = Depends(tenant_token_scheme),
    cookie: Optional[str] = Depends(session_cookie),
    negotiator: SessionNegotiator = Depends(get_session_negotiator),
    store: AsyncSupabaseClient = Depends(get_store),
) -> Dict[str, Any]:
    """
    Resolves the tenant record of the caller from a bearer provider token or
    a standard session cookie.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    value = encode_standard_session(token) if token else cookie
    verdict = await negotiator.authenticate(value)
    if not verdict.valid or verdict.encoding != SessionEncoding.STANDARD:
        log_session_rejected(request, verdict.reason)
        if verdict.reason == AuthErrorKind.TRANSPORT_FAILURE:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=AuthError(AuthErrorKind.TRANSPORT_FAILURE).user_message,
            )
        raise credentials_exception

    tenant = await principal_crud.get_tenant(store, verdict.user_id)
    if not tenant:
        logger.warning(f"Authenticated user {verdict.user_id} has no tenant record")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=AuthError(AuthErrorKind.NOT_AUTHORIZED).user_message,
        )
    return tenant

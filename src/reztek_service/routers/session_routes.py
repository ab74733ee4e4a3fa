import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from supabase._async.client import AsyncClient as AsyncSupabaseClient

from reztek_service.config import Settings
from reztek_service.crud import principal_crud
from reztek_service.dependencies import (
    get_app_settings,
    get_session_negotiator,
    get_store,
    session_cookie,
)
from reztek_service.errors import AuthError, AuthErrorKind
from reztek_service.rate_limiting import LOGIN_LIMIT, limiter
from reztek_service.schemas import (
    CheckAdminResponse,
    CheckTenantRequest,
    CheckTenantResponse,
    DirectLoginRequest,
    LoginTokenRequest,
    SignInRequest,
    SignInResponse,
    SuccessResponse,
    VerifySessionResponse,
)
from reztek_service.security import (
    SessionEncoding,
    StandardSession,
    decode_session,
    encode_standard_session,
)
from reztek_service.security_audit import (
    log_login_attempt,
    log_login_failure,
    log_login_success,
    log_logout,
    log_security_event,
    log_session_rejected,
)
from reztek_service.session_negotiator import IssuedSession, Portal, SessionNegotiator

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/auth",
    tags=["Session"],
)


async def perform_sign_in(
    request: Request,
    response: Response,
    email: str,
    password: str,
    portal: Portal,
    negotiator: SessionNegotiator,
) -> IssuedSession:
    """Runs issue() and sets the session cookie; AuthError becomes an HTTPException."""
    log_login_attempt(request, email, portal.value)
    try:
        issued = await negotiator.issue(email, password, portal)
    except AuthError as e:
        log_login_failure(request, email, f"{e.kind.value}: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.user_message)

    negotiator.cookie_for(issued.artifact).apply(response)
    log_login_success(request, issued.user_id, issued.email, issued.encoding.value)
    return issued


@router.post("/login", response_model=SuccessResponse, status_code=status.HTTP_200_OK)
@limiter.limit(LOGIN_LIMIT)
async def login_with_token(
    request: Request,
    response: Response,
    payload: LoginTokenRequest,
    negotiator: SessionNegotiator = Depends(get_session_negotiator),
):
    """
    Stores a provider identity token, obtained by the portal itself, as a
    standard session cookie. The token is checked with the provider first.
    """
    if not payload.id_token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No token provided")

    artifact = encode_standard_session(payload.id_token)
    verdict = await negotiator.authenticate(artifact)
    if not verdict.valid:
        log_session_rejected(request, verdict.reason)
        raise HTTPException(
            status_code=AuthError(verdict.reason).status_code,
            detail=AuthError(verdict.reason).user_message,
        )

    try:
        negotiator.cookie_for(artifact).apply(response)
    except Exception as e:
        logger.error(f"Failed to set session cookie for {verdict.email}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to set session cookie",
        )

    log_login_success(request, verdict.user_id, verdict.email, SessionEncoding.STANDARD.value)
    return SuccessResponse()


@router.post("/direct-login", response_model=SuccessResponse, status_code=status.HTTP_200_OK)
@limiter.limit(LOGIN_LIMIT)
async def direct_login(
    request: Request,
    response: Response,
    payload: DirectLoginRequest,
    negotiator: SessionNegotiator = Depends(get_session_negotiator),
    app_settings: Settings = Depends(get_app_settings),
):
    if not app_settings.DIRECT_LOGIN_ENABLED:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    email = (payload.email or "").strip().lower()
    log_login_attempt(request, email, Portal.ADMIN.value)
    try:
        artifact = negotiator.direct_session_for(email)
    except AuthError as e:
        log_login_failure(request, email, e.kind.value)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")

    negotiator.cookie_for(artifact).apply(response)
    log_security_event(
        event_type="session_issued",
        additional_data={"email": email, "encoding": SessionEncoding.DIRECT.value},
        request=request,
    )
    return SuccessResponse()


@router.post("/sign-in", response_model=SignInResponse, status_code=status.HTTP_200_OK)
@limiter.limit(LOGIN_LIMIT)
async def sign_in(
    request: Request,
    response: Response,
    payload: SignInRequest,
    negotiator: SessionNegotiator = Depends(get_session_negotiator),
):
    issued = await perform_sign_in(
        request, response, payload.email, payload.password, payload.portal, negotiator
    )
    return SignInResponse(encoding=issued.encoding, email=issued.email)


@router.post("/logout", response_model=SuccessResponse, status_code=status.HTTP_200_OK)
async def logout(
    request: Request,
    response: Response,
    cookie: Optional[str] = Depends(session_cookie),
    negotiator: SessionNegotiator = Depends(get_session_negotiator),
):
    """Clears the session cookie; a standard session is also revoked at the provider."""
    detail = "no_session"
    if cookie:
        detail = "cleared"
        try:
            session = decode_session(cookie, negotiator.settings)
        except ValueError:
            session = None
        if isinstance(session, StandardSession):
            try:
                await negotiator.provider.revoke(session.token)
                detail = "revoked"
            except AuthError as e:
                logger.warning(f"Provider sign-out at logout failed: {e.message}")

    negotiator.destroy().apply(response)
    log_logout(request, detail)
    return SuccessResponse()


@router.post("/verify-session", response_model=None)
async def verify_session(
    request: Request,
    payload: Dict[str, Any] = Body(default={}),
    negotiator: SessionNegotiator = Depends(get_session_negotiator),
) -> JSONResponse:
    """
    Answers whether a session value is a live admin session.
    Returns {valid, email} or {valid: false, error}.
    """
    value = payload.get("session")
    if not isinstance(value, str) or not value:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=VerifySessionResponse(valid=False, error="No session provided").model_dump(
                exclude_none=True
            ),
        )

    verdict = await negotiator.verify(value)
    body = VerifySessionResponse(**verdict.as_response()).model_dump(exclude_none=True)
    if verdict.valid:
        return JSONResponse(status_code=status.HTTP_200_OK, content=body)

    log_session_rejected(request, verdict.reason)
    return JSONResponse(status_code=AuthError(verdict.reason).status_code, content=body)


@router.get("/check-admin", response_model=CheckAdminResponse, response_model_by_alias=True)
async def check_admin(
    request: Request,
    cookie: Optional[str] = Depends(session_cookie),
    negotiator: SessionNegotiator = Depends(get_session_negotiator),
    store: AsyncSupabaseClient = Depends(get_store),
):
    """
    Verifies the session cookie server side. The admin record is created the
    first time an authorized admin with a known provider id is seen.
    """
    if not cookie:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=CheckAdminResponse(is_admin=False, error="No session found").model_dump(
                by_alias=True
            ),
        )

    verdict = await negotiator.verify(cookie)
    if not verdict.valid:
        log_session_rejected(request, verdict.reason)
        error = AuthError(verdict.reason)
        return JSONResponse(
            status_code=error.status_code,
            content=CheckAdminResponse(is_admin=False, error=error.user_message).model_dump(
                by_alias=True
            ),
        )

    if verdict.user_id:
        await principal_crud.ensure_admin(store, verdict.user_id, verdict.email)
    return CheckAdminResponse(is_admin=True)


@router.post("/check-tenant", response_model=CheckTenantResponse, response_model_by_alias=True)
async def check_tenant(
    payload: CheckTenantRequest,
    store: AsyncSupabaseClient = Depends(get_store),
):
    tenant = await principal_crud.get_tenant_by_email(store, payload.email)
    if not tenant:
        return CheckTenantResponse(
            is_tenant=False,
            error=AuthError(AuthErrorKind.NOT_AUTHORIZED).user_message,
        )
    return CheckTenantResponse(is_tenant=True)

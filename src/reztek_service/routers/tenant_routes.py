import logging
from typing import Any, Dict

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Request,
    Response,
    UploadFile,
    status,
)
from supabase._async.client import AsyncClient as AsyncSupabaseClient

from reztek_service.config import Settings
from reztek_service.crud import feedback_crud, maintenance_crud, principal_crud
from reztek_service.dependencies import (
    get_app_settings,
    get_current_tenant,
    get_session_negotiator,
    get_store,
)
from reztek_service.errors import AccountExistsError, AuthError, AuthErrorKind, StoreError
from reztek_service.rate_limiting import (
    LOGIN_LIMIT,
    PASSWORD_RESET_LIMIT,
    REGISTRATION_LIMIT,
    limiter,
)
from reztek_service.routers.session_routes import perform_sign_in
from reztek_service.schemas import (
    ACTIVE_STATUSES,
    ContactNumberUpdateRequest,
    FeedbackCreate,
    FeedbackResponse,
    ImageUploadResponse,
    MaintenanceRequestCreate,
    MaintenanceRequestResponse,
    MessageResponse,
    PasswordResetRequest,
    RequestStatus,
    TenantLoginRequest,
    TenantLoginResponse,
    TenantRegisterRequest,
    TenantRequestsResponse,
    TenantResponse,
    UrgencyLevel,
)
from reztek_service.security import decode_session
from reztek_service.security_audit import log_password_reset_request, log_security_event
from reztek_service.session_negotiator import Portal, SessionNegotiator
from reztek_service.storage import ALLOWED_IMAGE_TYPES, upload_request_image

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/tenant",
    tags=["Tenant Portal"],
)


@router.post("/register", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTRATION_LIMIT)
async def register_tenant(
    request: Request,
    tenant_in: TenantRegisterRequest,
    negotiator: SessionNegotiator = Depends(get_session_negotiator),
    store: AsyncSupabaseClient = Depends(get_store),
):
    email = tenant_in.email.lower()
    logger.info(f"Registration attempt for email: {email}")

    if await principal_crud.get_tenant_by_email(store, email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists",
        )

    try:
        identity = await negotiator.provider.sign_up(
            email,
            tenant_in.password,
            {"name": tenant_in.name, "surname": tenant_in.surname, "role": Portal.TENANT.value},
        )
    except AccountExistsError:
        log_security_event(
            event_type="registration",
            request=request,
            status="failure",
            detail="account_exists",
            additional_data={"email": email},
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists",
        )
    except AuthError as e:
        log_security_event(
            event_type="registration",
            request=request,
            status="failure",
            detail=e.message,
            additional_data={"email": email},
        )
        raise HTTPException(status_code=e.status_code, detail=e.user_message)

    record = tenant_in.model_dump(exclude={"password"})
    record["id"] = identity.user_id
    try:
        created = await principal_crud.create_tenant(store, record)
    except StoreError:
        # A provider account must not outlive a failed tenant record write
        logger.error(f"Tenant record write failed for {email}; removing provider account")
        try:
            await negotiator.provider.delete_account(identity.user_id)
        except AuthError as e:
            logger.error(f"Could not remove provider account {identity.user_id}: {e.message}")
        raise

    log_security_event(
        event_type="registration",
        user_id=identity.user_id,
        request=request,
        status="success",
    )
    return created


@router.post("/login", response_model=TenantLoginResponse)
@limiter.limit(LOGIN_LIMIT)
async def login_tenant(
    request: Request,
    response: Response,
    payload: TenantLoginRequest,
    negotiator: SessionNegotiator = Depends(get_session_negotiator),
):
    """
    Signs a tenant in. The provider token is returned for bearer use and the
    same session is set as the cookie.
    """
    issued = await perform_sign_in(
        request, response, payload.email, payload.password, Portal.TENANT, negotiator
    )
    session = decode_session(issued.artifact, negotiator.settings)
    return TenantLoginResponse(access_token=session.token, email=issued.email)


@router.post("/password-reset", response_model=MessageResponse)
@limiter.limit(PASSWORD_RESET_LIMIT)
async def request_password_reset(
    request: Request,
    payload: PasswordResetRequest,
    negotiator: SessionNegotiator = Depends(get_session_negotiator),
    app_settings: Settings = Depends(get_app_settings),
):
    email = payload.email.lower()
    log_password_reset_request(request, email)

    if app_settings.is_authorized_admin(email):
        log_password_reset_request(request, email, status="refused")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin accounts cannot reset their password from the tenant portal",
        )

    try:
        await negotiator.provider.reset_password(email, app_settings.PASSWORD_RESET_REDIRECT_URL)
    except AuthError as e:
        log_password_reset_request(request, email, status="failure")
        if e.kind in (AuthErrorKind.TOO_MANY_REQUESTS, AuthErrorKind.TRANSPORT_FAILURE):
            raise HTTPException(status_code=e.status_code, detail=e.user_message)
        # Unknown accounts get the same answer as known ones
        logger.info(f"Password reset for {email} not sent: {e.message}")

    return MessageResponse(
        message="If an account with this email exists, a password reset link has been sent."
    )


@router.get("/profile", response_model=TenantResponse)
async def get_profile(tenant: Dict[str, Any] = Depends(get_current_tenant)):
    return tenant


@router.patch("/profile", response_model=TenantResponse)
async def update_profile(
    payload: ContactNumberUpdateRequest,
    tenant: Dict[str, Any] = Depends(get_current_tenant),
    store: AsyncSupabaseClient = Depends(get_store),
):
    if payload.contact_number == tenant.get("contact_number"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="New contact number is the same as the current one",
        )
    updated = await principal_crud.update_tenant_contact_number(
        store, tenant["id"], payload.contact_number
    )
    return updated or {**tenant, "contact_number": payload.contact_number}


@router.post(
    "/requests", response_model=MaintenanceRequestResponse, status_code=status.HTTP_201_CREATED
)
async def submit_request(
    payload: MaintenanceRequestCreate,
    tenant: Dict[str, Any] = Depends(get_current_tenant),
    store: AsyncSupabaseClient = Depends(get_store),
):
    return await maintenance_crud.create_request(
        store,
        tenant,
        payload.issue_location,
        payload.urgency_level.value,
        payload.description,
    )


@router.get("/requests", response_model=TenantRequestsResponse)
async def list_own_requests(
    tenant: Dict[str, Any] = Depends(get_current_tenant),
    store: AsyncSupabaseClient = Depends(get_store),
):
    requests = await maintenance_crud.list_requests_for_tenant(store, tenant["id"])
    active_values = {item.value for item in ACTIVE_STATUSES}
    return TenantRequestsResponse(
        active=[item for item in requests if item.get("status") in active_values],
        past=[item for item in requests if item.get("status") not in active_values],
    )


async def _own_request(store: AsyncSupabaseClient, tenant: Dict[str, Any], request_id: str):
    item = await maintenance_crud.get_request(store, request_id)
    if not item or str(item.get("tenant_id")) != str(tenant["id"]):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Maintenance request {request_id} not found",
        )
    return item


@router.post("/requests/{request_id}/image", response_model=ImageUploadResponse)
async def upload_image(
    request_id: str,
    file: UploadFile = File(...),
    tenant: Dict[str, Any] = Depends(get_current_tenant),
    store: AsyncSupabaseClient = Depends(get_store),
    app_settings: Settings = Depends(get_app_settings),
):
    item = await _own_request(store, tenant, request_id)
    if item.get("urgency_level") != UrgencyLevel.HIGH.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Images can only be attached to High urgency requests",
        )
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported image type: {file.content_type}",
        )

    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file")

    url = await upload_request_image(
        store,
        app_settings.STORAGE_BUCKET,
        request_id,
        file.filename,
        content,
        file.content_type,
    )
    await maintenance_crud.set_image_url(store, request_id, url)
    return ImageUploadResponse(request_id=request_id, image_url=url)


@router.post(
    "/requests/{request_id}/feedback",
    response_model=FeedbackResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_feedback(
    request_id: str,
    payload: FeedbackCreate,
    tenant: Dict[str, Any] = Depends(get_current_tenant),
    store: AsyncSupabaseClient = Depends(get_store),
):
    item = await _own_request(store, tenant, request_id)
    if item.get("status") != RequestStatus.COMPLETED.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Feedback can only be given on completed requests",
        )
    already_rated = HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Feedback has already been submitted for this request",
    )
    if item.get("has_feedback"):
        raise already_rated
    claimed = await maintenance_crud.claim_feedback(store, request_id, payload.rating)
    if not claimed:
        raise already_rated

    try:
        return await feedback_crud.create_feedback(
            store, claimed, tenant["id"], payload.rating, payload.comment
        )
    except StoreError:
        await maintenance_crud.release_feedback(store, request_id)
        raise

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from supabase._async.client import AsyncClient as AsyncSupabaseClient

from reztek_service.config import Settings
from reztek_service.crud import feedback_crud, maintenance_crud, principal_crud, stock_crud
from reztek_service.dependencies import (
    get_app_settings,
    get_session_negotiator,
    get_store,
    require_admin_session,
)
from reztek_service.rate_limiting import LOGIN_LIMIT, limiter
from reztek_service.routers.session_routes import perform_sign_in
from reztek_service.schemas import (
    AdminLoginPage,
    DashboardResponse,
    FeedbackResponse,
    MaintenanceRequestResponse,
    RequestCounts,
    RequestStatus,
    SignInRequest,
    SignInResponse,
    StatusUpdateRequest,
    StockItemCreate,
    StockItemResponse,
    StockItemUpdate,
    SuccessResponse,
    TenantResponse,
)
from reztek_service.security_audit import log_admin_action
from reztek_service.session_negotiator import Portal, SessionNegotiator, SessionVerdict

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin Portal"],
)

RECENT_ITEMS = 5
DASHBOARD_WINDOW = 100
SEARCH_FIELDS = ("tenant_name", "room_number", "issue_location", "description")


@router.get("/login", response_model=AdminLoginPage)
async def admin_login_page(app_settings: Settings = Depends(get_app_settings)):
    return AdminLoginPage(sign_in_url=app_settings.ADMIN_LOGIN_PATH)


@router.post("/login", response_model=SignInResponse)
@limiter.limit(LOGIN_LIMIT)
async def admin_login(
    request: Request,
    response: Response,
    payload: SignInRequest,
    negotiator: SessionNegotiator = Depends(get_session_negotiator),
):
    issued = await perform_sign_in(
        request, response, payload.email, payload.password, Portal.ADMIN, negotiator
    )
    return SignInResponse(encoding=issued.encoding, email=issued.email)


def count_by_status(requests: List[dict]) -> RequestCounts:
    counts = RequestCounts(total=len(requests))
    for item in requests:
        value = str(item.get("status") or "").lower()
        if value == RequestStatus.PENDING.value.lower():
            counts.pending += 1
        elif value == RequestStatus.IN_PROGRESS.value.lower():
            counts.in_progress += 1
        elif value == RequestStatus.COMPLETED.value.lower():
            counts.completed += 1
    return counts


def matches_search(item: dict, search: str) -> bool:
    needle = search.lower()
    return any(needle in str(item.get(field) or "").lower() for field in SEARCH_FIELDS)


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    verdict: SessionVerdict = Depends(require_admin_session),
    store: AsyncSupabaseClient = Depends(get_store),
    app_settings: Settings = Depends(get_app_settings),
):
    requests = await maintenance_crud.list_recent_requests(store, DASHBOARD_WINDOW)
    tenant_count = await principal_crud.count_tenants(store)
    low_stock = await stock_crud.list_low_stock(store, app_settings.LOW_STOCK_THRESHOLD)
    feedback = await feedback_crud.list_recent_feedback(store, RECENT_ITEMS)

    return DashboardResponse(
        admin_email=verdict.email,
        requests=count_by_status(requests),
        tenant_count=tenant_count,
        low_stock_items=[StockItemResponse.model_validate(item) for item in low_stock],
        recent_requests=[
            MaintenanceRequestResponse.model_validate(item) for item in requests[:RECENT_ITEMS]
        ],
        recent_feedback=[FeedbackResponse.model_validate(item) for item in feedback],
    )


@router.get("/maintenance", response_model=List[MaintenanceRequestResponse])
async def list_maintenance_requests(
    residence: str = Query(..., min_length=1),
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    verdict: SessionVerdict = Depends(require_admin_session),
    store: AsyncSupabaseClient = Depends(get_store),
):
    requests = await maintenance_crud.list_requests_for_residence(
        store, residence, status_filter.value if status_filter else None
    )
    if search and search.strip():
        requests = [item for item in requests if matches_search(item, search.strip())]
    return requests


async def _load_request(store: AsyncSupabaseClient, request_id: str) -> dict:
    item = await maintenance_crud.get_request(store, request_id)
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Maintenance request {request_id} not found",
        )
    return item


@router.get("/maintenance/{request_id}", response_model=MaintenanceRequestResponse)
async def get_maintenance_request(
    request_id: str,
    verdict: SessionVerdict = Depends(require_admin_session),
    store: AsyncSupabaseClient = Depends(get_store),
):
    return await _load_request(store, request_id)


@router.patch("/maintenance/{request_id}/status", response_model=MaintenanceRequestResponse)
async def update_maintenance_status(
    request: Request,
    request_id: str,
    payload: StatusUpdateRequest,
    verdict: SessionVerdict = Depends(require_admin_session),
    store: AsyncSupabaseClient = Depends(get_store),
):
    current = await _load_request(store, request_id)
    updated = await maintenance_crud.update_status(store, request_id, payload.status.value)
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Maintenance request {request_id} not found",
        )
    log_admin_action(
        request,
        verdict.email,
        "maintenance_status_update",
        target_id=request_id,
        additional_data={"from": current.get("status"), "to": payload.status.value},
    )
    return updated


@router.get("/tenants", response_model=List[TenantResponse])
async def list_residence_tenants(
    residence: str = Query(..., min_length=1),
    verdict: SessionVerdict = Depends(require_admin_session),
    store: AsyncSupabaseClient = Depends(get_store),
):
    return await principal_crud.list_tenants(store, residence)


@router.get("/feedback", response_model=List[FeedbackResponse])
async def list_residence_feedback(
    residence: str = Query(..., min_length=1),
    verdict: SessionVerdict = Depends(require_admin_session),
    store: AsyncSupabaseClient = Depends(get_store),
):
    return await feedback_crud.list_feedback_for_residence(store, residence)


@router.get("/stock", response_model=List[StockItemResponse])
async def list_stock_items(
    residence: str = Query(..., min_length=1),
    verdict: SessionVerdict = Depends(require_admin_session),
    store: AsyncSupabaseClient = Depends(get_store),
):
    return await stock_crud.list_stock(store, residence)


@router.post("/stock", response_model=StockItemResponse, status_code=status.HTTP_201_CREATED)
async def create_stock_item(
    request: Request,
    payload: StockItemCreate,
    verdict: SessionVerdict = Depends(require_admin_session),
    store: AsyncSupabaseClient = Depends(get_store),
):
    created = await stock_crud.create_item(store, payload.model_dump())
    log_admin_action(
        request,
        verdict.email,
        "stock_create",
        target_id=created.get("id"),
        additional_data={"name": payload.name, "quantity": payload.quantity},
    )
    return created


@router.put("/stock/{item_id}", response_model=StockItemResponse)
async def update_stock_item(
    request: Request,
    item_id: str,
    payload: StockItemUpdate,
    verdict: SessionVerdict = Depends(require_admin_session),
    store: AsyncSupabaseClient = Depends(get_store),
):
    updated = await stock_crud.update_item(store, item_id, payload.model_dump())
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"Stock item {item_id} not found"
        )
    log_admin_action(
        request,
        verdict.email,
        "stock_update",
        target_id=item_id,
        additional_data={"quantity": payload.quantity},
    )
    return updated


@router.delete("/stock/{item_id}", response_model=SuccessResponse)
async def delete_stock_item(
    request: Request,
    item_id: str,
    verdict: SessionVerdict = Depends(require_admin_session),
    store: AsyncSupabaseClient = Depends(get_store),
):
    if not await stock_crud.delete_item(store, item_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"Stock item {item_id} not found"
        )
    log_admin_action(request, verdict.email, "stock_delete", target_id=item_id)
    return SuccessResponse()

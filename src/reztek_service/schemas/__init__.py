from .common_schemas import MessageResponse, SuccessResponse
from .dashboard_schemas import DashboardResponse, RequestCounts
from .maintenance_schemas import (
    ACTIVE_STATUSES,
    FeedbackCreate,
    FeedbackResponse,
    ImageUploadResponse,
    MaintenanceRequestCreate,
    MaintenanceRequestResponse,
    RequestStatus,
    StatusUpdateRequest,
    TenantRequestsResponse,
    UrgencyLevel,
)
from .session_schemas import (
    AdminLoginPage,
    CheckAdminResponse,
    CheckTenantRequest,
    CheckTenantResponse,
    DirectLoginRequest,
    LoginTokenRequest,
    SignInRequest,
    SignInResponse,
    VerifySessionResponse,
)
from .stock_schemas import (
    StockItemCreate,
    StockItemResponse,
    StockItemUpdate,
    StockStatus,
)
from .tenant_schemas import (
    ContactNumberUpdateRequest,
    PasswordResetRequest,
    TenantLoginRequest,
    TenantLoginResponse,
    TenantRegisterRequest,
    TenantResponse,
)

__all__ = [
    "MessageResponse",
    "SuccessResponse",
    "DashboardResponse",
    "RequestCounts",
    "ACTIVE_STATUSES",
    "FeedbackCreate",
    "FeedbackResponse",
    "ImageUploadResponse",
    "MaintenanceRequestCreate",
    "MaintenanceRequestResponse",
    "RequestStatus",
    "StatusUpdateRequest",
    "TenantRequestsResponse",
    "UrgencyLevel",
    "AdminLoginPage",
    "CheckAdminResponse",
    "CheckTenantRequest",
    "CheckTenantResponse",
    "DirectLoginRequest",
    "LoginTokenRequest",
    "SignInRequest",
    "SignInResponse",
    "VerifySessionResponse",
    "StockItemCreate",
    "StockItemResponse",
    "StockItemUpdate",
    "StockStatus",
    "ContactNumberUpdateRequest",
    "PasswordResetRequest",
    "TenantLoginRequest",
    "TenantLoginResponse",
    "TenantRegisterRequest",
    "TenantResponse",
]

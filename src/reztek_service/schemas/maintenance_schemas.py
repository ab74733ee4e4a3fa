from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RequestStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


ACTIVE_STATUSES = {RequestStatus.PENDING, RequestStatus.IN_PROGRESS}


class UrgencyLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class MaintenanceRequestCreate(BaseModel):
    issue_location: str = Field(..., min_length=1, max_length=200)
    urgency_level: UrgencyLevel
    description: str = Field(..., min_length=1, max_length=2000)


class MaintenanceRequestResponse(BaseModel):
    id: str
    tenant_id: str
    tenant_name: Optional[str] = None
    tenant_email: Optional[str] = None
    tenant_phone: Optional[str] = None
    room_number: Optional[str] = None
    residence: Optional[str] = None
    tenant_code: Optional[str] = None
    issue_location: str
    urgency_level: UrgencyLevel
    description: str
    image_url: Optional[str] = ""
    status: RequestStatus
    has_feedback: bool = False
    rating: Optional[int] = None
    submitted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")


class TenantRequestsResponse(BaseModel):
    active: List[MaintenanceRequestResponse]
    past: List[MaintenanceRequestResponse]


class StatusUpdateRequest(BaseModel):
    status: RequestStatus


class FeedbackCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=2000)


class FeedbackResponse(BaseModel):
    id: Optional[str] = None
    request_id: str
    tenant_id: Optional[str] = None
    tenant_name: Optional[str] = None
    residence: Optional[str] = None
    room_number: Optional[str] = None
    status: Optional[str] = None
    rating: int
    comment: str = ""
    created_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")


class ImageUploadResponse(BaseModel):
    request_id: str
    image_url: str

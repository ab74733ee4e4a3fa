from typing import List

from pydantic import BaseModel

from .maintenance_schemas import FeedbackResponse, MaintenanceRequestResponse
from .stock_schemas import StockItemResponse


class RequestCounts(BaseModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0


class DashboardResponse(BaseModel):
    admin_email: str
    requests: RequestCounts
    tenant_count: int
    low_stock_items: List[StockItemResponse]
    recent_requests: List[MaintenanceRequestResponse]
    recent_feedback: List[FeedbackResponse]

# src/reztek_service/crud/maintenance_crud.py
import logging
from typing import List, Optional

from supabase._async.client import AsyncClient as AsyncSupabaseClient

from .base import Record, first_row, run_query, utcnow_iso

logger = logging.getLogger(__name__)

REQUESTS_TABLE = "maintenance_requests"


async def create_request(
    store: AsyncSupabaseClient, tenant: Record, issue_location: str, urgency_level: str, description: str
) -> Record:
    """Creates a Pending maintenance request carrying a copy of the tenant's details."""
    now = utcnow_iso()
    record = {
        "tenant_id": tenant["id"],
        "tenant_name": f"{tenant.get('name', '')} {tenant.get('surname', '')}".strip(),
        "tenant_email": tenant.get("email"),
        "tenant_phone": tenant.get("contact_number"),
        "room_number": tenant.get("room_number"),
        "residence": tenant.get("residence"),
        "tenant_code": tenant.get("tenant_code"),
        "issue_location": issue_location,
        "urgency_level": urgency_level,
        "description": description,
        "image_url": "",
        "status": "Pending",
        "has_feedback": False,
        "rating": None,
        "submitted_at": now,
        "updated_at": now,
    }
    rows = await run_query(
        store.table(REQUESTS_TABLE).insert(record),
        f"creating maintenance request for tenant {tenant['id']}",
    )
    created = rows[0] if rows else record
    logger.info(f"Maintenance request {created.get('id')} submitted by tenant {tenant['id']}")
    return created


async def get_request(store: AsyncSupabaseClient, request_id: str) -> Optional[Record]:
    return await first_row(
        store.table(REQUESTS_TABLE).select("*").eq("id", request_id),
        f"fetching maintenance request {request_id}",
    )


async def list_requests_for_tenant(store: AsyncSupabaseClient, tenant_id: str) -> List[Record]:
    return await run_query(
        store.table(REQUESTS_TABLE)
        .select("*")
        .eq("tenant_id", str(tenant_id))
        .order("submitted_at", desc=True),
        f"listing maintenance requests of tenant {tenant_id}",
    )


async def list_requests_for_residence(
    store: AsyncSupabaseClient, residence: str, status: Optional[str] = None
) -> List[Record]:
    query = store.table(REQUESTS_TABLE).select("*").eq("residence", residence)
    if status:
        query = query.eq("status", status)
    return await run_query(
        query.order("submitted_at", desc=True),
        f"listing maintenance requests of {residence}",
    )


async def list_recent_requests(store: AsyncSupabaseClient, limit: int = 100) -> List[Record]:
    return await run_query(
        store.table(REQUESTS_TABLE)
        .select("*")
        .order("submitted_at", desc=True)
        .limit(limit),
        "listing recent maintenance requests",
    )


async def update_request(store: AsyncSupabaseClient, request_id: str, changes: Record) -> Optional[Record]:
    rows = await run_query(
        store.table(REQUESTS_TABLE).update(changes).eq("id", request_id),
        f"updating maintenance request {request_id}",
    )
    return rows[0] if rows else None


async def update_status(store: AsyncSupabaseClient, request_id: str, status: str) -> Optional[Record]:
    updated = await update_request(
        store, request_id, {"status": status, "updated_at": utcnow_iso()}
    )
    if updated:
        logger.info(f"Maintenance request {request_id} moved to {status}")
    return updated


async def set_image_url(store: AsyncSupabaseClient, request_id: str, image_url: str) -> Optional[Record]:
    return await update_request(store, request_id, {"image_url": image_url})


async def claim_feedback(store: AsyncSupabaseClient, request_id: str, rating: int) -> Optional[Record]:
    """
    Marks the request as rated only if it has no feedback yet. Returns None when
    another submission got there first.
    """
    rows = await run_query(
        store.table(REQUESTS_TABLE)
        .update({"has_feedback": True, "rating": rating, "updated_at": utcnow_iso()})
        .eq("id", request_id)
        .eq("has_feedback", False),
        f"claiming feedback on maintenance request {request_id}",
    )
    return rows[0] if rows else None


async def release_feedback(store: AsyncSupabaseClient, request_id: str) -> Optional[Record]:
    return await update_request(store, request_id, {"has_feedback": False, "rating": None})

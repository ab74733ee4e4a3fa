# src/reztek_service/crud/feedback_crud.py
from typing import List

from supabase._async.client import AsyncClient as AsyncSupabaseClient

from .base import Record, run_query, utcnow_iso

FEEDBACK_TABLE = "feedback"


async def create_feedback(
    store: AsyncSupabaseClient, request: Record, user_id: str, rating: int, comment: str
) -> Record:
    record = {
        "request_id": request["id"],
        "tenant_id": request.get("tenant_id"),
        "tenant_name": request.get("tenant_name"),
        "user_id": str(user_id),
        "residence": request.get("residence"),
        "room_number": request.get("room_number"),
        "status": request.get("status"),
        "rating": rating,
        "comment": comment,
        "created_at": utcnow_iso(),
    }
    rows = await run_query(
        store.table(FEEDBACK_TABLE).insert(record),
        f"saving feedback for request {request['id']}",
    )
    return rows[0] if rows else record


async def list_feedback_for_residence(store: AsyncSupabaseClient, residence: str) -> List[Record]:
    return await run_query(
        store.table(FEEDBACK_TABLE)
        .select("*")
        .eq("residence", residence)
        .order("created_at", desc=True),
        f"listing feedback of {residence}",
    )


async def list_recent_feedback(store: AsyncSupabaseClient, limit: int = 5) -> List[Record]:
    return await run_query(
        store.table(FEEDBACK_TABLE)
        .select("*")
        .order("created_at", desc=True)
        .limit(limit),
        "listing recent feedback",
    )

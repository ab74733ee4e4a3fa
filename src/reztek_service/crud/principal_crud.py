# src/reztek_service/crud/principal_crud.py
import logging
from typing import List, Optional

from supabase._async.client import AsyncClient as AsyncSupabaseClient

from .base import Record, count_rows, first_row, run_query, utcnow_iso

logger = logging.getLogger(__name__)

TENANTS_TABLE = "tenants"
ADMINS_TABLE = "admins"


async def get_tenant(store: AsyncSupabaseClient, user_id: str) -> Optional[Record]:
    """Retrieves a tenant record keyed by the provider user id."""
    return await first_row(
        store.table(TENANTS_TABLE).select("*").eq("id", str(user_id)),
        f"fetching tenant {user_id}",
    )


async def get_tenant_by_email(store: AsyncSupabaseClient, email: str) -> Optional[Record]:
    return await first_row(
        store.table(TENANTS_TABLE).select("*").eq("email", email.lower()),
        "fetching tenant by email",
    )


async def create_tenant(store: AsyncSupabaseClient, tenant: Record) -> Record:
    """Creates the tenant record written at registration."""
    record = dict(tenant)
    record["email"] = record["email"].lower()
    record.setdefault("created_at", utcnow_iso())
    rows = await run_query(
        store.table(TENANTS_TABLE).insert(record), f"creating tenant {record['id']}"
    )
    logger.info(f"Tenant record created for user_id: {record['id']}")
    return rows[0] if rows else record


async def update_tenant_contact_number(
    store: AsyncSupabaseClient, user_id: str, contact_number: str
) -> Optional[Record]:
    """Updates the only tenant field tenants may change themselves."""
    rows = await run_query(
        store.table(TENANTS_TABLE)
        .update({"contact_number": contact_number, "updated_at": utcnow_iso()})
        .eq("id", str(user_id)),
        f"updating contact number for tenant {user_id}",
    )
    if rows:
        logger.info(f"Contact number updated for tenant: {user_id}")
    return rows[0] if rows else None


async def list_tenants(store: AsyncSupabaseClient, residence: str) -> List[Record]:
    return await run_query(
        store.table(TENANTS_TABLE)
        .select("*")
        .eq("residence", residence)
        .order("name"),
        f"listing tenants of {residence}",
    )


async def count_tenants(store: AsyncSupabaseClient) -> int:
    return await count_rows(
        store.table(TENANTS_TABLE).select("id", count="exact").limit(1), "counting tenants"
    )


async def get_admin(store: AsyncSupabaseClient, user_id: str) -> Optional[Record]:
    return await first_row(
        store.table(ADMINS_TABLE).select("*").eq("id", str(user_id)),
        f"fetching admin {user_id}",
    )


async def ensure_admin(
    store: AsyncSupabaseClient, user_id: str, email: str, name: str = "Admin"
) -> Record:
    """
    Returns the admin record for user_id, creating it on first sight.
    Admin records are materialised lazily the first time an authorized
    admin identity is checked.
    """
    existing = await get_admin(store, user_id)
    if existing:
        return existing
    record = {
        "id": str(user_id),
        "email": email.lower(),
        "name": name,
        "role": "admin",
        "created_at": utcnow_iso(),
    }
    rows = await run_query(
        store.table(ADMINS_TABLE).upsert(record), f"creating admin {user_id}"
    )
    logger.info(f"Admin record created for user_id: {user_id}")
    return rows[0] if rows else record

# src/reztek_service/crud/stock_crud.py
import logging
from typing import List, Optional

from supabase._async.client import AsyncClient as AsyncSupabaseClient

from .base import Record, run_query, utcnow_iso

logger = logging.getLogger(__name__)

STOCK_TABLE = "stock"


async def list_stock(store: AsyncSupabaseClient, residence: str) -> List[Record]:
    return await run_query(
        store.table(STOCK_TABLE).select("*").eq("residence", residence).order("name"),
        f"listing stock of {residence}",
    )


async def list_low_stock(store: AsyncSupabaseClient, threshold: int) -> List[Record]:
    return await run_query(
        store.table(STOCK_TABLE).select("*").lt("quantity", threshold),
        "listing low stock items",
    )


async def create_item(store: AsyncSupabaseClient, item: Record) -> Record:
    record = dict(item)
    record["last_restocked"] = utcnow_iso()
    rows = await run_query(store.table(STOCK_TABLE).insert(record), "creating stock item")
    created = rows[0] if rows else record
    logger.info(f"Stock item {created.get('id')} added to {record.get('residence')}")
    return created


async def update_item(store: AsyncSupabaseClient, item_id: str, changes: Record) -> Optional[Record]:
    record = dict(changes)
    record["last_restocked"] = utcnow_iso()
    rows = await run_query(
        store.table(STOCK_TABLE).update(record).eq("id", item_id),
        f"updating stock item {item_id}",
    )
    return rows[0] if rows else None


async def delete_item(store: AsyncSupabaseClient, item_id: str) -> bool:
    rows = await run_query(
        store.table(STOCK_TABLE).delete().eq("id", item_id),
        f"deleting stock item {item_id}",
    )
    return bool(rows)

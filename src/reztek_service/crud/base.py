# src/reztek_service/crud/base.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError

from ..errors import StoreError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def run_query(query, action: str) -> List[Record]:
    """Executes a PostgREST query builder and returns its rows."""
    try:
        result = await query.execute()
    except (APIError, httpx.HTTPError) as e:
        logger.error(f"Document store error while {action}: {e}", exc_info=True)
        raise StoreError(f"Document store error while {action}") from e
    return list(result.data or [])


async def first_row(query, action: str) -> Optional[Record]:
    rows = await run_query(query.limit(1), action)
    return rows[0] if rows else None


async def count_rows(query, action: str) -> int:
    """Executes a select built with count="exact" and returns the row count."""
    try:
        result = await query.execute()
    except (APIError, httpx.HTTPError) as e:
        logger.error(f"Document store error while {action}: {e}", exc_info=True)
        raise StoreError(f"Document store error while {action}") from e
    if result.count is None:
        return len(result.data or [])
    return result.count

"""Persistent worker state: last run time and summary per scheduled job.

Uses a lightweight `worker_state` collection. Writes are skipped when the
document store is disabled, so the settlement job keeps working without it.
"""

import logging
from datetime import datetime
from typing import Any

import oddscron.database as _db
from oddscron.utils import utcnow

logger = logging.getLogger("oddscron.workers")


async def record_run(worker_id: str, *, ok: bool, metrics: dict[str, Any] | None = None) -> datetime | None:
    """Mark a worker as just run. Returns the timestamp written, or None."""
    store = _db.get_db()
    if store is None:
        return None
    now = utcnow()
    update: dict[str, Any] = {"synced_at": now, "ok": ok}
    if metrics:
        update["metrics"] = metrics
    try:
        await store.worker_state.update_one(
            {"_id": worker_id},
            {"$set": update},
            upsert=True,
        )
    except Exception:
        logger.warning("Failed to record run state for %s", worker_id, exc_info=True)
        return None
    return now

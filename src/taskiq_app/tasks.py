"""Taskiq tasks for bulk listing ingestion."""

import hashlib
import json
import logging
from typing import Any, cast

from src.config import get_settings
from src.db.session import session_context
from src.services.listing_service import ListingService
from src.taskiq_app.broker import broker
from src.taskiq_app.dedup import (
    acquire_dedup_lock,
    build_dedup_key,
    release_dedup_lock,
)

logger = logging.getLogger(__name__)
settings = get_settings()

IMPORT_TASK_NAME = "import_business_records"


def records_fingerprint(records: list[dict[str, Any]]) -> str:
    """Stable digest of a record batch, used to drop duplicate submissions."""

    data = json.dumps(records, sort_keys=True, default=str)
    return hashlib.sha256(data.encode()).hexdigest()[:32]


@broker.task(task_name=IMPORT_TASK_NAME, retry_on_error=True, max_retries=3)
async def import_business_records(
    records: list[dict[str, Any]], fingerprint: str | None = None
) -> dict[str, object]:
    fingerprint = fingerprint or records_fingerprint(records)
    dedup_key = build_dedup_key(
        scope="execution", task_name=IMPORT_TASK_NAME, fingerprint=fingerprint
    )
    lock_acquired = await acquire_dedup_lock(
        dedup_key, settings.import_dedup_ttl_seconds
    )
    if not lock_acquired:
        logger.info("import_business_records skipped due to dedup lock")
        return {"count": 0, "status": "skipped_duplicate_execution"}

    try:
        async with session_context() as session:
            result = await ListingService(session).import_records(records)

        return {
            "count": result.count,
            "received": len(records),
            "listing_ids": result.listing_ids,
            "errors": result.errors,
            "status": "ok",
        }
    finally:
        await release_dedup_lock(dedup_key)


async def enqueue_import_business_records(
    records: list[dict[str, Any]], *, fingerprint: str | None = None
) -> dict[str, object]:
    """Enqueue an import batch once per dedup window."""

    fingerprint = fingerprint or records_fingerprint(records)
    dedup_key = build_dedup_key(
        scope="enqueue", task_name=IMPORT_TASK_NAME, fingerprint=fingerprint
    )
    lock_acquired = await acquire_dedup_lock(
        dedup_key, settings.import_dedup_ttl_seconds
    )
    if not lock_acquired:
        return {"enqueued": False, "reason": "duplicate_enqueue"}

    task_kicker = cast(Any, import_business_records)
    task = await task_kicker.kiq(records, fingerprint=fingerprint)
    return {"enqueued": True, "task_id": task.task_id}
